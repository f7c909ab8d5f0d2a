"""Meetings module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import ACTIVITY_RULES, ActivitySchedule, check_schedule, preprocess_activity
from .directory import ServiceDirectory

MEETINGS = register_module(ModuleSpec(
    kind=ModuleKind.MEETINGS,
    required_fields=("name", "date_start", "date_end"),
    rules={
        **ACTIVITY_RULES,
        "type": {"in": ["Meeting", "WebEx", "Call", "Other"]},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "Planned", "type": "Meeting"},
    business_rules=check_schedule,
    preprocess=preprocess_activity,
))


class MeetingService:
    """Convenience operations for Meetings."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.MEETINGS)
        self.schedule = ActivitySchedule(self.records)

    def create_meeting(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_meeting(self, meeting_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(meeting_id, data)

    def find_meeting_by_id(self, meeting_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(meeting_id)

    def mark_as_held(self, meeting_id: str) -> bool:
        return self.schedule.complete(meeting_id)

    def cancel_meeting(self, meeting_id: str, reason: str) -> bool:
        return self.schedule.cancel(meeting_id, reason)

    def reschedule_meeting(self, meeting_id: str, new_start: Any, new_end: Any, reason: str | None = None) -> bool:
        return self.schedule.reschedule(meeting_id, new_start, new_end, reason)
