"""Calls module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import ACTIVITY_RULES, ActivitySchedule, check_schedule, preprocess_activity
from .directory import ServiceDirectory

CALLS = register_module(ModuleSpec(
    kind=ModuleKind.CALLS,
    required_fields=("name", "date_start", "date_end"),
    rules={
        **ACTIVITY_RULES,
        "direction": {"in": ["Inbound", "Outbound"]},
        "accept_status": {"in": ["accept", "decline", "tentative", "none"]},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "Planned", "direction": "Outbound"},
    business_rules=check_schedule,
    preprocess=preprocess_activity,
))


class CallService:
    """Convenience operations for Calls."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.CALLS)
        self.schedule = ActivitySchedule(self.records)

    def create_call(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_call(self, call_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(call_id, data)

    def find_call_by_id(self, call_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(call_id)

    def log_call(self, data: dict[str, Any]) -> str:
        """Record a call that already happened; a missing end equals the start."""
        data = dict(data)
        data["status"] = "Held"
        if not data.get("date_end") and data.get("date_start"):
            data["date_end"] = data["date_start"]
        return self.records.create(data)

    def find_calls_by_direction(self, direction: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"direction": direction}, limit=limit, offset=offset)

    def mark_as_completed(self, call_id: str) -> bool:
        return self.schedule.complete(call_id)

    def cancel_call(self, call_id: str, reason: str) -> bool:
        return self.schedule.cancel(call_id, reason)

    def reschedule_call(self, call_id: str, new_start: Any, new_end: Any, reason: str | None = None) -> bool:
        return self.schedule.reschedule(call_id, new_start, new_end, reason)
