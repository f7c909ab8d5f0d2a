"""Events module (SuiteCRM FP_events)."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import between
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import ACTIVITY_RULES, ActivitySchedule, check_schedule, preprocess_activity
from .base import count_by
from .directory import ServiceDirectory
from .formatting import to_float

EVENT_ACTIVITY_STATUSES = ["Active", "Inactive", "Completed", "Cancelled"]


def preprocess_event(data: dict[str, Any]) -> dict[str, Any]:
    preprocess_activity(data)
    to_float(data, ("budget", "registration_fee"))
    if data.get("max_attendees") not in (None, ""):
        data["max_attendees"] = int(float(data["max_attendees"]))
    return data


EVENTS = register_module(ModuleSpec(
    kind=ModuleKind.EVENTS,
    required_fields=("name", "date_start", "date_end"),
    rules={
        **ACTIVITY_RULES,
        "budget": {"min": 0},
        "currency_id": {"max_length": 36},
        "invite_templates": {"max_length": 255},
        "accept_redirect": {"max_length": 255, "url": True},
        "decline_redirect": {"max_length": 255, "url": True},
        "activity_status_type": {"in": EVENT_ACTIVITY_STATUSES},
        "max_attendees": {"min": 1},
        "registration_fee": {"min": 0},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "Planned", "activity_status_type": "Active"},
    business_rules=check_schedule,
    preprocess=preprocess_event,
))


class EventService:
    """Convenience operations for Events."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.EVENTS)
        self.schedule = ActivitySchedule(self.records)

    def create_event(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_event(self, event_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(event_id, data)

    def find_event_by_id(self, event_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(event_id)

    def find_events_by_budget_range(
        self,
        min_budget: float,
        max_budget: float,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return self.records.search({"budget": between(min_budget, max_budget)}, limit=limit, offset=offset)

    def find_events_by_activity_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"activity_status_type": status}, limit=limit, offset=offset)

    def update_event_budget(self, event_id: str, budget: float, currency_id: str | None = None) -> bool:
        data: dict[str, Any] = {"budget": budget}
        if currency_id:
            data["currency_id"] = currency_id
        return self.records.update(event_id, data)

    def set_event_invitation_template(
        self,
        event_id: str,
        invite_template: str,
        accept_redirect: str | None = None,
        decline_redirect: str | None = None,
    ) -> bool:
        data = {"invite_templates": invite_template}
        if accept_redirect:
            data["accept_redirect"] = accept_redirect
        if decline_redirect:
            data["decline_redirect"] = decline_redirect
        return self.records.update(event_id, data)

    def complete_event(self, event_id: str) -> bool:
        return self.records.update(event_id, {"status": "Held", "activity_status_type": "Completed"})

    def cancel_event(self, event_id: str, reason: str) -> bool:
        return self.schedule.cancel(event_id, reason, {"activity_status_type": "Cancelled"})

    def get_event_statistics(self) -> dict[str, Any]:
        events = self.records.search(None, ["status", "activity_status_type", "budget"], limit=1000)
        by_activity_status = count_by(events, "activity_status_type")
        return {
            "total": len(events),
            "by_status": count_by(events, "status"),
            "by_activity_status": by_activity_status,
            "total_budget": sum(float(e.get("budget") or 0) for e in events),
            "active_events": by_activity_status.get("Active", 0),
            "completed_events": by_activity_status.get("Completed", 0),
            "cancelled_events": by_activity_status.get("Cancelled", 0),
        }
