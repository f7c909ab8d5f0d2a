"""Calendar module and mapping to iCalendar-style events."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import between
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import ACTIVITY_STATUSES, PARENT_TYPES, check_schedule
from .directory import ServiceDirectory
from .formatting import normalize_datetime, normalize_fields, parse_datetime

# Component type used for each kind of SuiteCRM entry
COMPONENT_TYPES = {"meeting": "VEVENT", "call": "VEVENT", "task": "VTODO", "event": "VEVENT"}

STATUS_TO_EXTERNAL = {
    "Planned": "confirmed",
    "Held": "confirmed",
    "Not Held": "cancelled",
    "Cancelled": "cancelled",
}
STATUS_FROM_EXTERNAL = {"confirmed": "Planned", "tentative": "Planned", "cancelled": "Cancelled"}


def check_calendar_entry(service, data: dict[str, Any], is_create: bool) -> list[str]:
    errors = check_schedule(service, data, is_create)
    start = parse_datetime(data.get("date_start"))
    end = parse_datetime(data.get("date_end"))
    if start and end and start == end:
        errors.append("Calendar event end date must be after start date")
    return errors


def preprocess_calendar_entry(data: dict[str, Any]) -> dict[str, Any]:
    normalize_fields(data, ("date_start", "date_end"), normalize_datetime)
    for field in ("duration_minutes", "reminder_time"):
        if data.get(field) not in (None, ""):
            data[field] = int(float(data[field]))
    return data


CALENDAR = register_module(ModuleSpec(
    kind=ModuleKind.CALENDAR,
    required_fields=("name", "date_start"),
    rules={
        "name": {"max_length": 255},
        "description": {"max_length": 65535},
        "status": {"in": ACTIVITY_STATUSES},
        "parent_type": {"in": PARENT_TYPES},
        "duration_minutes": {"min": 1, "max": 1440},
        "location": {"max_length": 255},
        "reminder_time": {"min": 0},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "Planned"},
    business_rules=check_calendar_entry,
    preprocess=preprocess_calendar_entry,
))


def map_event_to_external(entry: dict[str, Any]) -> dict[str, Any]:
    """Convert a calendar entry into an iCalendar-style dict."""
    return {
        "id": entry.get("id"),
        "summary": entry.get("name"),
        "description": entry.get("description") or "",
        "start": entry.get("date_start"),
        "end": entry.get("date_end") or entry.get("date_start"),
        "status": STATUS_TO_EXTERNAL.get(entry.get("status") or "Planned", "confirmed"),
        "location": entry.get("location") or "",
        "organizer": entry.get("assigned_user_name") or "",
        "type": COMPONENT_TYPES.get(entry.get("module_type") or "meeting", "VEVENT"),
        "categories": [entry.get("parent_type") or "SuiteCRM"],
    }


def map_event_from_external(event: dict[str, Any], source: str = "nextcloud") -> dict[str, Any]:
    """Convert an iCalendar-style dict into calendar entry fields."""
    start = event.get("start") or event.get("dtstart")
    end = event.get("end") or event.get("dtend") or start
    entry = {
        "name": event.get("summary") or event.get("title") or "Untitled Event",
        "description": event.get("description") or "",
        "date_start": start,
        "date_end": end,
        "status": STATUS_FROM_EXTERNAL.get(event.get("status") or "confirmed", "Planned"),
        "location": event.get("location") or "",
        "external_id": event.get("id") or event.get("uid"),
        "external_source": source,
    }

    start_at = parse_datetime(start)
    end_at = parse_datetime(end)
    if start_at and end_at:
        entry["duration_minutes"] = int((end_at - start_at).total_seconds() // 60)
    return entry


class CalendarService:
    """Convenience operations for Calendar entries."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.CALENDAR)

    def create_calendar_entry(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def get_calendar_events(self, start_date: str, end_date: str, user_id: str | None = None) -> list[dict[str, Any]]:
        criteria: dict[str, Any] = {
            "date_start": between(f"{start_date} 00:00:00", f"{end_date} 23:59:59"),
        }
        if user_id:
            criteria["assigned_user_id"] = user_id
        return self.records.search(criteria, limit=100)

    def import_external_event(self, event: dict[str, Any], source: str = "nextcloud") -> str:
        """Create a calendar entry from an iCalendar-style dict."""
        return self.records.create(map_event_from_external(event, source))
