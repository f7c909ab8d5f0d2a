"""
Shared activity behaviour and the cross-module activities view.

Calls, Meetings, Tasks and Events share a rule table, scheduling checks
and a set of operations. They get them by composition: module specs merge
ACTIVITY_RULES and use the hooks below, and each service holds an
ActivitySchedule bound to its own records.
"""

from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Mapping

from ..core.errors import ValidationError
from ..core.models import ModuleKind
from ..core.query import between, build_search_query, contains, none_of
from .base import ModuleService, count_by
from .directory import ServiceDirectory
from .formatting import (
    DATETIME_FORMAT,
    append_entry,
    normalize_fields,
    normalize_datetime,
    parse_datetime,
)

ACTIVITY_STATUSES = ["Planned", "Held", "Not Held", "Cancelled"]

PARENT_TYPES = [
    "Accounts", "Contacts", "Opportunities", "Leads", "Cases",
    "Bugs", "Project", "ProjectTask", "Tasks", "Meetings", "Calls", "Emails",
]

ACTIVITY_RULES = {
    "name": {"max_length": 255},
    "description": {"max_length": 65535},
    "location": {"max_length": 255},
    "status": {"in": ACTIVITY_STATUSES},
    "parent_type": {"in": PARENT_TYPES},
    "duration_hours": {"min": 0, "max": 24},
    "duration_minutes": {"min": 0, "max": 59},
    "reminder_time": {"min": 0},
    "email_reminder_time": {"min": 0},
    "outlook_id": {"max_length": 255},
}

INTEGER_FIELDS = ("duration_hours", "duration_minutes", "reminder_time", "email_reminder_time")

DONE_STATUSES = ("Completed", "Held", "Done")
INACTIVE_STATUSES = ["Held", "Not Held", "Cancelled"]


def check_parent(service: ModuleService, data: dict[str, Any]) -> list[str]:
    """The record named by parent_type and parent_id must exist."""
    parent_type = data.get("parent_type")
    parent_id = data.get("parent_id")
    if not (parent_type and parent_id):
        return []
    message = service.check_reference("parent_id", parent_type, parent_id)
    return [message] if message else []


def check_schedule(service: ModuleService, data: dict[str, Any], is_create: bool) -> list[str]:
    """End must not precede start; a typed parent must exist."""
    errors = []
    start = parse_datetime(data.get("date_start"))
    end = parse_datetime(data.get("date_end"))
    if start and end and end < start:
        errors.append("Activity end date cannot be before start date")
    errors.extend(check_parent(service, data))
    return errors


def preprocess_activity(data: dict[str, Any]) -> dict[str, Any]:
    normalize_fields(data, ("date_start", "date_end"), normalize_datetime)
    for field in INTEGER_FIELDS:
        if data.get(field) not in (None, ""):
            data[field] = int(float(data[field]))
    return data


class ActivitySchedule:
    """Scheduling operations over one activity module's records."""

    def __init__(self, records: ModuleService, date_field: str = "date_start"):
        self.records = records
        self.date_field = date_field

    def _description(self, activity_id: str) -> str:
        record = self.records.find_by_id(activity_id, ["id", "description"]) or {}
        return record.get("description") or ""

    def reschedule(
        self,
        activity_id: str,
        new_start: Any,
        new_end: Any,
        reason: str | None = None,
    ) -> bool:
        data = {"date_start": new_start, "date_end": new_end}
        if reason:
            data["description"] = append_entry(self._description(activity_id), "RESCHEDULED", reason)
        return self.records.update(activity_id, data)

    def cancel(self, activity_id: str, reason: str, extra: Mapping[str, Any] | None = None) -> bool:
        data = {
            "status": "Cancelled",
            "description": append_entry(self._description(activity_id), "CANCELLED", reason),
        }
        data.update(extra or {})
        return self.records.update(activity_id, data)

    def complete(self, activity_id: str) -> bool:
        return self.records.update(activity_id, {"status": "Held"})

    def find_by_date_range(
        self,
        start_date: Any,
        end_date: Any,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Activities starting between two days, both inclusive."""
        start = parse_datetime(start_date)
        end = parse_datetime(end_date)
        if start is None or end is None:
            raise ValidationError(
                "Invalid date range",
                [f"Cannot interpret date range {start_date!r} to {end_date!r}"],
                module=self.records.module_name,
            )
        criteria = {
            self.date_field: between(
                start.strftime("%Y-%m-%d 00:00:00"), end.strftime("%Y-%m-%d 23:59:59")
            ),
        }
        return self.records.search(criteria, limit=limit, offset=offset)

    def find_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_by_assigned_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"assigned_user_id": user_id}, limit=limit, offset=offset)

    def find_by_parent(
        self,
        parent_type: str,
        parent_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        return self.records.search(
            {"parent_type": parent_type, "parent_id": parent_id}, limit=limit, offset=offset
        )

    def find_upcoming(
        self,
        hours: int = 24,
        now: datetime | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Open activities starting within the next ``hours``."""
        now = now or datetime.now()
        criteria = {
            self.date_field: between(
                now.strftime(DATETIME_FORMAT),
                (now + timedelta(hours=hours)).strftime(DATETIME_FORMAT),
            ),
            "status": none_of(INACTIVE_STATUSES),
        }
        return self.records.search(criteria, limit=limit, offset=offset)

    def find_today(self, today: date | None = None, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        day = (today or date.today()).isoformat()
        criteria = {
            self.date_field: between(f"{day} 00:00:00", f"{day} 23:59:59"),
            "status": none_of(["Cancelled"]),
        }
        return self.records.search(criteria, limit=limit, offset=offset)

    def statistics(self, now: datetime | None = None) -> dict[str, Any]:
        """Counts by status plus upcoming, completed, cancelled and overdue."""
        now = now or datetime.now()
        activities = self.records.search(None, ["status", self.date_field], limit=1000)
        stats = {
            "total": len(activities),
            "by_status": count_by(activities, "status"),
            "upcoming": 0,
            "completed": 0,
            "cancelled": 0,
            "overdue": 0,
        }
        for activity in activities:
            status = activity.get("status")
            start = parse_datetime(activity.get(self.date_field))
            if status == "Cancelled":
                stats["cancelled"] += 1
            elif status == "Held":
                stats["completed"] += 1
            elif start and start > now:
                stats["upcoming"] += 1
            elif start and start < now and status == "Planned":
                stats["overdue"] += 1
        return stats


class ActivityType(Enum):
    """Activity modules reachable through ActivitiesService."""
    TASK = ModuleKind.TASKS
    MEETING = ModuleKind.MEETINGS
    CALL = ModuleKind.CALLS
    EVENT = ModuleKind.EVENTS


_DATE_FIELDS = ("date_start", "date_due", "date_entered", "date_modified")


def activity_date(activity: Mapping[str, Any]) -> datetime:
    """First usable date of an activity, for sorting."""
    for field in _DATE_FIELDS:
        parsed = parse_datetime(activity.get(field))
        if parsed:
            return parsed
    return datetime.min


class ActivitiesService:
    """
    One view over tasks, meetings, calls and events.

    Every merged record is tagged with ``activity_type``. Errors from any
    module propagate; a partial merge is never returned.
    """

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory

    def _records(self, activity_type: ActivityType) -> ModuleService:
        if not isinstance(activity_type, ActivityType):
            raise ValidationError(
                "Unsupported activity type", [f"Unsupported activity type: {activity_type}"]
            )
        return self.directory.records(activity_type.value)

    @staticmethod
    def supported_activity_types() -> list[ActivityType]:
        return list(ActivityType)

    @staticmethod
    def _tag(records: list[dict[str, Any]], activity_type: ActivityType) -> list[dict[str, Any]]:
        for record in records:
            record["activity_type"] = activity_type.name.title()
        return records

    def _collect(self, criteria: Any, limit: int, fields: list[str] | None = None) -> list[dict[str, Any]]:
        merged = []
        for activity_type in ActivityType:
            records = self._records(activity_type).search(criteria, fields, limit=limit)
            merged.extend(self._tag(records, activity_type))
        return merged

    def get_all_activities(
        self,
        criteria: Mapping[str, Any] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Activities of every type, newest first."""
        merged = self._collect(criteria, limit + offset)
        merged.sort(key=activity_date, reverse=True)
        return merged[offset:offset + limit]

    def get_activities_by_date(self, start_date: Any, end_date: Any, limit: int = 100) -> list[dict[str, Any]]:
        merged = []
        for activity_type in ActivityType:
            schedule = ActivitySchedule(self._records(activity_type))
            merged.extend(self._tag(schedule.find_by_date_range(start_date, end_date, limit), activity_type))
        return merged

    def get_activities_by_user(
        self,
        user_id: str,
        criteria: Mapping[str, Any] | None = None,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        return self.get_all_activities({**(criteria or {}), "assigned_user_id": user_id}, limit)

    def get_overdue_activities(self, current_date: date | None = None) -> list[dict[str, Any]]:
        """Activities dated before ``current_date`` that are not done."""
        current_date = current_date or date.today()
        criteria = build_search_query({
            "date_start": {"operator": "less_than", "value": f"{current_date.isoformat()} 00:00:00"},
            "status": none_of(DONE_STATUSES),
        })
        return self._collect(criteria, 1000)

    def get_upcoming_activities(self, current_date: date | None = None, days_ahead: int = 7) -> list[dict[str, Any]]:
        current_date = current_date or date.today()
        return self.get_activities_by_date(current_date, current_date + timedelta(days=days_ahead))

    def get_activity_stats(
        self,
        criteria: Mapping[str, Any] | None = None,
        current_date: date | None = None,
    ) -> dict[str, Any]:
        stats: dict[str, Any] = {
            "total_activities": 0,
            "by_type": {},
            "by_status": {},
            "overdue": 0,
            "completed": 0,
            "in_progress": 0,
        }
        for activity_type in ActivityType:
            activities = self._records(activity_type).search(criteria, ["status"], limit=1000)
            stats["by_type"][activity_type.name.title()] = len(activities)
            stats["total_activities"] += len(activities)
            for status, count in count_by(activities, "status").items():
                stats["by_status"][status] = stats["by_status"].get(status, 0) + count
                if status in DONE_STATUSES:
                    stats["completed"] += count
                elif status in ("In Progress", "Planned", "Not Started"):
                    stats["in_progress"] += count

        stats["overdue"] = len(self.get_overdue_activities(current_date))
        return stats

    def search_activities(
        self,
        term: str,
        criteria: Mapping[str, Any] | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        merged = self._collect({**(criteria or {}), "name": contains(term)}, limit)
        return merged[:limit]

    def create_activity(self, activity_type: ActivityType, data: dict[str, Any]) -> str:
        return self._records(activity_type).create(data)

    def update_activity(self, activity_type: ActivityType, activity_id: str, data: dict[str, Any]) -> bool:
        return self._records(activity_type).update(activity_id, data)

    def delete_activity(self, activity_type: ActivityType, activity_id: str) -> bool:
        return self._records(activity_type).delete(activity_id)

    def get_activity_by_id(self, activity_type: ActivityType, activity_id: str) -> dict[str, Any] | None:
        activity = self._records(activity_type).find_by_id(activity_id)
        if activity is not None:
            activity["activity_type"] = activity_type.name.title()
        return activity
