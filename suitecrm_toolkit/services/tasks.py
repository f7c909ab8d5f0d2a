"""Tasks module."""

from datetime import date
from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import less_than, none_of
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import ACTIVITY_RULES, ActivitySchedule, check_schedule, preprocess_activity
from .base import count_by
from .directory import ServiceDirectory
from .formatting import normalize_datetime, normalize_fields, parse_datetime, timestamp

TASK_STATUSES = ["Not Started", "In Progress", "Completed", "Pending Input", "Deferred", "Cancelled"]
CLOSED_TASK_STATUSES = ["Completed", "Cancelled"]


def preprocess_task(data: dict[str, Any]) -> dict[str, Any]:
    preprocess_activity(data)
    return normalize_fields(data, ("date_due", "date_completed"), normalize_datetime)


TASKS = register_module(ModuleSpec(
    kind=ModuleKind.TASKS,
    required_fields=("name",),
    rules={
        **ACTIVITY_RULES,
        "status": {"in": TASK_STATUSES},
        "priority": {"in": ["High", "Medium", "Low"]},
    },
    relationships={**USER_REFERENCES, "contact_id": ModuleKind.CONTACTS},
    defaults={"status": "Not Started", "priority": "Medium"},
    business_rules=check_schedule,
    preprocess=preprocess_task,
))


def _open_task_criteria(user_id: str | None, **criteria: Any) -> dict[str, Any]:
    criteria["status"] = none_of(CLOSED_TASK_STATUSES)
    if user_id:
        criteria["assigned_user_id"] = user_id
    return criteria


class TaskService:
    """Convenience operations for Tasks."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.TASKS)
        self.schedule = ActivitySchedule(self.records)

    def create_task(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_task(self, task_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(task_id, data)

    def find_task_by_id(self, task_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(task_id)

    def find_overdue_tasks(
        self,
        user_id: str | None = None,
        today: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        day = (today or date.today()).isoformat()
        criteria = _open_task_criteria(user_id, date_due=less_than(f"{day} 00:00:00"))
        return self.records.search(criteria, limit=limit, offset=offset)

    def find_tasks_due_today(
        self,
        user_id: str | None = None,
        today: date | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        day = (today or date.today()).isoformat()
        criteria = _open_task_criteria(
            user_id, date_due={"operator": "between", "value": [f"{day} 00:00:00", f"{day} 23:59:59"]}
        )
        return self.records.search(criteria, limit=limit, offset=offset)

    def complete_task(self, task_id: str) -> bool:
        return self.records.update(task_id, {"status": "Completed", "date_completed": timestamp()})

    def start_task(self, task_id: str) -> bool:
        return self.records.update(task_id, {"status": "In Progress", "date_start": timestamp()})

    def get_task_statistics(self, user_id: str | None = None, today: date | None = None) -> dict[str, Any]:
        criteria = {"assigned_user_id": user_id} if user_id else None
        tasks = self.records.search(criteria, ["status", "priority", "date_due"], limit=1000)
        today = today or date.today()

        overdue = 0
        for task in tasks:
            due = parse_datetime(task.get("date_due"))
            if due and due.date() < today and task.get("status") not in CLOSED_TASK_STATUSES:
                overdue += 1

        return {
            "total": len(tasks),
            "by_status": count_by(tasks, "status"),
            "by_priority": count_by(tasks, "priority"),
            "completed": sum(1 for t in tasks if t.get("status") == "Completed"),
            "overdue": overdue,
        }
