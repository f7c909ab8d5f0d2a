"""Project and ProjectTask modules."""

from typing import Any

from ..core.errors import RecordNotFoundError, ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from ..core.validation import is_blank
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import normalize_date, normalize_fields, parse_datetime

PROJECT_STATUSES = ["Planning", "Active", "Inactive", "Complete"]
PRIORITIES = ["Low", "Medium", "High", "Urgent"]
TASK_STATUSES = ["Not Started", "In Progress", "Completed", "Pending Input", "Deferred"]

# Link field on Project for the project_users relationship
USERS_LINK = "users"


def check_date_order(start_field: str, end_field: str, message: str):
    def check(service, data: dict[str, Any], is_create: bool) -> list[str]:
        start = parse_datetime(data.get(start_field))
        end = parse_datetime(data.get(end_field))
        return [message] if start and end and start > end else []
    return check


_project_dates = check_date_order(
    "estimated_start_date", "estimated_end_date", "Project start date cannot be after end date"
)


def check_project(service, data: dict[str, Any], is_create: bool) -> list[str]:
    errors = _project_dates(service, data, is_create)
    if data.get("status") == "Active" and is_blank(data.get("priority")):
        errors.append("Priority is required for active projects")
    return errors


PROJECTS = register_module(ModuleSpec(
    kind=ModuleKind.PROJECTS,
    required_fields=("name", "status"),
    rules={
        "name": {"max_length": 255},
        "status": {"in": PROJECT_STATUSES},
        "priority": {"in": PRIORITIES},
    },
    relationships=USER_REFERENCES,
    business_rules=check_project,
    preprocess=lambda data: normalize_fields(
        data, ("estimated_start_date", "estimated_end_date"), normalize_date
    ),
))

PROJECT_TASKS = register_module(ModuleSpec(
    kind=ModuleKind.PROJECT_TASKS,
    required_fields=("name", "project_id"),
    rules={
        "name": {"max_length": 50},
        "status": {"in": TASK_STATUSES},
        "priority": {"in": ["High", "Medium", "Low"]},
        "percent_complete": {"min": 0, "max": 100},
    },
    relationships={
        **USER_REFERENCES,
        "project_id": ModuleKind.PROJECTS,
    },
    defaults={"status": "Not Started"},
    business_rules=check_date_order("date_start", "date_finish", "Task start date cannot be after finish date"),
    preprocess=lambda data: normalize_fields(data, ("date_start", "date_finish"), normalize_date),
))


class ProjectService:
    """Convenience operations for Project and its tasks."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.PROJECTS)
        self.tasks = directory.records(ModuleKind.PROJECT_TASKS)

    def create_project(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_project(self, project_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(project_id, data)

    def find_project_by_id(self, project_id: str, fields: list[str] | None = None) -> dict[str, Any] | None:
        return self.records.find_by_id(project_id, fields)

    def search_projects(self, criteria: dict[str, Any] | None = None, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(criteria, limit=limit, offset=offset)

    def delete_project(self, project_id: str) -> bool:
        return self.records.delete(project_id)

    def _require(self, project_id: str) -> dict[str, Any]:
        project = self.records.find_by_id(project_id)
        if project is None:
            raise RecordNotFoundError(
                f"Project with ID '{project_id}' does not exist",
                module=self.records.module_name,
                record_id=project_id,
            )
        return project

    def add_project_task(self, project_id: str, data: dict[str, Any]) -> str:
        """Create a ProjectTask under a project; the project must exist."""
        self._require(project_id)
        return self.tasks.create(dict(data, project_id=project_id))

    def get_project_tasks(self, project_id: str, limit: int = 1000) -> list[dict[str, Any]]:
        return self.tasks.search({"project_id": project_id}, limit=limit)

    def get_project_status(self, project_id: str) -> dict[str, Any]:
        """Task completion summary for a project."""
        project = self._require(project_id)
        tasks = self.get_project_tasks(project_id)
        completed = sum(1 for task in tasks if task.get("status") == "Completed")
        progress = completed / len(tasks) * 100 if tasks else 0
        return {
            "project": project,
            "total_tasks": len(tasks),
            "completed_tasks": completed,
            "progress_percentage": round(progress, 2),
            "status": project.get("status"),
        }

    def assign_resources(self, project_id: str, user_ids: list[str]) -> bool:
        """
        Link users to a project.

        Raises:
            RecordNotFoundError: If the project does not exist
            ValidationError: If any of the users does not exist
        """
        self._require(project_id)
        missing = [
            f"User with ID '{user_id}' does not exist"
            for user_id in user_ids
            if not self.directory.exists(ModuleKind.USERS, user_id)
        ]
        if missing:
            raise ValidationError("Project resources not found", missing, module=self.records.module_name)
        return self.directory.api.set_relationship(
            self.records.module_name, project_id, USERS_LINK, user_ids
        )
