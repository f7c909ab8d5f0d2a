"""Cases module."""

from typing import Any

from ..core.errors import RecordNotFoundError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import none_of
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .base import count_by
from .directory import ServiceDirectory
from .formatting import append_entry

CASE_STATUSES = [
    "New", "Assigned", "Closed", "Pending Input", "Rejected",
    "Duplicate", "Resolved", "Out of Date",
]
OPEN_STATUSES = ("New", "Assigned", "Pending Input")
CLOSED_STATUSES = ("Closed", "Rejected", "Duplicate", "Resolved")

CASES = register_module(ModuleSpec(
    kind=ModuleKind.CASES,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "status": {"in": CASE_STATUSES},
        "priority": {"in": ["P1", "P2", "P3", "P4"]},
        "type": {"in": ["Administration", "Product", "User", "Other"]},
        "description": {"max_length": 65535},
        "resolution": {"max_length": 65535},
        "work_log": {"max_length": 65535},
    },
    relationships={
        **USER_REFERENCES,
        "account_id": ModuleKind.ACCOUNTS,
        "contact_id": ModuleKind.CONTACTS,
    },
    defaults={"status": "New", "priority": "P3"},
))


class CaseService:
    """Convenience operations for Cases."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.CASES)

    def create_case(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_case(self, case_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(case_id, data)

    def find_case_by_id(self, case_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(case_id)

    def find_cases_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_cases_by_priority(self, priority: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"priority": priority}, limit=limit, offset=offset)

    def find_cases_by_account(self, account_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"account_id": account_id}, limit=limit, offset=offset)

    def find_cases_by_assigned_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"assigned_user_id": user_id}, limit=limit, offset=offset)

    def find_open_cases(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(
            {"status": none_of(["Closed", "Rejected", "Duplicate"])}, limit=limit, offset=offset
        )

    def _require(self, case_id: str) -> dict[str, Any]:
        case = self.records.find_by_id(case_id, ["id", "work_log"])
        if case is None:
            raise RecordNotFoundError(
                f"Case not found: {case_id}", module=self.records.module_name, record_id=case_id
            )
        return case

    def escalate_case(self, case_id: str, reason: str, new_priority: str = "P1") -> bool:
        """Raise priority, set Pending Input and log the reason."""
        case = self._require(case_id)
        return self.records.update(case_id, {
            "priority": new_priority,
            "status": "Pending Input",
            "work_log": append_entry(case.get("work_log"), "ESCALATION", reason),
        })

    def close_case(self, case_id: str, resolution: str, status: str = "Closed") -> bool:
        case = self._require(case_id)
        return self.records.update(case_id, {
            "status": status,
            "resolution": resolution,
            "work_log": append_entry(case.get("work_log"), "CLOSED", resolution),
        })

    def get_case_statistics(self, user_id: str | None = None) -> dict[str, Any]:
        """Totals by status and priority plus open and closed counts."""
        criteria = {"assigned_user_id": user_id} if user_id else None
        cases = self.records.search(criteria, ["status", "priority"], limit=1000)
        statuses = [c.get("status") for c in cases]
        return {
            "total": len(cases),
            "by_status": count_by(cases, "status"),
            "by_priority": count_by(cases, "priority"),
            "open": sum(1 for s in statuses if s in OPEN_STATUSES),
            "closed": sum(1 for s in statuses if s in CLOSED_STATUSES),
        }
