"""Users module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import contains
from ..core.registry import register_module
from .base import count_by
from .directory import ServiceDirectory
from .formatting import format_phones, full_name

PHONE_FIELDS = ("phone_work", "phone_mobile", "phone_home", "phone_other", "phone_fax")


def preprocess_user(data: dict[str, Any]) -> dict[str, Any]:
    if "name" not in data and ("first_name" in data or "last_name" in data):
        data["name"] = full_name(data.get("first_name"), data.get("last_name"))
    return format_phones(data, PHONE_FIELDS)


USERS = register_module(ModuleSpec(
    kind=ModuleKind.USERS,
    required_fields=("user_name", "first_name", "last_name"),
    rules={
        "user_name": {"max_length": 60},
        "first_name": {"max_length": 30},
        "last_name": {"max_length": 30},
        "title": {"max_length": 50},
        "department": {"max_length": 50},
        **{field: {"phone": True} for field in PHONE_FIELDS},
        "email1": {"email": True},
        "address_street": {"max_length": 150},
        "address_city": {"max_length": 100},
        "address_state": {"max_length": 100},
        "address_postalcode": {"max_length": 20},
        "address_country": {"max_length": 100},
        "status": {"in": ["Active", "Inactive"]},
        "employee_status": {"in": ["Active", "Terminated", "Leave of Absence"]},
    },
    relationships={"reports_to_id": ModuleKind.USERS},
    defaults={"status": "Active"},
    preprocess=preprocess_user,
))


class UserService:
    """Convenience operations for Users."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.USERS)

    def find_user_by_id(self, user_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(user_id)

    def find_user_by_user_name(self, user_name: str) -> dict[str, Any] | None:
        users = self.records.search({"user_name": user_name}, limit=1)
        return users[0] if users else None

    def find_users_by_name(
        self,
        first_name: str = "",
        last_name: str = "",
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        criteria = {}
        if first_name:
            criteria["first_name"] = contains(first_name)
        if last_name:
            criteria["last_name"] = contains(last_name)
        return self.records.search(criteria, limit=limit, offset=offset)

    def find_users_by_email(self, email: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"email1": email}, limit=limit, offset=offset)

    def find_active_users(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": "Active"}, limit=limit, offset=offset)

    def find_users_by_department(self, department: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"department": department}, limit=limit, offset=offset)

    def get_current_user(self) -> dict[str, Any] | None:
        """The user the client is logged in as, or None before login."""
        user_id = self.directory.api.user_id
        if not user_id:
            return None
        return self.records.find_by_id(user_id)

    def get_user_statistics(self) -> dict[str, Any]:
        users = self.records.search(None, ["status", "employee_status", "department"], limit=1000)
        by_status = count_by(users, "status")
        return {
            "total": len(users),
            "active": by_status.get("Active", 0),
            "inactive": by_status.get("Inactive", 0),
            "by_department": count_by(users, "department"),
            "by_employee_status": count_by(users, "employee_status"),
        }
