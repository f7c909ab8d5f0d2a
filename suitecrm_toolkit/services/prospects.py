"""Prospects (targets) module."""

import logging
from typing import Any

from ..core.errors import AuthenticationError, ProtocolError, RecordNotFoundError
from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from ..core.validation import is_blank
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import format_phones, full_name
from .leads import LEAD_SOURCES, SALUTATIONS

logger = logging.getLogger(__name__)

PROSPECT_STATUSES = ["New", "Assigned", "In Process", "Converted", "Recycled", "Dead"]
QUALIFIED_STATUSES = ("Assigned", "In Process")
PHONE_FIELDS = ("phone_work", "phone_mobile", "phone_home")

# Prospect fields carried over when converting to a lead or contact
SHARED_FIELDS = (
    "first_name", "last_name", "email1", "phone_work", "phone_mobile",
    "phone_home", "lead_source", "description", "title", "department",
)
LEAD_ONLY_FIELDS = ("salutation", "account_name", "website")


def check_prospect(service, data: dict[str, Any], is_create: bool) -> list[str]:
    if is_create and data.get("status") in QUALIFIED_STATUSES:
        if all(is_blank(data.get(field)) for field in PHONE_FIELDS):
            return ["At least one phone number is required for qualified prospects"]
    return []


def preprocess_prospect(data: dict[str, Any]) -> dict[str, Any]:
    if "email" in data:
        email = data.pop("email")
        data.setdefault("email1", email)
    if "name" not in data and ("first_name" in data or "last_name" in data):
        data["name"] = full_name(data.get("first_name"), data.get("last_name"))
    return format_phones(data, PHONE_FIELDS)


PROSPECTS = register_module(ModuleSpec(
    kind=ModuleKind.PROSPECTS,
    required_fields=("first_name", "last_name"),
    rules={
        "first_name": {"max_length": 100},
        "last_name": {"max_length": 100},
        "email": {"email": True, "max_length": 255},
        "email1": {"email": True, "max_length": 255},
        "phone_work": {"phone": True, "max_length": 50},
        "phone_mobile": {"phone": True, "max_length": 50},
        "phone_home": {"phone": True, "max_length": 50},
        "lead_source": {"in": LEAD_SOURCES},
        "status": {"in": PROSPECT_STATUSES},
        "salutation": {"in": SALUTATIONS},
    },
    relationships={
        **USER_REFERENCES,
        "campaign_id": ModuleKind.CAMPAIGNS,
    },
    business_rules=check_prospect,
    preprocess=preprocess_prospect,
))


class ProspectService:
    """Convenience operations for Prospects."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.PROSPECTS)

    def create_prospect(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_prospect(self, prospect_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(prospect_id, data)

    def find_prospect_by_id(self, prospect_id: str, fields: list[str] | None = None) -> dict[str, Any] | None:
        return self.records.find_by_id(prospect_id, fields)

    def search_prospects(self, criteria: dict[str, Any] | None = None, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(criteria, limit=limit, offset=offset)

    def delete_prospect(self, prospect_id: str) -> bool:
        return self.records.delete(prospect_id)

    def _require(self, prospect_id: str) -> dict[str, Any]:
        prospect = self.records.find_by_id(prospect_id)
        if prospect is None:
            raise RecordNotFoundError(
                f"Prospect with ID '{prospect_id}' does not exist",
                module=self.records.module_name,
                record_id=prospect_id,
            )
        return prospect

    def convert_to_lead(self, prospect_id: str, extra: dict[str, Any] | None = None) -> str:
        """Create a New lead from a prospect and mark the prospect Converted."""
        prospect = self._require(prospect_id)

        lead_data = dict(extra or {})
        for field in SHARED_FIELDS + LEAD_ONLY_FIELDS:
            if not is_blank(prospect.get(field)):
                lead_data[field] = prospect[field]
        lead_data["status"] = "New"

        lead_id = self.directory.records(ModuleKind.LEADS).create(lead_data)
        self.records.update(prospect_id, {"status": "Converted", "lead_id": lead_id})
        return lead_id

    def convert_to_contact(self, prospect_id: str, account_id: str, extra: dict[str, Any] | None = None) -> str:
        """
        Create a contact under an existing account from a prospect.

        Raises:
            RecordNotFoundError: If the prospect or the account does not exist
        """
        prospect = self._require(prospect_id)
        if not self.directory.exists(ModuleKind.ACCOUNTS, account_id):
            raise RecordNotFoundError(
                f"Account with ID '{account_id}' does not exist",
                module=ModuleKind.ACCOUNTS.value,
                record_id=account_id,
            )

        contact_data = dict(extra or {})
        for field in SHARED_FIELDS:
            if not is_blank(prospect.get(field)):
                contact_data[field] = prospect[field]
        contact_data["account_id"] = account_id

        contact_id = self.directory.records(ModuleKind.CONTACTS).create(contact_data)
        self.records.update(prospect_id, {"status": "Converted"})
        return contact_id

    def get_conversion_rate(self, date_range: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Share of prospects with status Converted.

        Args:
            date_range: Optional criterion on date_entered, e.g. ``between(a, b)``
        """
        criteria = {"date_entered": date_range} if date_range else None
        prospects = self.records.search(criteria, ["status"], limit=1000)
        converted = sum(1 for p in prospects if p.get("status") == "Converted")
        rate = converted / len(prospects) * 100 if prospects else 0
        return {
            "total_prospects": len(prospects),
            "converted_prospects": converted,
            "conversion_rate_percentage": round(rate, 2),
            "period": date_range or "all_time",
        }

    def bulk_import(self, prospects: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Create prospects one by one, collecting failures per row.

        Authentication failures still propagate.

        Returns:
            {"successful": n, "failed": n, "errors": [{"index", "data", "error"}]}
        """
        results: dict[str, Any] = {"successful": 0, "failed": 0, "errors": []}
        for index, data in enumerate(prospects):
            try:
                self.records.create(data)
            except AuthenticationError:
                raise
            except ProtocolError as e:
                logger.warning(f"Prospect row {index} rejected: {e}")
                results["failed"] += 1
                results["errors"].append({"index": index, "data": data, "error": str(e)})
            else:
                results["successful"] += 1
        return results
