"""Leads module."""

from typing import Any

from ..core.errors import RecordNotFoundError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import contains
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import format_phones, full_name

LEAD_SOURCES = [
    "Cold Call", "Existing Customer", "Self Generated", "Employee",
    "Partner", "Public Relations", "Direct Mail", "Conference",
    "Trade Show", "Web Site", "Word of mouth", "Email", "Campaign",
    "Other",
]

SALUTATIONS = ["Mr.", "Ms.", "Mrs.", "Dr.", "Prof."]

PHONE_FIELDS = ("phone_home", "phone_mobile", "phone_work", "phone_other", "phone_fax", "assistant_phone")

# Lead fields copied onto a contact on conversion
CONVERSION_FIELDS = (
    "first_name", "last_name", "title", "department",
    "phone_work", "phone_mobile", "phone_home", "phone_other", "phone_fax",
    "email1", "primary_address_street", "primary_address_city",
    "primary_address_state", "primary_address_postalcode",
    "primary_address_country", "description",
)


def preprocess_lead(data: dict[str, Any]) -> dict[str, Any]:
    if "name" not in data and ("first_name" in data or "last_name" in data):
        data["name"] = full_name(data.get("first_name"), data.get("last_name"))
    return format_phones(data, PHONE_FIELDS)


LEADS = register_module(ModuleSpec(
    kind=ModuleKind.LEADS,
    required_fields=("last_name",),
    rules={
        "first_name": {"max_length": 100},
        "last_name": {"max_length": 100},
        "title": {"max_length": 100},
        "department": {"max_length": 100},
        "account_name": {"max_length": 150},
        "phone_home": {"phone": True},
        "phone_mobile": {"phone": True},
        "phone_work": {"phone": True},
        "phone_other": {"phone": True},
        "phone_fax": {"phone": True},
        "email1": {"email": True},
        "primary_address_street": {"max_length": 150},
        "primary_address_city": {"max_length": 100},
        "primary_address_postalcode": {"max_length": 20},
        "primary_address_state": {"max_length": 100},
        "primary_address_country": {"max_length": 255},
        "alt_address_street": {"max_length": 150},
        "alt_address_city": {"max_length": 100},
        "alt_address_postalcode": {"max_length": 20},
        "alt_address_state": {"max_length": 100},
        "alt_address_country": {"max_length": 255},
        "lead_source": {"in": LEAD_SOURCES},
        "salutation": {"in": SALUTATIONS},
        "assistant": {"max_length": 75},
        "assistant_phone": {"phone": True},
    },
    relationships={
        **USER_REFERENCES,
        "account_id": ModuleKind.ACCOUNTS,
        "contact_id": ModuleKind.CONTACTS,
        "campaign_id": ModuleKind.CAMPAIGNS,
    },
    preprocess=preprocess_lead,
))


class LeadService:
    """Convenience operations for Leads."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.LEADS)

    def create_lead(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_lead(self, lead_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(lead_id, data)

    def find_lead_by_id(self, lead_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(lead_id)

    def find_leads_by_email(self, email: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"email1": email}, limit=limit, offset=offset)

    def find_leads_by_name(
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

    def find_leads_by_source(self, lead_source: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"lead_source": lead_source}, limit=limit, offset=offset)

    def find_leads_by_account(self, account_name: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"account_name": contains(account_name)}, limit=limit, offset=offset)

    def convert_to_contact(self, lead_id: str, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Create a contact from a lead and mark the lead as converted.

        Args:
            lead_id: Lead to convert
            overrides: Contact fields that replace the copied lead values

        Returns:
            {"lead_id", "contact_id", "converted"}

        Raises:
            RecordNotFoundError: If the lead does not exist
        """
        lead = self.records.find_by_id(lead_id)
        if lead is None:
            raise RecordNotFoundError(
                f"Lead not found: {lead_id}", module=self.records.module_name, record_id=lead_id
            )

        contact_data = {field: lead[field] for field in CONVERSION_FIELDS if lead.get(field)}
        contact_data.update(overrides or {})

        contact_id = self.directory.records(ModuleKind.CONTACTS).create(contact_data)
        self.records.update(lead_id, {
            "status": "Converted",
            "converted": "1",
            "contact_id": contact_id,
        })

        return {"lead_id": lead_id, "contact_id": contact_id, "converted": True}
