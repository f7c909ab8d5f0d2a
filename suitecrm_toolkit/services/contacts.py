"""Contacts module."""

import re
from typing import Any

from email_validator import EmailNotValidError, validate_email

from ..core.errors import ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import any_of, contains
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import format_phones, full_name

CANADIAN_POSTAL_CODE = re.compile(r"^[A-Z]\d[A-Z]\d[A-Z]\d$")

SUMMARY_FIELDS = ["id", "first_name", "last_name", "email1", "phone_work", "account_name"]

DETAIL_FIELDS = [
    "id", "first_name", "last_name", "email1", "phone_work", "phone_mobile",
    "primary_address_street", "primary_address_city", "primary_address_state",
    "primary_address_postalcode", "primary_address_country", "account_name",
    "title", "department", "birthdate", "description",
]


def check_contact(service, data: dict[str, Any], is_create: bool) -> list[str]:
    errors = []
    if is_create and not (data.get("first_name") or data.get("last_name")):
        errors.append("Either first name or last name is required")

    postal_code = data.get("primary_address_postalcode")
    if postal_code:
        normalized = str(postal_code).replace(" ", "").upper()
        if not CANADIAN_POSTAL_CODE.match(normalized):
            errors.append("Invalid Canadian postal code format")
    return errors


def preprocess_contact(data: dict[str, Any]) -> dict[str, Any]:
    if "email" in data:
        email = data.pop("email")
        data.setdefault("email1", email)
    if data.get("first_name") or data.get("last_name"):
        data["name"] = full_name(data.get("first_name"), data.get("last_name"))
    format_phones(data, ("phone_work", "phone_mobile", "phone_home", "phone_other", "phone_fax"))
    return data


def postprocess_contact(record: dict[str, Any]) -> dict[str, Any]:
    record["full_name"] = full_name(record.get("first_name"), record.get("last_name"))
    return record


CONTACTS = register_module(ModuleSpec(
    kind=ModuleKind.CONTACTS,
    rules={
        "first_name": {"max_length": 100},
        "last_name": {"max_length": 100},
        "title": {"max_length": 100},
        "department": {"max_length": 255},
        "email": {"email": True},
        "email1": {"email": True},
        "phone_work": {"phone": True},
        "phone_mobile": {"phone": True},
        "phone_home": {"phone": True},
        "phone_other": {"phone": True},
        "phone_fax": {"phone": True},
        "primary_address_postalcode": {"max_length": 20},
    },
    relationships={
        **USER_REFERENCES,
        "account_id": ModuleKind.ACCOUNTS,
        "reports_to_id": ModuleKind.CONTACTS,
        "campaign_id": ModuleKind.CAMPAIGNS,
    },
    business_rules=check_contact,
    preprocess=preprocess_contact,
    postprocess=postprocess_contact,
))


class ContactService:
    """Convenience operations for Contacts."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.CONTACTS)

    def create_contact(self, data: dict[str, Any]) -> str:
        """Create a contact; ``email`` is accepted as an alias of ``email1``."""
        return self.records.create(data)

    def update_contact(self, contact_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(contact_id, data)

    def find_contact_by_email(self, email: str) -> dict[str, Any] | None:
        """
        Find the first contact with the given primary email.

        Raises:
            ValidationError: If ``email`` is not a valid address
        """
        try:
            validate_email(email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(
                "Invalid email address format", [str(e)], module=self.records.module_name
            ) from e

        contacts = self.records.search({"email1": email}, SUMMARY_FIELDS, limit=1)
        return contacts[0] if contacts else None

    def get_contact_details(self, contact_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(contact_id, DETAIL_FIELDS)

    def search_contacts(self, term: str, limit: int = 20) -> list[dict[str, Any]]:
        """Match ``term`` against first, last and account name."""
        query = any_of({
            "first_name": contains(term),
            "last_name": contains(term),
            "account_name": contains(term),
        })
        return self.records.search(query, SUMMARY_FIELDS, limit=limit)
