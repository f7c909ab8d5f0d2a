"""Accounts module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import contains
from ..core.registry import register_module
from .directory import ServiceDirectory
from .formatting import ensure_url_scheme, format_phones

ACCOUNT_TYPES = ["Customer", "Partner", "Reseller", "Vendor", "Other"]

INDUSTRIES = [
    "Apparel", "Banking", "Biotechnology", "Chemicals", "Communications",
    "Construction", "Consulting", "Education", "Electronics", "Energy",
    "Engineering", "Entertainment", "Environmental", "Finance", "Government",
    "Healthcare", "Hospitality", "Insurance", "Machinery", "Manufacturing",
    "Media", "Not For Profit", "Recreation", "Retail", "Shipping",
    "Technology", "Telecommunications", "Transportation", "Utilities", "Other",
]

# Relationship fields every user-owned module carries
USER_REFERENCES = {
    "assigned_user_id": ModuleKind.USERS,
    "created_by": ModuleKind.USERS,
    "modified_user_id": ModuleKind.USERS,
}


def preprocess_account(data: dict[str, Any]) -> dict[str, Any]:
    if isinstance(data.get("name"), str):
        data["name"] = data["name"].strip()
    format_phones(data, ("phone_office", "phone_fax", "phone_alternate"))
    if data.get("website"):
        data["website"] = ensure_url_scheme(data["website"])
    return data


ACCOUNTS = register_module(ModuleSpec(
    kind=ModuleKind.ACCOUNTS,
    required_fields=("name",),
    rules={
        "name": {"max_length": 150},
        "account_type": {"in": ACCOUNT_TYPES},
        "industry": {"in": INDUSTRIES},
        "phone_office": {"phone": True},
        "phone_fax": {"phone": True},
        "phone_alternate": {"phone": True},
        "website": {"max_length": 255},
        "email1": {"email": True},
        "billing_address_postalcode": {"max_length": 20},
        "shipping_address_postalcode": {"max_length": 20},
        "sic_code": {"max_length": 10},
        "ticker_symbol": {"max_length": 10},
    },
    relationships={**USER_REFERENCES, "parent_id": ModuleKind.ACCOUNTS},
    preprocess=preprocess_account,
))


class AccountService:
    """Convenience operations for Accounts."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.ACCOUNTS)

    def create_account(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_account(self, account_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(account_id, data)

    def find_account_by_id(self, account_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(account_id)

    def find_accounts_by_name(self, name: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"name": contains(name)}, limit=limit, offset=offset)

    def find_accounts_by_type(self, account_type: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"account_type": account_type}, limit=limit, offset=offset)

    def find_accounts_by_industry(self, industry: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"industry": industry}, limit=limit, offset=offset)

    def find_accounts_by_email(self, email: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"email1": email}, limit=limit, offset=offset)
