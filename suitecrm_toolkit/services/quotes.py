"""AOS_Quotes module."""

from datetime import date, timedelta
from typing import Any

from ..core.errors import RecordNotFoundError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import less_than, none_of
from ..core.registry import register_module
from ..core.validation import is_blank
from .base import count_by
from .directory import ServiceDirectory
from .formatting import (
    normalize_date,
    normalize_datetime,
    normalize_fields,
    parse_datetime,
    timestamp,
    to_float,
)

QUOTE_STAGES = [
    "Draft", "Negotiation", "Delivered", "On Hold", "Confirmed",
    "Closed Accepted", "Closed Lost", "Closed Dead",
]
OPEN_STAGES = ("Draft", "Negotiation", "Delivered", "On Hold", "Confirmed")
LOST_STAGES = ("Closed Lost", "Closed Dead")
CLOSED_STAGES = ("Closed Accepted",) + LOST_STAGES

ADDRESS_RULES = {
    f"{kind}_address_{part}": {"max_length": length}
    for kind in ("billing", "shipping")
    for part, length in (
        ("street", 150), ("city", 100), ("state", 100), ("postalcode", 20), ("country", 255),
    )
}

# Quote fields copied onto the invoice created by convert_to_order
ORDER_FIELDS = (
    "billing_account_id", "billing_contact_id",
    "shipping_account_id", "shipping_contact_id",
    *ADDRESS_RULES,
    "currency_id", "subtotal_amount", "total_amount", "description",
)


def check_expiration(service, data: dict[str, Any], is_create: bool) -> list[str]:
    expiration = parse_datetime(data.get("expiration"))
    if expiration and expiration.date() < date.today():
        return ["Quote expiration date cannot be in the past"]
    return []


def preprocess_quote(data: dict[str, Any]) -> dict[str, Any]:
    data = to_float(data, ("subtotal_amount", "subtotal_amount_usdollar", "total_amount"))
    data = normalize_fields(data, ("expiration",), normalize_date)
    return normalize_fields(data, ("date_quote_expected_close",), normalize_datetime)


QUOTES = register_module(ModuleSpec(
    kind=ModuleKind.QUOTES,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "stage": {"in": QUOTE_STAGES},
        "term": {"max_length": 100},
        "subtotal_amount": {"min": 0},
        "total_amount": {"min": 0},
        "description": {"max_length": 65535},
        **ADDRESS_RULES,
    },
    relationships={
        "billing_account_id": ModuleKind.ACCOUNTS,
        "shipping_account_id": ModuleKind.ACCOUNTS,
        "billing_contact_id": ModuleKind.CONTACTS,
        "shipping_contact_id": ModuleKind.CONTACTS,
        "opportunity_id": ModuleKind.OPPORTUNITIES,
        "assigned_user_id": ModuleKind.USERS,
    },
    defaults={"stage": "Draft"},
    business_rules=check_expiration,
    preprocess=preprocess_quote,
))


class QuoteService:
    """Convenience operations for AOS_Quotes."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.QUOTES)

    def create_quote(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_quote(self, quote_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(quote_id, data)

    def find_quote_by_id(self, quote_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(quote_id)

    def find_quotes_by_stage(self, stage: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"stage": stage}, limit=limit, offset=offset)

    def find_quotes_by_account(self, account_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"billing_account_id": account_id}, limit=limit, offset=offset)

    def find_quotes_by_contact(self, contact_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"billing_contact_id": contact_id}, limit=limit, offset=offset)

    def find_expiring_quotes(
        self,
        days: int = 30,
        limit: int = 20,
        offset: int = 0,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        """Open quotes whose expiration falls before ``today + days``."""
        cutoff = (today or date.today()) + timedelta(days=days)
        return self.records.search(
            {"expiration": less_than(cutoff.isoformat()), "stage": none_of(CLOSED_STAGES)},
            limit=limit,
            offset=offset,
        )

    def find_expired_quotes(self, limit: int = 20, offset: int = 0, today: date | None = None) -> list[dict[str, Any]]:
        return self.find_expiring_quotes(0, limit, offset, today)

    def convert_to_order(self, quote_id: str, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Accept a quote and raise an invoice from it.

        Args:
            quote_id: Quote to convert
            overrides: Invoice fields that replace the copied quote values

        Returns:
            {"quote_id", "invoice_id", "converted", "conversion_date"}

        Raises:
            RecordNotFoundError: If the quote does not exist
        """
        quote = self.records.find_by_id(quote_id)
        if quote is None:
            raise RecordNotFoundError(
                f"Quote not found: {quote_id}", module=self.records.module_name, record_id=quote_id
            )

        invoice_data = {field: quote[field] for field in ORDER_FIELDS if not is_blank(quote.get(field))}
        invoice_data["name"] = quote.get("name") or "Order from Quote"
        if not is_blank(quote.get("number")):
            invoice_data["quote_number"] = quote["number"]
        invoice_data.update(overrides or {})

        invoice_id = self.directory.records(ModuleKind.INVOICES).create(invoice_data)
        self.records.update(quote_id, {"stage": "Closed Accepted", "invoice_status": "Invoiced"})

        return {
            "quote_id": quote_id,
            "invoice_id": invoice_id,
            "converted": True,
            "conversion_date": timestamp(),
        }

    def get_quote_statistics(self) -> dict[str, Any]:
        quotes = self.records.search(None, ["stage", "total_amount"], limit=1000)
        amounts = [float(q.get("total_amount") or 0) for q in quotes]
        positive = [amount for amount in amounts if amount > 0]
        stages = [q.get("stage") for q in quotes]
        return {
            "total": len(quotes),
            "by_stage": count_by(quotes, "stage"),
            "total_value": sum(positive),
            "average_value": sum(positive) / len(positive) if positive else 0.0,
            "open_quotes": sum(1 for stage in stages if stage in OPEN_STAGES),
            "closed_won": stages.count("Closed Accepted"),
            "closed_lost": sum(1 for stage in stages if stage in LOST_STAGES),
        }
