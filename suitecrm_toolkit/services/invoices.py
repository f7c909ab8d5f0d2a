"""AOS_Invoices module."""

from datetime import date, timedelta
from typing import Any

from ..core.errors import RecordNotFoundError, ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import between, less_than, none_of
from ..core.registry import register_module
from .base import count_by
from .directory import ServiceDirectory
from .formatting import append_entry, normalize_date, normalize_fields, parse_datetime, to_float
from .quotes import ADDRESS_RULES

INVOICE_STATUSES = ["Draft", "Sent", "Paid", "Unpaid", "Cancelled"]
SETTLED_STATUSES = ("Paid", "Cancelled")
AMOUNT_FIELDS = ("subtotal_amount", "tax_amount", "total_amount", "discount_amount")


def preprocess_invoice(data: dict[str, Any]) -> dict[str, Any]:
    data = to_float(data, AMOUNT_FIELDS)
    return normalize_fields(data, ("due_date", "invoice_date"), normalize_date)


INVOICES = register_module(ModuleSpec(
    kind=ModuleKind.INVOICES,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "number": {"max_length": 255},
        "quote_number": {"max_length": 255},
        "status": {"in": INVOICE_STATUSES},
        **{field: {"min": 0} for field in AMOUNT_FIELDS},
        **ADDRESS_RULES,
    },
    relationships={
        "billing_account_id": ModuleKind.ACCOUNTS,
        "shipping_account_id": ModuleKind.ACCOUNTS,
        "billing_contact_id": ModuleKind.CONTACTS,
        "shipping_contact_id": ModuleKind.CONTACTS,
        "assigned_user_id": ModuleKind.USERS,
    },
    defaults={"status": "Draft"},
    preprocess=preprocess_invoice,
))


class InvoiceService:
    """Convenience operations for AOS_Invoices."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.INVOICES)

    def create_invoice(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_invoice(self, invoice_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(invoice_id, data)

    def find_invoice_by_id(self, invoice_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(invoice_id)

    def find_invoices_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_invoices_by_account(self, account_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"billing_account_id": account_id}, limit=limit, offset=offset)

    def find_overdue_invoices(self, limit: int = 20, offset: int = 0, today: date | None = None) -> list[dict[str, Any]]:
        today = today or date.today()
        return self.records.search(
            {"due_date": less_than(today.isoformat()), "status": none_of(SETTLED_STATUSES)},
            limit=limit,
            offset=offset,
        )

    def find_invoices_due_soon(
        self,
        days: int = 7,
        limit: int = 20,
        offset: int = 0,
        today: date | None = None,
    ) -> list[dict[str, Any]]:
        today = today or date.today()
        due = today + timedelta(days=days)
        return self.records.search(
            {"due_date": between(today.isoformat(), due.isoformat()), "status": none_of(SETTLED_STATUSES)},
            limit=limit,
            offset=offset,
        )

    def _require(self, invoice_id: str) -> dict[str, Any]:
        invoice = self.records.find_by_id(invoice_id, ["id", "description", "status"])
        if invoice is None:
            raise RecordNotFoundError(
                f"Invoice not found: {invoice_id}", module=self.records.module_name, record_id=invoice_id
            )
        return invoice

    def record_payment(
        self,
        invoice_id: str,
        amount: float,
        payment_date: str,
        payment_method: str | None = None,
    ) -> bool:
        """Mark an invoice Paid and note the payment in its description."""
        if amount <= 0:
            raise ValidationError(
                "Invalid payment", ["Payment amount must be greater than 0"], module=self.records.module_name
            )
        if parse_datetime(payment_date) is None:
            raise ValidationError(
                "Invalid payment", ["Invalid payment date format"], module=self.records.module_name
            )
        invoice = self._require(invoice_id)

        note = f"Payment recorded: {amount:.2f} on {payment_date}"
        if payment_method:
            note += f" via {payment_method}"
        return self.records.update(invoice_id, {
            "status": "Paid",
            "description": append_entry(invoice.get("description"), "PAYMENT", note),
        })

    def mark_as_sent(self, invoice_id: str) -> bool:
        return self.records.update(invoice_id, {"status": "Sent"})

    def cancel_invoice(self, invoice_id: str, reason: str) -> bool:
        invoice = self._require(invoice_id)
        return self.records.update(invoice_id, {
            "status": "Cancelled",
            "description": append_entry(invoice.get("description"), "CANCELLED", reason),
        })

    def get_invoice_statistics(self, today: date | None = None) -> dict[str, Any]:
        today = today or date.today()
        invoices = self.records.search(None, ["status", "total_amount", "due_date"], limit=1000)

        stats: dict[str, Any] = {
            "total": len(invoices),
            "by_status": count_by(invoices, "status"),
            "total_value": 0.0,
            "paid_value": 0.0,
            "outstanding_value": 0.0,
            "overdue_count": 0,
            "overdue_value": 0.0,
        }
        for invoice in invoices:
            amount = float(invoice.get("total_amount") or 0)
            status = invoice.get("status")
            stats["total_value"] += amount
            if status == "Paid":
                stats["paid_value"] += amount
            elif status != "Cancelled":
                stats["outstanding_value"] += amount
                due = parse_datetime(invoice.get("due_date"))
                if due and due.date() < today:
                    stats["overdue_count"] += 1
                    stats["overdue_value"] += amount
        return stats
