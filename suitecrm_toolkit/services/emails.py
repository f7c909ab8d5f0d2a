"""Emails module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import between, contains
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import PARENT_TYPES, check_parent
from .base import count_by
from .directory import ServiceDirectory
from .formatting import normalize_datetime, normalize_fields, timestamp

EMAIL_STATUSES = [
    "sent", "received", "draft", "archived", "read", "unread", "replied", "closed", "send_error",
]
EMAIL_TYPES = ["inbound", "outbound", "archived", "draft"]


def preprocess_email(data: dict[str, Any]) -> dict[str, Any]:
    return normalize_fields(data, ("date_sent", "date_received"), normalize_datetime)


EMAILS = register_module(ModuleSpec(
    kind=ModuleKind.EMAILS,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "description": {"max_length": 65535},
        "from_addr": {"max_length": 255, "email": True},
        "to_addrs": {"max_length": 255},
        "cc_addrs": {"max_length": 255},
        "bcc_addrs": {"max_length": 255},
        "subject": {"max_length": 255},
        "body": {"max_length": 65535},
        "status": {"in": EMAIL_STATUSES},
        "type": {"in": EMAIL_TYPES},
        "parent_type": {"in": PARENT_TYPES},
        "message_id": {"max_length": 255},
        "reply_to_addr": {"max_length": 255, "email": True},
        "intent": {"in": ["pick", "see", "do", "delegate", "file", "bounce"]},
        "mailbox_id": {"max_length": 255},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "draft", "type": "outbound"},
    business_rules=lambda service, data, is_create: check_parent(service, data),
    preprocess=preprocess_email,
))


class EmailService:
    """Convenience operations for Emails."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.EMAILS)

    def create_email(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def log_sent_email(self, data: dict[str, Any]) -> str:
        """Record an email that was sent outside SuiteCRM."""
        email = dict(data, status="sent", type="outbound")
        email.setdefault("date_sent", timestamp())
        return self.records.create(email)

    def log_received_email(self, data: dict[str, Any]) -> str:
        email = dict(data, status="received", type="inbound")
        email.setdefault("date_received", timestamp())
        return self.records.create(email)

    def update_email(self, email_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(email_id, data)

    def find_email_by_id(self, email_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(email_id)

    def find_emails_by_date_range(self, start_date: str, end_date: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(
            {"date_entered": between(f"{start_date} 00:00:00", f"{end_date} 23:59:59")},
            limit=limit,
            offset=offset,
        )

    def find_emails_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_emails_by_type(self, email_type: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"type": email_type}, limit=limit, offset=offset)

    def find_emails_by_assigned_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"assigned_user_id": user_id}, limit=limit, offset=offset)

    def find_emails_by_subject(self, subject: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"subject": contains(subject)}, limit=limit, offset=offset)

    def find_emails_from_sender(self, from_addr: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"from_addr": from_addr}, limit=limit, offset=offset)

    def find_emails_to_recipient(self, to_addr: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"to_addrs": contains(to_addr)}, limit=limit, offset=offset)

    def archive_email(self, email_id: str) -> bool:
        return self.records.update(email_id, {"status": "archived"})

    def mark_as_read(self, email_id: str) -> bool:
        return self.records.update(email_id, {"status": "read"})

    def get_email_statistics(self) -> dict[str, Any]:
        emails = self.records.search(None, ["status", "type"], limit=1000)
        by_status = count_by(emails, "status")
        by_type = count_by(emails, "type")
        stats: dict[str, Any] = {"total": len(emails), "by_status": by_status, "by_type": by_type}
        for status in ("sent", "received", "draft", "archived"):
            stats[status] = by_status.get(status, 0)
        for direction in ("inbound", "outbound"):
            stats[direction] = by_type.get(direction, 0)
        return stats
