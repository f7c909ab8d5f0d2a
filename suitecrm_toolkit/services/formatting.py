"""Formatting helpers shared by the module services."""

import mimetypes
import re
from datetime import date, datetime
from typing import Any

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"

_DATETIME_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_PHONE_STRIP_RE = re.compile(r"[^\d+\s\-().]")

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M:%S",
    "%Y/%m/%d",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d %B %Y",
    "%B %d, %Y",
)


def parse_datetime(value: Any) -> datetime | None:
    """Parse the date formats SuiteCRM and its users commonly send."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not value:
        return None

    text = str(value).strip()
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def normalize_datetime(value: Any) -> Any:
    """
    Normalize to ``YYYY-MM-DD HH:MM:SS``.

    A bare date becomes midnight; unparseable values are returned unchanged
    so field validation on the server can report them.
    """
    if isinstance(value, str):
        text = value.strip()
        if _DATETIME_RE.match(text):
            return text
        if _DATE_RE.match(text):
            return f"{text} 00:00:00"
    parsed = parse_datetime(value)
    return parsed.strftime(DATETIME_FORMAT) if parsed else value


def normalize_date(value: Any) -> Any:
    """Normalize to ``YYYY-MM-DD``; unparseable values are returned unchanged."""
    if isinstance(value, str) and _DATE_RE.match(value.strip()):
        return value.strip()
    parsed = parse_datetime(value)
    return parsed.strftime(DATE_FORMAT) if parsed else value


def normalize_fields(data: dict[str, Any], fields: tuple[str, ...], normalizer) -> dict[str, Any]:
    for field in fields:
        if data.get(field):
            data[field] = normalizer(data[field])
    return data


def format_phone(value: str) -> str:
    """Drop characters that cannot appear in a phone number."""
    return _PHONE_STRIP_RE.sub("", str(value)).strip()


def format_phones(data: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    for field in fields:
        if data.get(field):
            data[field] = format_phone(data[field])
    return data


def ensure_url_scheme(url: str) -> str:
    if url and not re.match(r"^https?://", url, re.IGNORECASE):
        return f"http://{url}"
    return url


def full_name(*parts: Any) -> str:
    return " ".join(str(p).strip() for p in parts if p and str(p).strip())


def to_float(data: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    """Coerce numeric fields to float, leaving unparseable values alone."""
    for field in fields:
        value = data.get(field)
        if value is None or value == "":
            continue
        try:
            data[field] = float(value)
        except (TypeError, ValueError):
            pass
    return data


def to_flag(value: Any) -> str:
    """SuiteCRM checkbox value ('1' or '0')."""
    if isinstance(value, str):
        return "1" if value.strip().lower() in ("1", "true", "yes", "on") else "0"
    return "1" if value else "0"


def guess_mime_type(filename: str) -> str:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type or "application/octet-stream"


def increment_revision(revision: Any) -> str:
    """Bump the minor part of a revision: 1.0 -> 1.1, 2 -> 2.1."""
    text = str(revision or "1.0")
    major, _, minor = text.partition(".")
    try:
        return f"{int(major)}.{int(minor or 0) + 1}"
    except ValueError:
        return f"{text}.1"


def timestamp(moment: datetime | None = None) -> str:
    return (moment or datetime.now()).strftime(DATETIME_FORMAT)


def append_entry(existing: Any, tag: str, message: str, moment: datetime | None = None) -> str:
    """Append a tagged, timestamped line such as '[CANCELLED] 2024-01-01 09:00:00: reason'."""
    entry = f"[{tag}] {timestamp(moment)}: {message}" if tag else f"{timestamp(moment)}: {message}"
    existing = str(existing or "").rstrip()
    return f"{existing}\n\n{entry}" if existing else entry
