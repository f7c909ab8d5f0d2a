"""
Field rule evaluation.

Each rule check receives the field name, the value and the rule argument
and returns an error message, or None when the value is acceptable.
"""

import re
from typing import Any, Callable, Iterable
from urllib.parse import urlsplit

from email_validator import EmailNotValidError, validate_email

PHONE_PATTERN = re.compile(r"^[\d\s\-+().extEXT]+$")


def _check_max_length(field: str, value: Any, limit: int) -> str | None:
    if len(str(value)) > limit:
        return f"Field '{field}' cannot exceed {limit} characters"
    return None


def _check_in(field: str, value: Any, options: Iterable[Any]) -> str | None:
    options = list(options)
    if value in options or str(value) in options:
        return None
    return f"Field '{field}' must be one of: {', '.join(str(o) for o in options)}"


def _check_email(field: str, value: Any, enabled: bool) -> str | None:
    if not enabled:
        return None
    try:
        validate_email(str(value), check_deliverability=False)
    except EmailNotValidError:
        return f"Field '{field}' must be a valid email address"
    return None


def _check_phone(field: str, value: Any, enabled: bool) -> str | None:
    if enabled and not PHONE_PATTERN.match(str(value)):
        return f"Field '{field}' must be a valid phone number"
    return None


def _as_number(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _check_min(field: str, value: Any, bound: float) -> str | None:
    number = _as_number(value)
    if number is None:
        return f"Field '{field}' must be a number"
    if number < bound:
        return f"Field '{field}' must be at least {bound}"
    return None


def _check_max(field: str, value: Any, bound: float) -> str | None:
    number = _as_number(value)
    if number is None:
        return f"Field '{field}' must be a number"
    if number > bound:
        return f"Field '{field}' cannot exceed {bound}"
    return None


def _check_pattern(field: str, value: Any, pattern: str) -> str | None:
    if not re.fullmatch(pattern, str(value)):
        return f"Field '{field}' has an invalid format"
    return None


def _check_url(field: str, value: Any, enabled: bool) -> str | None:
    if not enabled:
        return None
    parts = urlsplit(str(value))
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return f"Field '{field}' must be a valid URL"
    return None


RULE_CHECKS: dict[str, Callable[[str, Any, Any], str | None]] = {
    "max_length": _check_max_length,
    "in": _check_in,
    "email": _check_email,
    "phone": _check_phone,
    "min": _check_min,
    "max": _check_max,
    "pattern": _check_pattern,
    "url": _check_url,
}


def is_blank(value: Any) -> bool:
    """True for values SuiteCRM treats as not provided."""
    return value is None or value == ""


def check_required(data: dict[str, Any], required_fields: Iterable[str]) -> list[str]:
    """Return a message for every required field that is absent or empty."""
    return [
        f"Field '{name}' is required"
        for name in required_fields
        if is_blank(data.get(name))
    ]


def check_rules(data: dict[str, Any], rules: dict[str, dict[str, Any]]) -> list[str]:
    """
    Evaluate every rule for every field present in ``data``.

    Only None counts as absent here; an empty string is a value and must
    satisfy the field's rules.

    All violations are collected; evaluation never stops at the first one.

    Args:
        data: Field values to check
        rules: Mapping of field name to {rule name: rule argument}

    Returns:
        List of human-readable violation messages (empty when valid)
    """
    errors = []
    for field, field_rules in rules.items():
        value = data.get(field)
        if value is None:
            continue
        for rule, argument in field_rules.items():
            message = RULE_CHECKS[rule](field, value, argument)
            if message:
                errors.append(message)
    return errors
