"""
Search criteria compilation.

Criteria map field names to either a literal (equality) or an operator
descriptor ``{"operator": ..., "value": ...}``. The helpers at the bottom
build descriptors so callers rarely spell them out by hand.
"""

import re
from typing import Any, Iterable, Mapping

from .errors import ValidationError

FIELD_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_.]*$")

_COMPARISONS = {
    "equals": "=",
    "not_equals": "!=",
    "less_than": "<",
    "less_than_or_equal": "<=",
    "greater_than": ">",
    "greater_than_or_equal": ">=",
}


def quote(value: Any) -> str:
    """Render a value as a single-quoted SQL literal."""
    if isinstance(value, bool):
        value = int(value)
    text = str(value).replace("'", "''")
    return f"'{text}'"


def _like(value: Any, prefix: str, suffix: str) -> str:
    text = str(value).replace("'", "''")
    return f"'{prefix}{text}{suffix}'"


def _as_sequence(field: str, operator: str, value: Any) -> list[Any]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise ValidationError(
            "Invalid search criteria",
            [f"Operator '{operator}' on field '{field}' needs a list of values"],
        )
    return list(value)


def compile_condition(field: str, criterion: Any) -> str:
    """
    Compile one field criterion into a query fragment.

    Raises:
        ValidationError: If the field name is not a plain identifier, the
            operator is unknown or its value is malformed
    """
    if not isinstance(field, str) or not FIELD_NAME_PATTERN.fullmatch(field):
        raise ValidationError(
            "Invalid search criteria",
            [f"Invalid field name {field!r}"],
        )

    if not isinstance(criterion, Mapping) or "operator" not in criterion:
        return f"{field} = {quote(criterion)}"

    operator = criterion["operator"]
    value = criterion.get("value")

    if operator in _COMPARISONS:
        return f"{field} {_COMPARISONS[operator]} {quote(value)}"
    if operator == "contains":
        return f"{field} LIKE {_like(value, '%', '%')}"
    if operator == "starts_with":
        return f"{field} LIKE {_like(value, '', '%')}"
    if operator == "ends_with":
        return f"{field} LIKE {_like(value, '%', '')}"
    if operator == "between":
        bounds = _as_sequence(field, operator, value)
        if len(bounds) != 2:
            raise ValidationError(
                "Invalid search criteria",
                [f"Operator 'between' on field '{field}' needs exactly two values"],
            )
        return f"{field} BETWEEN {quote(bounds[0])} AND {quote(bounds[1])}"
    if operator in ("in", "not_in"):
        values = _as_sequence(field, operator, value)
        if not values:
            raise ValidationError(
                "Invalid search criteria",
                [f"Operator '{operator}' on field '{field}' needs at least one value"],
            )
        keyword = "IN" if operator == "in" else "NOT IN"
        return f"{field} {keyword} ({', '.join(quote(v) for v in values)})"
    if operator == "empty":
        return f"({field} IS NULL OR {field} = '')"
    if operator == "not_empty":
        return f"({field} IS NOT NULL AND {field} != '')"

    raise ValidationError(
        "Invalid search criteria",
        [f"Unsupported search operator '{operator}' for field '{field}'"],
    )


def build_search_query(criteria: Mapping[str, Any] | str | None) -> str:
    """
    Compile criteria into the query string of ``get_entry_list``.

    Conditions are joined with AND. A string is taken as an already
    compiled query and returned unchanged.
    """
    if not criteria:
        return ""
    if isinstance(criteria, str):
        return criteria
    return " AND ".join(compile_condition(f, c) for f, c in criteria.items())


def any_of(criteria: Mapping[str, Any]) -> str:
    """Compile criteria joined with OR, wrapped in parentheses."""
    if not criteria:
        return ""
    return "(" + " OR ".join(compile_condition(f, c) for f, c in criteria.items()) + ")"


def all_of(*queries: str) -> str:
    """Join already compiled fragments with AND, skipping empty ones."""
    return " AND ".join(q for q in queries if q)


def op(operator: str, value: Any = None) -> dict[str, Any]:
    return {"operator": operator, "value": value}


def not_equals(value: Any) -> dict[str, Any]:
    return op("not_equals", value)


def contains(value: Any) -> dict[str, Any]:
    return op("contains", value)


def starts_with(value: Any) -> dict[str, Any]:
    return op("starts_with", value)


def less_than(value: Any) -> dict[str, Any]:
    return op("less_than", value)


def greater_than(value: Any) -> dict[str, Any]:
    return op("greater_than", value)


def at_most(value: Any) -> dict[str, Any]:
    return op("less_than_or_equal", value)


def at_least(value: Any) -> dict[str, Any]:
    return op("greater_than_or_equal", value)


def between(low: Any, high: Any) -> dict[str, Any]:
    return op("between", [low, high])


def one_of(values: Iterable[Any]) -> dict[str, Any]:
    return op("in", list(values))


def none_of(values: Iterable[Any]) -> dict[str, Any]:
    return op("not_in", list(values))


def not_empty() -> dict[str, Any]:
    return op("not_empty")
