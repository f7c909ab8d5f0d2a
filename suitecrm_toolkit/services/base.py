"""
Generic CRUD and validation for one SuiteCRM module.

A ModuleService is parameterized entirely by a ModuleSpec; module specific
behaviour arrives through the ModuleSpec hooks rather than subclassing.
"""

import logging
from collections import Counter
from typing import Any, Iterable, Mapping

from ..core.errors import (
    AuthenticationError,
    ProtocolError,
    RecordNotFoundError,
    ValidationError,
)
from ..core.models import ModuleSpec
from ..core.validation import check_required, check_rules, is_blank

logger = logging.getLogger(__name__)


def count_by(records: Iterable[Mapping[str, Any]], field: str, missing: str = "Unknown") -> dict[str, int]:
    """Count records by the value of one field."""
    counts = Counter(
        missing if is_blank(record.get(field)) else str(record.get(field))
        for record in records
    )
    return dict(counts)


class ModuleService:
    """
    Validated create/update/find/search/delete for one module.

    Write pipeline: defaults (create only), required fields (create only)
    and field rules, relationship existence, business rules, preprocess,
    then the network call. Every validation stage runs before anything is
    sent, so a ValidationError means nothing was written.
    """

    def __init__(self, api, spec: ModuleSpec):
        """
        Args:
            api: Authenticated SuiteCRMClient (or anything with its interface)
            spec: Module specification
        """
        self.api = api
        self.spec = spec

    @property
    def module_name(self) -> str:
        return self.spec.module_name

    def create(self, data: Mapping[str, Any]) -> str:
        """
        Validate and create a record.

        Returns:
            The new record's id

        Raises:
            ValidationError: If any validation stage fails
        """
        prepared = self._prepare(data, is_create=True)
        record_id = self.api.create_record(self.module_name, prepared)
        logger.debug(f"Created {self.module_name} record {record_id}")
        return record_id

    def update(self, record_id: str, data: Mapping[str, Any]) -> bool:
        """Validate and apply a partial update."""
        prepared = self._prepare(data, is_create=False)
        return self.api.update_record(self.module_name, record_id, prepared)

    def find_by_id(self, record_id: str, fields: list[str] | None = None) -> dict[str, Any] | None:
        """Fetch one record; None passes through unchanged."""
        record = self.api.get_record(self.module_name, record_id, fields)
        if record is None:
            return None
        return self.spec.postprocess(record)

    def search(
        self,
        criteria: Mapping[str, Any] | str | None = None,
        fields: list[str] | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """Search the module; every record goes through postprocess."""
        records = self.api.search_records(self.module_name, criteria, fields, limit, offset)
        return [self.spec.postprocess(record) for record in records]

    def delete(self, record_id: str) -> bool:
        return self.api.delete_record(self.module_name, record_id)

    def count(self, criteria: Mapping[str, Any] | str | None = None) -> int:
        return self.api.count_records(self.module_name, criteria)

    def statistics(
        self,
        *group_fields: str,
        criteria: Mapping[str, Any] | str | None = None,
        limit: int = 1000,
    ) -> dict[str, Any]:
        """
        Count records, overall and grouped by each of ``group_fields``.

        Returns:
            {"total": n, "by_<field>": {value: count}, ...}
        """
        records = self.search(criteria, list(group_fields), limit=limit)
        stats: dict[str, Any] = {"total": len(records)}
        for field in group_fields:
            stats[f"by_{field}"] = count_by(records, field)
        return stats

    # ===== VALIDATION =====

    def validate(self, data: Mapping[str, Any], is_create: bool = True) -> list[str]:
        """Return required-field and rule violations without raising."""
        errors = []
        if is_create:
            errors.extend(check_required(data, self.spec.required_fields))
        errors.extend(check_rules(data, self.spec.rules))
        return errors

    def validate_relationships(self, data: Mapping[str, Any]) -> list[str]:
        """
        Check that every referenced record exists.

        Authentication failures propagate; any other protocol failure is
        reported as a violation message.
        """
        errors = []
        for field, kind in self.spec.relationships.items():
            value = data.get(field)
            if is_blank(value):
                continue
            message = self.check_reference(field, kind.value, value)
            if message:
                errors.append(message)
        return errors

    def check_reference(self, field: str, module: str, record_id: str) -> str | None:
        """Return a violation message if 'record_id' cannot be found in 'module'."""
        try:
            record = self.api.get_record(module, record_id, ["id"])
        except AuthenticationError:
            raise
        except RecordNotFoundError:
            record = None
        except ProtocolError as e:
            return f"Unable to validate {module} record '{record_id}' for field '{field}': {e}"
        if record is None:
            return f"Referenced {module} record '{record_id}' does not exist for field '{field}'"
        return None

    def _prepare(self, data: Mapping[str, Any], is_create: bool) -> dict[str, Any]:
        prepared = dict(data)
        if is_create:
            for field, value in self.spec.defaults.items():
                if is_blank(prepared.get(field)):
                    prepared[field] = value

        errors = self.validate(prepared, is_create)
        if errors:
            raise ValidationError(
                f"Validation failed for {self.module_name}", errors, module=self.module_name
            )

        errors = self.validate_relationships(prepared)
        if errors:
            raise ValidationError(
                f"Relationship validation failed for {self.module_name}",
                errors,
                module=self.module_name,
            )

        errors = self.spec.business_rules(self, prepared, is_create)
        if errors:
            raise ValidationError(
                f"Business rule validation failed for {self.module_name}",
                errors,
                module=self.module_name,
            )

        return self.spec.preprocess(prepared)
