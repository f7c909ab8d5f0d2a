"""Tests for the generic module service pipeline."""

from unittest.mock import Mock

import pytest

from suitecrm_toolkit.client.rest_client import SuiteCRMClient
from suitecrm_toolkit.core.errors import (
    AuthenticationError,
    CRMConnectionError,
    RecordNotFoundError,
    ValidationError,
)
from suitecrm_toolkit.core.models import ModuleKind, ModuleSpec
from suitecrm_toolkit.core.registry import list_modules
import suitecrm_toolkit.services  # noqa: F401  registers every module
from suitecrm_toolkit.services.base import ModuleService, count_by


def no_partner_banks(service, data, is_create):
    if data.get("industry") == "Banking" and data.get("account_type") == "Partner":
        return ["Banking accounts cannot be partners"]
    return []


def add_marker(data):
    data["preprocessed"] = True
    return data


def add_label(record):
    record["label"] = f"{record.get('name')} ({record.get('id')})"
    return record


@pytest.fixture
def spec():
    return ModuleSpec(
        kind=ModuleKind.ACCOUNTS,
        required_fields=("name",),
        rules={
            "name": {"max_length": 10},
            "email1": {"email": True},
            "account_type": {"in": ["Customer", "Partner"]},
        },
        relationships={"assigned_user_id": ModuleKind.USERS},
        defaults={"account_type": "Customer"},
        business_rules=no_partner_banks,
        preprocess=add_marker,
        postprocess=add_label,
    )


@pytest.fixture
def api():
    api = Mock(spec=SuiteCRMClient)
    api.create_record.return_value = "acc-1"
    api.update_record.return_value = True
    api.get_record.return_value = {"id": "user-1"}
    return api


@pytest.fixture
def service(api, spec):
    return ModuleService(api, spec)


# ===== Create Tests =====

def test_create_applies_defaults_and_preprocess(service, api):
    """Test the happy path through the whole pipeline."""
    record_id = service.create({"name": "Acme", "assigned_user_id": "user-1"})

    assert record_id == "acc-1"
    api.get_record.assert_called_once_with("Users", "user-1", ["id"])
    api.create_record.assert_called_once_with("Accounts", {
        "name": "Acme",
        "assigned_user_id": "user-1",
        "account_type": "Customer",
        "preprocessed": True,
    })


def test_create_keeps_explicit_values_over_defaults(service, api):
    """Test that defaults only fill blanks."""
    service.create({"name": "Acme", "account_type": "Partner"})

    sent = api.create_record.call_args[0][1]
    assert sent["account_type"] == "Partner"


def test_create_does_not_mutate_input(service):
    """Test that the caller's mapping is left alone."""
    data = {"name": "Acme"}

    service.create(data)

    assert data == {"name": "Acme"}


def test_missing_required_field_sends_nothing(service, api):
    """Test that a required-field failure happens before any call."""
    with pytest.raises(ValidationError) as exc_info:
        service.create({"industry": "Banking"})

    assert str(exc_info.value).startswith("Validation failed for Accounts")
    assert exc_info.value.errors == ["Field 'name' is required"]
    assert exc_info.value.module == "Accounts"
    api.create_record.assert_not_called()
    api.get_record.assert_not_called()


@pytest.mark.parametrize(
    "module_spec",
    [s for s in list_modules() if s.required_fields],
    ids=lambda s: s.module_name,
)
def test_every_module_rejects_empty_create(module_spec):
    """Test that each registered module validates required fields before any call."""
    api = Mock(spec=SuiteCRMClient)

    with pytest.raises(ValidationError) as exc_info:
        ModuleService(api, module_spec).create({})

    missing = [f for f in module_spec.required_fields if f not in module_spec.defaults]
    for field in missing:
        assert f"Field '{field}' is required" in exc_info.value.errors
    api.create_record.assert_not_called()
    api.get_record.assert_not_called()
    assert api.method_calls == []


def test_rule_violations_are_batched(service, api):
    """Test that every field violation is reported at once."""
    with pytest.raises(ValidationError) as exc_info:
        service.create({
            "name": "A very long account name",
            "email1": "not-an-email",
            "account_type": "Vendor",
        })

    assert len(exc_info.value.errors) == 3
    assert "Field 'name' cannot exceed 10 characters" in exc_info.value.errors
    assert "Field 'email1' must be a valid email address" in exc_info.value.errors
    assert "Field 'account_type' must be one of: Customer, Partner" in exc_info.value.errors
    api.create_record.assert_not_called()


def test_missing_relationship(service, api):
    """Test that a dangling reference names the field and id."""
    api.get_record.return_value = None

    with pytest.raises(ValidationError) as exc_info:
        service.create({"name": "Acme", "assigned_user_id": "ghost"})

    assert str(exc_info.value).startswith("Relationship validation failed for Accounts")
    assert exc_info.value.errors == [
        "Referenced Users record 'ghost' does not exist for field 'assigned_user_id'"
    ]
    api.create_record.assert_not_called()


def test_relationship_not_found_error_is_missing(service, api):
    """Test that RecordNotFoundError during lookup counts as missing."""
    api.get_record.side_effect = RecordNotFoundError("gone", module="Users", record_id="old")

    with pytest.raises(ValidationError) as exc_info:
        service.create({"name": "Acme", "assigned_user_id": "old"})

    assert "does not exist" in exc_info.value.errors[0]


def test_relationship_lookup_failure_is_reported(service, api):
    """Test that other protocol failures become violation messages."""
    api.get_record.side_effect = CRMConnectionError("HTTP request failed with status 503", status_code=503)

    with pytest.raises(ValidationError) as exc_info:
        service.create({"name": "Acme", "assigned_user_id": "user-1"})

    assert exc_info.value.errors[0].startswith("Unable to validate Users record 'user-1'")


def test_relationship_authentication_error_propagates(service, api):
    """Test that an expired session is not hidden behind a validation error."""
    api.get_record.side_effect = AuthenticationError("Not authenticated. Please login first.")

    with pytest.raises(AuthenticationError):
        service.create({"name": "Acme", "assigned_user_id": "user-1"})

    api.create_record.assert_not_called()


def test_blank_relationship_is_not_checked(service, api):
    """Test that empty references skip the lookup."""
    service.create({"name": "Acme", "assigned_user_id": ""})

    api.get_record.assert_not_called()


def test_business_rule_violation(service, api):
    """Test the business rule stage."""
    with pytest.raises(ValidationError) as exc_info:
        service.create({"name": "Acme", "industry": "Banking", "account_type": "Partner"})

    assert str(exc_info.value) == (
        "Business rule validation failed for Accounts: Banking accounts cannot be partners"
    )
    api.create_record.assert_not_called()


def test_business_rules_receive_create_flag(api):
    """Test that hooks know whether they run for a create."""
    seen = []
    spec = ModuleSpec(
        kind=ModuleKind.CASES,
        business_rules=lambda service, data, is_create: seen.append(is_create) or [],
    )
    service = ModuleService(api, spec)

    service.create({"name": "Broken printer"})
    service.update("case-1", {"status": "Closed"})

    assert seen == [True, False]


# ===== Update Tests =====

def test_update_skips_required_and_defaults(service, api):
    """Test that partial updates only validate the given fields."""
    assert service.update("acc-1", {"industry": "Retail"}) is True

    api.update_record.assert_called_once_with(
        "Accounts", "acc-1", {"industry": "Retail", "preprocessed": True}
    )


def test_update_still_checks_rules(service, api):
    """Test that field rules apply to updates."""
    with pytest.raises(ValidationError):
        service.update("acc-1", {"email1": "broken"})

    api.update_record.assert_not_called()


def test_update_reports_mismatch(service, api):
    """Test that a False acknowledgement is passed through."""
    api.update_record.return_value = False

    assert service.update("acc-1", {"industry": "Retail"}) is False


# ===== Read Tests =====

def test_find_by_id_postprocesses(service, api):
    """Test that records read back go through postprocess."""
    api.get_record.return_value = {"id": "acc-1", "name": "Acme"}

    record = service.find_by_id("acc-1", ["id", "name"])

    assert record["label"] == "Acme (acc-1)"
    api.get_record.assert_called_once_with("Accounts", "acc-1", ["id", "name"])


def test_find_by_id_none(service, api):
    """Test that a missing record is None, not postprocessed."""
    api.get_record.return_value = None

    assert service.find_by_id("acc-9") is None


def test_search_postprocesses_every_record(service, api):
    """Test search."""
    api.search_records.return_value = [
        {"id": "1", "name": "Acme"},
        {"id": "2", "name": "Globex"},
    ]

    records = service.search({"industry": "Banking"}, ["id", "name"], limit=5, offset=5)

    assert [r["label"] for r in records] == ["Acme (1)", "Globex (2)"]
    api.search_records.assert_called_once_with("Accounts", {"industry": "Banking"}, ["id", "name"], 5, 5)


def test_delete_and_count(service, api):
    """Test the thin pass-through calls."""
    api.delete_record.return_value = True
    api.count_records.return_value = 3

    assert service.delete("acc-1") is True
    assert service.count({"industry": "Banking"}) == 3
    api.delete_record.assert_called_once_with("Accounts", "acc-1")


def test_statistics(service, api):
    """Test grouped counts."""
    api.search_records.return_value = [
        {"industry": "Banking", "account_type": "Customer"},
        {"industry": "Banking", "account_type": "Partner"},
        {"industry": "", "account_type": "Customer"},
    ]

    stats = service.statistics("industry", "account_type")

    assert stats == {
        "total": 3,
        "by_industry": {"Banking": 2, "Unknown": 1},
        "by_account_type": {"Customer": 2, "Partner": 1},
    }
    api.search_records.assert_called_once_with("Accounts", None, ["industry", "account_type"], 1000, 0)


def test_validate_does_not_raise(service):
    """Test the non-raising validation entry point."""
    assert service.validate({}) == ["Field 'name' is required"]
    assert service.validate({}, is_create=False) == []


def test_count_by():
    """Test grouping helper."""
    records = [{"status": "New"}, {"status": "New"}, {"status": None}, {}]

    assert count_by(records, "status") == {"New": 2, "Unknown": 2}
    assert count_by(records, "status", missing="None") == {"New": 2, "None": 2}
