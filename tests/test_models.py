"""Tests for core data models."""

import pytest

from suitecrm_toolkit.core.errors import ConfigError, ValidationError
from suitecrm_toolkit.core.models import CRMConfig, ModuleKind, ModuleSpec


def test_config_defaults():
    """Test CRMConfig defaults and URL normalisation."""
    config = CRMConfig(url="https://crm.example.com/", username="admin", password="secret")

    assert config.url == "https://crm.example.com"
    assert config.timeout == 30
    assert config.debug is False
    assert config.ssl_verify is True
    assert config.rest_url == "https://crm.example.com/service/v4_1/rest.php"


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"url": ""}, "SuiteCRM URL cannot be empty"),
        ({"username": ""}, "Username cannot be empty"),
        ({"password": ""}, "Password cannot be empty"),
        ({"timeout": 0}, "Timeout must be greater than 0"),
    ],
)
def test_config_rejects_invalid_values(kwargs, message):
    """Test that an invalid configuration fails on construction."""
    values = {"url": "https://crm.example.com", "username": "admin", "password": "secret"}
    values.update(kwargs)

    with pytest.raises(ConfigError) as exc_info:
        CRMConfig(**values)

    assert message in str(exc_info.value)


def test_config_to_dict_omits_password_by_default():
    """Test that to_dict only includes the password on request."""
    config = CRMConfig(url="https://crm.example.com", username="admin", password="secret", debug=True)

    data = config.to_dict()
    assert "password" not in data
    assert data["debug"] is True

    assert config.to_dict(include_password=True)["password"] == "secret"


def test_config_from_dict():
    """Test CRMConfig.from_dict."""
    config = CRMConfig.from_dict({
        "url": "https://crm.example.com",
        "username": "admin",
        "password": "secret",
        "timeout": 10,
        "ssl_verify": False,
    })

    assert config.timeout == 10
    assert config.ssl_verify is False
    assert config.debug is False


def test_module_kind_values_are_wire_names():
    """Test that ModuleKind values are the module names SuiteCRM expects."""
    assert ModuleKind.ACCOUNTS.value == "Accounts"
    assert ModuleKind.EVENTS.value == "FP_events"
    assert ModuleKind.QUOTES.value == "AOS_Quotes"
    assert ModuleKind("Project") is ModuleKind.PROJECTS


def test_module_spec_defaults():
    """Test ModuleSpec defaults and hook behaviour."""
    spec = ModuleSpec(kind=ModuleKind.ACCOUNTS)

    assert spec.module_name == "Accounts"
    assert spec.required_fields == ()
    assert spec.business_rules(None, {}, True) == []
    data = {"name": "Acme"}
    assert spec.preprocess(data) is data
    assert spec.postprocess(data) is data


def test_module_spec_rejects_unknown_rule():
    """Test that a typo in a rule name fails when the ModuleSpec is built."""
    with pytest.raises(ValueError) as exc_info:
        ModuleSpec(kind=ModuleKind.ACCOUNTS, rules={"name": {"maxlength": 10}})

    assert "maxlength" in str(exc_info.value)
    assert "Accounts.name" in str(exc_info.value)


def test_validation_error_renders_messages():
    """Test ValidationError string form and attributes."""
    error = ValidationError("Validation failed for Accounts", ["a", "b"], module="Accounts")

    assert error.errors == ["a", "b"]
    assert error.module == "Accounts"
    assert str(error) == "Validation failed for Accounts: a; b"
    assert str(ValidationError("Plain")) == "Plain"
