"""Tests for the module registry."""

import logging

import pytest

import suitecrm_toolkit.services  # noqa: F401  registers every module
from suitecrm_toolkit.core import registry
from suitecrm_toolkit.core.models import ModuleKind, ModuleSpec
from suitecrm_toolkit.core.registry import (
    ModuleNotRegisteredError,
    get_module_spec,
    list_modules,
    register_module,
    reset_registry,
)


@pytest.fixture
def clean_registry():
    """Empty the registry for a test and restore the real modules afterwards."""
    saved = dict(registry._MODULES)
    reset_registry()
    yield
    reset_registry()
    registry._MODULES.update(saved)


def test_every_module_kind_is_registered():
    """Test that importing the services registers a spec per ModuleKind."""
    for kind in ModuleKind:
        assert get_module_spec(kind).kind is kind


def test_list_modules_sorted_by_name():
    """Test that list_modules is ordered by wire name."""
    names = [spec.module_name for spec in list_modules()]
    assert names == sorted(names)
    assert "AOS_Invoices" in names


def test_register_and_get(clean_registry):
    """Test registering and retrieving a spec."""
    spec = register_module(ModuleSpec(kind=ModuleKind.ACCOUNTS, required_fields=("name",)))

    assert get_module_spec(ModuleKind.ACCOUNTS) is spec
    assert list_modules() == [spec]


def test_register_overwrites_with_warning(clean_registry, caplog):
    """Test that registering the same kind twice keeps the second spec."""
    register_module(ModuleSpec(kind=ModuleKind.LEADS))
    second = register_module(ModuleSpec(kind=ModuleKind.LEADS, required_fields=("last_name",)))

    with caplog.at_level(logging.WARNING):
        register_module(second)

    assert get_module_spec(ModuleKind.LEADS) is second
    assert "already registered" in caplog.text


def test_get_unregistered_module(clean_registry):
    """Test looking up a module that has no spec."""
    with pytest.raises(ModuleNotRegisteredError) as exc_info:
        get_module_spec(ModuleKind.CASES)

    assert "Cases" in str(exc_info.value)


def test_reset_registry(clean_registry):
    """Test clearing the registry."""
    register_module(ModuleSpec(kind=ModuleKind.NOTES))
    reset_registry()

    assert list_modules() == []
