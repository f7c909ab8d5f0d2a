"""Registry of module specifications, keyed by ModuleKind."""

import logging

from .models import ModuleKind, ModuleSpec

logger = logging.getLogger(__name__)

# Populated when suitecrm_toolkit.services is imported
_MODULES: dict[ModuleKind, ModuleSpec] = {}


class ModuleNotRegisteredError(Exception):
    """Raised when no specification is registered for a module."""
    pass


def register_module(spec: ModuleSpec) -> ModuleSpec:
    """
    Register a module specification.

    Args:
        spec: The ModuleSpec to register

    Returns:
        The registered ModuleSpec

    Note:
        A spec already registered for the same kind is overwritten.
    """
    if spec.kind in _MODULES:
        logger.warning(f"Module '{spec.module_name}' already registered. Overwriting.")

    _MODULES[spec.kind] = spec
    logger.debug(f"Registered module: {spec.module_name}")
    return spec


def get_module_spec(kind: ModuleKind) -> ModuleSpec:
    """
    Retrieve the ModuleSpec for a module.

    Raises:
        ModuleNotRegisteredError: If nothing is registered for ``kind``
    """
    if kind not in _MODULES:
        raise ModuleNotRegisteredError(f"Module '{kind.value}' is not registered")

    return _MODULES[kind]


def list_modules() -> list[ModuleSpec]:
    """List all registered specifications, sorted by module name."""
    return sorted(_MODULES.values(), key=lambda s: s.module_name)


def reset_registry() -> None:
    """Clear all registered modules. Useful for testing."""
    _MODULES.clear()
