"""Core components for the SuiteCRM toolkit."""

from .errors import (
    ProtocolError,
    CRMConnectionError,
    AuthenticationError,
    ValidationError,
    RecordNotFoundError,
    ConfigError,
)
from .models import ModuleKind, CRMConfig, ModuleSpec
from .registry import (
    register_module,
    get_module_spec,
    list_modules,
    reset_registry,
    ModuleNotRegisteredError,
)
from .config_store import (
    config_from_env,
    config_from_dict,
    load_config_file,
    save_config_file,
    get_base_dir,
    profile_path,
)
from .query import build_search_query, any_of
from .validation import check_required, check_rules

__all__ = [
    "ProtocolError",
    "CRMConnectionError",
    "AuthenticationError",
    "ValidationError",
    "RecordNotFoundError",
    "ConfigError",
    "ModuleKind",
    "CRMConfig",
    "ModuleSpec",
    "register_module",
    "get_module_spec",
    "list_modules",
    "reset_registry",
    "ModuleNotRegisteredError",
    "config_from_env",
    "config_from_dict",
    "load_config_file",
    "save_config_file",
    "get_base_dir",
    "profile_path",
    "build_search_query",
    "any_of",
    "check_required",
    "check_rules",
]
