"""Client library for the SuiteCRM REST v4_1 API."""

from .core import (
    AuthenticationError,
    ConfigError,
    CRMConfig,
    CRMConnectionError,
    ModuleKind,
    ProtocolError,
    RecordNotFoundError,
    ValidationError,
)
from .client import SuiteCRM, SuiteCRMClient

__version__ = "0.1.0"

__all__ = [
    "SuiteCRM",
    "SuiteCRMClient",
    "CRMConfig",
    "ModuleKind",
    "ProtocolError",
    "CRMConnectionError",
    "AuthenticationError",
    "ValidationError",
    "RecordNotFoundError",
    "ConfigError",
]
