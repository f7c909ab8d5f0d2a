"""Core data models for the SuiteCRM toolkit."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from .errors import ConfigError
from .validation import RULE_CHECKS


class ModuleKind(Enum):
    """SuiteCRM modules with a service in this toolkit, valued by wire name."""
    ACCOUNTS = "Accounts"
    CONTACTS = "Contacts"
    LEADS = "Leads"
    OPPORTUNITIES = "Opportunities"
    CASES = "Cases"
    CALLS = "Calls"
    MEETINGS = "Meetings"
    TASKS = "Tasks"
    EVENTS = "FP_events"
    CALENDAR = "Calendar"
    NOTES = "Notes"
    DOCUMENTS = "Documents"
    EMAILS = "Emails"
    EMAIL_TEMPLATES = "EmailTemplates"
    CAMPAIGNS = "Campaigns"
    PROSPECTS = "Prospects"
    PROJECTS = "Project"
    PROJECT_TASKS = "ProjectTask"
    USERS = "Users"
    PRODUCTS = "AOS_Products"
    QUOTES = "AOS_Quotes"
    INVOICES = "AOS_Invoices"


@dataclass
class CRMConfig:
    """
    Connection settings for one SuiteCRM instance.

    Validated on construction so a bad configuration fails before the
    first request is ever made.
    """
    url: str
    username: str
    password: str
    timeout: float = 30
    debug: bool = False
    ssl_verify: bool = True

    def __post_init__(self):
        if not self.url:
            raise ConfigError("SuiteCRM URL cannot be empty")
        if not self.username:
            raise ConfigError("Username cannot be empty")
        if not self.password:
            raise ConfigError("Password cannot be empty")
        if self.timeout <= 0:
            raise ConfigError("Timeout must be greater than 0")
        self.url = self.url.rstrip("/")

    @property
    def rest_url(self) -> str:
        """Endpoint of the v4_1 REST API."""
        return f"{self.url}/service/v4_1/rest.php"

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert CRMConfig to a dictionary."""
        data = {
            "url": self.url,
            "username": self.username,
            "timeout": self.timeout,
            "debug": self.debug,
            "ssl_verify": self.ssl_verify,
        }
        if include_password:
            data["password"] = self.password
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CRMConfig":
        """Create CRMConfig from a dictionary."""
        return cls(
            url=data.get("url", ""),
            username=data.get("username", ""),
            password=data.get("password", ""),
            timeout=data.get("timeout", 30),
            debug=bool(data.get("debug", False)),
            ssl_verify=bool(data.get("ssl_verify", True)),
        )


BusinessRules = Callable[[Any, dict[str, Any], bool], list[str]]
RecordHook = Callable[[dict[str, Any]], dict[str, Any]]


def _no_business_rules(service: Any, data: dict[str, Any], is_create: bool) -> list[str]:
    return []


def _passthrough(data: dict[str, Any]) -> dict[str, Any]:
    return data


@dataclass(frozen=True)
class ModuleSpec:
    """
    Declarative description of one SuiteCRM module.

    Hooks are plain functions: ``business_rules(service, data, is_create)``
    returns violation messages, ``preprocess`` reshapes outgoing data and
    ``postprocess`` reshapes records read back from the server.
    """
    kind: ModuleKind
    required_fields: tuple[str, ...] = ()
    rules: dict[str, dict[str, Any]] = field(default_factory=dict)
    relationships: dict[str, ModuleKind] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)
    business_rules: BusinessRules = _no_business_rules
    preprocess: RecordHook = _passthrough
    postprocess: RecordHook = _passthrough

    def __post_init__(self):
        for field_name, field_rules in self.rules.items():
            unknown = set(field_rules) - set(RULE_CHECKS)
            if unknown:
                raise ValueError(
                    f"Unknown validation rule(s) {sorted(unknown)} for "
                    f"{self.kind.value}.{field_name}"
                )

    @property
    def module_name(self) -> str:
        """Wire name of the module."""
        return self.kind.value
