"""
Builder that wires a complete SuiteCRM toolkit.

``SuiteCRM`` ties together all layers:
- Configuration (CRMConfig from code, environment or a profile file)
- Transport and session client
- ServiceDirectory (one ModuleService per module)
- Convenience services for each module
"""

import logging
from pathlib import Path
from typing import Any, Mapping

from ..core.config_store import config_from_dict, config_from_env, load_config_file
from ..core.models import CRMConfig, ModuleKind
from ..services import (
    AccountService,
    ActivitiesService,
    CalendarService,
    CallService,
    CampaignService,
    CaseService,
    ContactService,
    DocumentService,
    EmailService,
    EmailTemplateService,
    EventService,
    InvoiceService,
    LeadService,
    MeetingService,
    ModuleService,
    NoteService,
    OpportunityService,
    ProductService,
    ProjectService,
    ProspectService,
    QuoteService,
    ServiceDirectory,
    TaskService,
    UserService,
)
from .rest_client import SuiteCRMClient
from .transport import Transport

logger = logging.getLogger(__name__)


class SuiteCRM:
    """
    A connected SuiteCRM client with every module service attached.

    Example:
        >>> with SuiteCRM.from_env().connect() as crm:
        ...     account_id = crm.accounts.create_account({"name": "Acme Corp"})
        ...     crm.contacts.create_contact({"last_name": "Doe", "account_id": account_id})
    """

    def __init__(self, config: CRMConfig, transport: Transport | None = None):
        """
        Args:
            config: Connection settings
            transport: Optional transport, mainly for tests
        """
        self.config = config
        self.client = SuiteCRMClient(config, transport)
        self.directory = ServiceDirectory(self.client)

        self.accounts = AccountService(self.directory)
        self.contacts = ContactService(self.directory)
        self.leads = LeadService(self.directory)
        self.opportunities = OpportunityService(self.directory)
        self.cases = CaseService(self.directory)
        self.calls = CallService(self.directory)
        self.meetings = MeetingService(self.directory)
        self.tasks = TaskService(self.directory)
        self.events = EventService(self.directory)
        self.calendar = CalendarService(self.directory)
        self.activities = ActivitiesService(self.directory)
        self.notes = NoteService(self.directory)
        self.documents = DocumentService(self.directory)
        self.emails = EmailService(self.directory)
        self.email_templates = EmailTemplateService(self.directory)
        self.campaigns = CampaignService(self.directory)
        self.prospects = ProspectService(self.directory)
        self.projects = ProjectService(self.directory)
        self.users = UserService(self.directory)
        self.products = ProductService(self.directory)
        self.quotes = QuoteService(self.directory)
        self.invoices = InvoiceService(self.directory)

    @classmethod
    def from_config(cls, config: CRMConfig, transport: Transport | None = None) -> "SuiteCRM":
        return cls(config, transport)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, transport: Transport | None = None) -> "SuiteCRM":
        """Build from SUITE_CRM_* environment variables."""
        return cls(config_from_env(env), transport)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], transport: Transport | None = None) -> "SuiteCRM":
        return cls(config_from_dict(data), transport)

    @classmethod
    def from_file(cls, path: Path, transport: Transport | None = None) -> "SuiteCRM":
        """Build from a JSON profile written by ``save_config_file``."""
        return cls(load_config_file(path), transport)

    def connect(self) -> "SuiteCRM":
        """
        Log in with the configured credentials.

        Returns:
            self, so construction and login can be chained

        Raises:
            AuthenticationError: If login fails
        """
        self.client.login()
        logger.info(f"Connected to {self.config.url} as {self.config.username}")
        return self

    def records(self, kind: ModuleKind | str) -> ModuleService:
        """
        Generic CRUD service for a module.

        Args:
            kind: ModuleKind or its wire name (e.g. "Accounts", "AOS_Quotes")

        Raises:
            ValueError: If ``kind`` is not a known module name
        """
        return self.directory.records(ModuleKind(kind))

    def is_connected(self) -> bool:
        return self.client.is_authenticated()

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
