"""
Module services.

Importing this package registers a ModuleSpec for every supported module.
"""

from .base import ModuleService, count_by
from .directory import ServiceDirectory
from .accounts import AccountService
from .contacts import ContactService
from .leads import LeadService
from .opportunities import OpportunityService
from .cases import CaseService
from .activities import ActivitiesService, ActivitySchedule, ActivityType
from .calls import CallService
from .meetings import MeetingService
from .tasks import TaskService
from .events import EventService
from .calendar import CalendarService
from .notes import NoteService
from .documents import DocumentService
from .emails import EmailService
from .email_templates import EmailTemplateService
from .campaigns import CampaignService
from .prospects import ProspectService
from .projects import ProjectService
from .users import UserService
from .products import ProductService
from .quotes import QuoteService
from .invoices import InvoiceService

__all__ = [
    "ModuleService",
    "count_by",
    "ServiceDirectory",
    "AccountService",
    "ContactService",
    "LeadService",
    "OpportunityService",
    "CaseService",
    "ActivitiesService",
    "ActivitySchedule",
    "ActivityType",
    "CallService",
    "MeetingService",
    "TaskService",
    "EventService",
    "CalendarService",
    "NoteService",
    "DocumentService",
    "EmailService",
    "EmailTemplateService",
    "CampaignService",
    "ProspectService",
    "ProjectService",
    "UserService",
    "ProductService",
    "QuoteService",
    "InvoiceService",
]
