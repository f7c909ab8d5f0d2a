"""Campaigns module."""

import logging
from datetime import datetime
from typing import Any

from ..core.errors import RecordNotFoundError, ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from ..core.validation import is_blank
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import normalize_date, normalize_fields, parse_datetime, timestamp, to_float

logger = logging.getLogger(__name__)

CAMPAIGN_STATUSES = ["Planning", "Active", "Inactive", "Complete"]
CAMPAIGN_TYPES = ["Telesales", "Mail", "Email", "Print", "Web", "Radio", "Television"]
MONEY_FIELDS = ("budget", "expected_cost", "actual_cost", "expected_revenue")

TARGET_KINDS = {
    "Contacts": ModuleKind.CONTACTS,
    "Leads": ModuleKind.LEADS,
    "Prospects": ModuleKind.PROSPECTS,
}


def check_campaign(service, data: dict[str, Any], is_create: bool) -> list[str]:
    errors = []

    start = parse_datetime(data.get("start_date"))
    end = parse_datetime(data.get("end_date"))
    if start and end and start > end:
        errors.append("Campaign start date cannot be after end date")

    if not is_blank(data.get("budget")) and not is_blank(data.get("expected_cost")):
        if float(data["expected_cost"]) > float(data["budget"]):
            errors.append("Expected cost cannot exceed budget")

    if data.get("campaign_type") == "Email" and is_blank(data.get("email_template_id")):
        errors.append("Email campaigns require an email template")

    return errors


def preprocess_campaign(data: dict[str, Any]) -> dict[str, Any]:
    data = normalize_fields(data, ("start_date", "end_date"), normalize_date)
    return to_float(data, MONEY_FIELDS)


CAMPAIGNS = register_module(ModuleSpec(
    kind=ModuleKind.CAMPAIGNS,
    required_fields=("name", "status"),
    rules={
        "name": {"max_length": 255},
        "status": {"in": CAMPAIGN_STATUSES},
        "campaign_type": {"in": CAMPAIGN_TYPES},
        "frequency": {"in": ["Weekly", "Monthly", "Quarterly", "Annually", "One Time"]},
        "budget": {"min": 0},
        "expected_cost": {"min": 0},
        "actual_cost": {"min": 0},
        "expected_revenue": {"min": 0},
        "impressions": {"min": 0},
    },
    relationships={
        **USER_REFERENCES,
        "email_template_id": ModuleKind.EMAIL_TEMPLATES,
    },
    business_rules=check_campaign,
    preprocess=preprocess_campaign,
))


def campaign_roi(campaign: dict[str, Any]) -> float:
    """Return on investment as a percentage; 0 when there is no cost."""
    revenue = float(campaign.get("expected_revenue") or 0)
    cost = float(campaign.get("actual_cost") or campaign.get("expected_cost") or 0)
    if cost == 0:
        return 0.0
    return (revenue - cost) / cost * 100


def campaign_conversion_rate(campaign: dict[str, Any]) -> float:
    responses = int(float(campaign.get("responses") or 0))
    impressions = int(float(campaign.get("impressions") or 0))
    if impressions == 0:
        return 0.0
    return responses / impressions * 100


class CampaignService:
    """Convenience operations for Campaigns."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.CAMPAIGNS)

    def create_campaign(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_campaign(self, campaign_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(campaign_id, data)

    def find_campaign_by_id(self, campaign_id: str, fields: list[str] | None = None) -> dict[str, Any] | None:
        return self.records.find_by_id(campaign_id, fields)

    def search_campaigns(self, criteria: dict[str, Any] | None = None, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(criteria, limit=limit, offset=offset)

    def delete_campaign(self, campaign_id: str) -> bool:
        return self.records.delete(campaign_id)

    def _require(self, campaign_id: str) -> dict[str, Any]:
        campaign = self.records.find_by_id(campaign_id)
        if campaign is None:
            raise RecordNotFoundError(
                f"Campaign with ID '{campaign_id}' does not exist",
                module=self.records.module_name,
                record_id=campaign_id,
            )
        return campaign

    def _check_targets(self, target_ids: list[str], target_type: str) -> ModuleKind:
        kind = TARGET_KINDS.get(target_type)
        if kind is None:
            raise ValidationError(
                "Invalid target type",
                [f"Target type must be one of: {', '.join(TARGET_KINDS)}"],
                module=self.records.module_name,
            )
        missing = [
            f"{target_type} with ID '{target_id}' does not exist"
            for target_id in target_ids
            if not self.directory.exists(kind, target_id)
        ]
        if missing:
            raise ValidationError("Campaign targets not found", missing, module=self.records.module_name)
        return kind

    def add_targets(self, campaign_id: str, target_ids: list[str], target_type: str = "Contacts") -> bool:
        """
        Attach existing contacts, leads or prospects to a campaign.

        Each target's ``campaign_id`` is pointed at the campaign.

        Raises:
            RecordNotFoundError: If the campaign does not exist
            ValidationError: For an unknown target type or missing targets
        """
        self._require(campaign_id)
        kind = self._check_targets(target_ids, target_type)
        targets = self.directory.records(kind)
        results = [targets.update(target_id, {"campaign_id": campaign_id}) for target_id in target_ids]
        logger.info(f"Added {len(target_ids)} {target_type} targets to campaign {campaign_id}")
        return all(results)

    def schedule_campaign(self, campaign_id: str, launch_date: str, end_date: str | None = None) -> bool:
        self._require(campaign_id)

        errors = []
        launch = parse_datetime(launch_date)
        if launch is None:
            errors.append("Invalid launch date format")
        end = None
        if end_date:
            end = parse_datetime(end_date)
            if end is None:
                errors.append("Invalid end date format")
        if launch and end and launch > end:
            errors.append("Launch date cannot be after end date")
        if errors:
            raise ValidationError("Invalid campaign schedule", errors, module=self.records.module_name)

        data = {"start_date": launch_date, "status": "Active"}
        if end_date:
            data["end_date"] = end_date
        return self.records.update(campaign_id, data)

    def launch_campaign(self, campaign_id: str, now: datetime | None = None) -> bool:
        """Mark an Active campaign whose start date has arrived as launched."""
        campaign = self._require(campaign_id)
        now = now or datetime.now()

        errors = []
        if campaign.get("status") != "Active":
            errors.append("Campaign must be in Active status to launch")
        start = parse_datetime(campaign.get("start_date"))
        if start is None:
            errors.append("Campaign must have a start date to launch")
        elif start > now:
            errors.append("Campaign launch date is in the future")
        if errors:
            raise ValidationError("Campaign cannot be launched", errors, module=self.records.module_name)

        return self.records.update(campaign_id, {"date_launched": timestamp(now), "launched": "1"})

    def get_campaign_stats(self, campaign_id: str) -> dict[str, Any]:
        campaign = self._require(campaign_id)
        return {
            "campaign": campaign,
            "impressions": int(float(campaign.get("impressions") or 0)),
            "responses": {
                name: int(float(campaign.get(field) or 0))
                for name, field in (
                    ("total", "responses"),
                    ("viewed", "viewed"),
                    ("clicked", "clicked"),
                    ("subscribed", "subscribed"),
                    ("unsubscribed", "unsubscribed"),
                )
            },
            "roi": campaign_roi(campaign),
            "conversion_rate": campaign_conversion_rate(campaign),
        }

    def create_email_campaign(self, data: dict[str, Any], template_id: str, target_ids: list[str]) -> str:
        """
        Create an Email campaign bound to a template and attach contacts.

        Raises:
            ValidationError: If the template or any contact is missing
        """
        if not self.directory.exists(ModuleKind.EMAIL_TEMPLATES, template_id):
            raise ValidationError(
                "Email template not found",
                [f"Email template with ID '{template_id}' does not exist"],
                module=self.records.module_name,
            )
        self._check_targets(target_ids, "Contacts")

        campaign_id = self.records.create(dict(data, campaign_type="Email", email_template_id=template_id))
        contacts = self.directory.records(ModuleKind.CONTACTS)
        for target_id in target_ids:
            contacts.update(target_id, {"campaign_id": campaign_id})
        return campaign_id
