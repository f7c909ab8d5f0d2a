"""Opportunities module."""

from typing import Any

from ..core.models import ModuleKind, ModuleSpec
from ..core.query import one_of
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory
from .formatting import to_float
from .leads import LEAD_SOURCES

# Default win probability per sales stage
STAGE_PROBABILITY = {
    "Prospecting": 10,
    "Qualification": 20,
    "Needs Analysis": 30,
    "Value Proposition": 50,
    "Id. Decision Makers": 60,
    "Perception Analysis": 70,
    "Proposal/Price Quote": 80,
    "Negotiation/Review": 90,
    "Closed Won": 100,
    "Closed Lost": 0,
}

SALES_STAGES = list(STAGE_PROBABILITY)
OPEN_STAGES = SALES_STAGES[:-2]

_ADDRESS_RULES = {
    f"{kind}_address_{part}": {"max_length": length}
    for kind in ("billing", "shipping")
    for part, length in (
        ("street", 150), ("city", 100), ("state", 100), ("postalcode", 20), ("country", 255),
    )
}


def preprocess_opportunity(data: dict[str, Any]) -> dict[str, Any]:
    to_float(data, ("amount", "probability"))
    if isinstance(data.get("probability"), float):
        data["probability"] = max(0.0, min(100.0, data["probability"]))
    elif data.get("probability") in (None, "") and data.get("sales_stage"):
        data["probability"] = STAGE_PROBABILITY.get(data["sales_stage"], 0)
    return data


OPPORTUNITIES = register_module(ModuleSpec(
    kind=ModuleKind.OPPORTUNITIES,
    required_fields=("name", "account_id"),
    rules={
        "name": {"max_length": 255},
        "amount": {"min": 0},
        "sales_stage": {"in": SALES_STAGES},
        "next_step": {"max_length": 100},
        "description": {"max_length": 65535},
        "lead_source": {"in": LEAD_SOURCES},
        **_ADDRESS_RULES,
    },
    relationships={
        **USER_REFERENCES,
        "account_id": ModuleKind.ACCOUNTS,
        "contact_id": ModuleKind.CONTACTS,
        "campaign_id": ModuleKind.CAMPAIGNS,
    },
    preprocess=preprocess_opportunity,
))


class OpportunityService:
    """Convenience operations for Opportunities."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.OPPORTUNITIES)

    def create_opportunity(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_opportunity(self, opportunity_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(opportunity_id, data)

    def find_opportunity_by_id(self, opportunity_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(opportunity_id)

    def find_opportunities_by_account(self, account_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"account_id": account_id}, limit=limit, offset=offset)

    def find_opportunities_by_sales_stage(self, sales_stage: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"sales_stage": sales_stage}, limit=limit, offset=offset)

    def find_opportunities_by_assigned_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"assigned_user_id": user_id}, limit=limit, offset=offset)

    def calculate_pipeline_value(self, user_id: str, sales_stages: list[str] | None = None) -> float:
        """
        Sum of probability-weighted amounts of a user's opportunities.

        Args:
            user_id: Assigned user
            sales_stages: Stages to include (open stages by default)
        """
        opportunities = self.records.search(
            {"assigned_user_id": user_id, "sales_stage": one_of(sales_stages or OPEN_STAGES)},
            ["amount", "probability"],
            limit=1000,
        )
        return sum(
            float(o.get("amount") or 0) * float(o.get("probability") or 0) / 100
            for o in opportunities
        )

    def get_sales_forecast(self, user_id: str) -> dict[str, dict[str, float]]:
        """Count, total and weighted amount per sales stage for a user."""
        opportunities = self.records.search(
            {"assigned_user_id": user_id},
            ["amount", "probability", "sales_stage"],
            limit=1000,
        )

        forecast: dict[str, dict[str, float]] = {}
        for opportunity in opportunities:
            stage = opportunity.get("sales_stage") or "Unknown"
            amount = float(opportunity.get("amount") or 0)
            probability = float(opportunity.get("probability") or 0)

            entry = forecast.setdefault(
                stage, {"count": 0, "total_amount": 0.0, "weighted_amount": 0.0}
            )
            entry["count"] += 1
            entry["total_amount"] += amount
            entry["weighted_amount"] += amount * probability / 100
        return forecast
