"""EmailTemplates module."""

import re
from datetime import datetime
from typing import Any

from email_validator import EmailNotValidError, validate_email

from ..core.errors import RecordNotFoundError, ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from ..core.validation import is_blank
from .accounts import USER_REFERENCES
from .directory import ServiceDirectory

VARIABLE_RE = re.compile(r"\$[a-zA-Z_][a-zA-Z0-9_]*")
OPEN_TAG_RE = re.compile(r"<[^/!][^>]*(?<!/)>")
CLOSE_TAG_RE = re.compile(r"</[^>]+>")
VOID_TAGS = {"br", "hr", "img", "input", "meta", "link", "area", "base", "col", "source", "wbr"}

COMMON_VARIABLES = [
    "$contact_first_name", "$contact_last_name", "$contact_email",
    "$contact_phone_work", "$contact_phone_mobile", "$contact_account_name",
    "$contact_title", "$contact_department",
    "$user_first_name", "$user_last_name", "$user_email", "$user_phone_work",
    "$current_date", "$current_time",
]

MODULE_VARIABLES = {
    "Contact": ["$contact_birthdate", "$contact_assistant", "$contact_assistant_phone"],
    "Lead": [
        "$lead_first_name", "$lead_last_name", "$lead_email",
        "$lead_phone_work", "$lead_status", "$lead_lead_source",
    ],
    "Account": [
        "$account_name", "$account_website", "$account_phone_office",
        "$account_billing_address_street", "$account_billing_address_city",
        "$account_billing_address_state", "$account_billing_address_postalcode",
        "$account_billing_address_country",
    ],
    "Opportunity": [
        "$opportunity_name", "$opportunity_amount",
        "$opportunity_close_date", "$opportunity_sales_stage",
    ],
}

# Fields SuiteCRM sets itself and a clone must not carry over
SYSTEM_FIELDS = ("id", "date_entered", "date_modified", "created_by", "modified_user_id")


def template_variables(module: str = "Contact") -> list[str]:
    return COMMON_VARIABLES + MODULE_VARIABLES.get(module, [])


def validate_template(data: dict[str, Any]) -> dict[str, Any]:
    """
    Check a template's subject and body.

    Missing subject/body (when the key is present) are errors; unknown
    variables and unbalanced HTML tags are warnings.

    Returns:
        {"valid": bool, "errors": [...], "warnings": [...]}
    """
    errors = []
    warnings = []

    for field in ("subject", "body"):
        if field in data and not data[field]:
            errors.append(f"{field.title()} is required")

    body = data.get("body") or ""
    known = set(template_variables())
    for variable in dict.fromkeys(VARIABLE_RE.findall(body)):
        if variable not in known:
            warnings.append(f"Variable '{variable}' may not be available in all contexts")

    if "<" in body:
        opened = [
            tag for tag in OPEN_TAG_RE.findall(body)
            if tag[1:].split()[0].rstrip(">").lower() not in VOID_TAGS
        ]
        if len(opened) != len(CLOSE_TAG_RE.findall(body)):
            warnings.append("HTML tags may not be properly balanced")

    return {"valid": not errors, "errors": errors, "warnings": warnings}


def replace_variables(content: str, data: dict[str, Any]) -> str:
    # Longest names first so $contact_email is not clobbered by $contact
    for key in sorted(data, key=len, reverse=True):
        content = content.replace(f"${key}", str(data[key]))
    return content


def check_template(service, data: dict[str, Any], is_create: bool) -> list[str]:
    errors = list(validate_template(data)["errors"])
    if is_create and data.get("name"):
        if service.search({"name": data["name"]}, ["id"], limit=1):
            errors.append(f"Template with name '{data['name']}' already exists")
    return errors


EMAIL_TEMPLATES = register_module(ModuleSpec(
    kind=ModuleKind.EMAIL_TEMPLATES,
    required_fields=("name", "subject", "body"),
    rules={
        "name": {"max_length": 255},
        "subject": {"max_length": 255},
        "body": {"max_length": 32000},
        "description": {"max_length": 1000},
        "type": {"in": ["campaign", "email", "workflow", "system"]},
        "published": {"in": ["0", "1", "on", "off"]},
    },
    relationships=USER_REFERENCES,
    business_rules=check_template,
))


class EmailTemplateService:
    """Convenience operations for EmailTemplates."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.EMAIL_TEMPLATES)

    def create_template(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_template(self, template_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(template_id, data)

    def find_template_by_id(self, template_id: str, fields: list[str] | None = None) -> dict[str, Any] | None:
        return self.records.find_by_id(template_id, fields)

    def search_templates(self, criteria: dict[str, Any] | None = None, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(criteria, limit=limit, offset=offset)

    def delete_template(self, template_id: str) -> bool:
        return self.records.delete(template_id)

    def _require(self, template_id: str) -> dict[str, Any]:
        template = self.records.find_by_id(template_id)
        if template is None:
            raise RecordNotFoundError(
                f"Template with ID '{template_id}' does not exist",
                module=self.records.module_name,
                record_id=template_id,
            )
        return template

    def clone_template(self, template_id: str, new_name: str, modifications: dict[str, Any] | None = None) -> str:
        """Copy a template under a new name; the copy starts unpublished."""
        clone = {k: v for k, v in self._require(template_id).items() if not is_blank(v)}
        clone.update(modifications or {})
        clone["name"] = new_name
        clone["published"] = "0"
        for field in SYSTEM_FIELDS:
            clone.pop(field, None)
        return self.records.create(clone)

    def get_template_variables(self, module: str = "Contact") -> dict[str, Any]:
        return {
            "module": module,
            "variables": template_variables(module),
            "description": "Available variables for email template personalization",
        }

    def validate_template(self, data: dict[str, Any]) -> dict[str, Any]:
        return validate_template(data)

    def render_template(self, template_id: str, data: dict[str, Any]) -> dict[str, str]:
        """Substitute ``$variable`` placeholders in subject and body."""
        template = self._require(template_id)
        return {
            "subject": replace_variables(template.get("subject") or "", data),
            "body": replace_variables(template.get("body") or "", data),
        }

    def prepare_test_email(self, template_id: str, test_email: str, test_data: dict[str, Any] | None = None) -> str:
        """
        Render a template with sample data and store it as a draft email.

        Returns:
            Id of the draft email addressed to ``test_email``
        """
        try:
            validate_email(test_email, check_deliverability=False)
        except EmailNotValidError as e:
            raise ValidationError(
                "Invalid test email address", [str(e)], module=self.records.module_name
            ) from e

        now = datetime.now()
        merge_data = {
            "contact_first_name": "John",
            "contact_last_name": "Doe",
            "contact_email": test_email,
            "user_first_name": "Test",
            "user_last_name": "User",
            "current_date": now.strftime("%Y-%m-%d"),
            "current_time": now.strftime("%H:%M:%S"),
        }
        merge_data.update(test_data or {})
        rendered = self.render_template(template_id, merge_data)

        return self.directory.records(ModuleKind.EMAILS).create({
            "name": rendered["subject"],
            "subject": rendered["subject"],
            "description": rendered["body"],
            "to_addrs": test_email,
            "status": "draft",
            "type": "draft",
        })
