"""Documents module."""

from pathlib import Path
from typing import Any

from ..core.errors import RecordNotFoundError, ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import PARENT_TYPES
from .base import count_by
from .directory import ServiceDirectory
from .formatting import increment_revision

# Fields a new revision inherits from the document it revises
REVISION_FIELDS = ("document_name", "description", "category", "type", "parent_type", "parent_id")

DOCUMENTS = register_module(ModuleSpec(
    kind=ModuleKind.DOCUMENTS,
    required_fields=("document_name",),
    rules={
        "document_name": {"max_length": 255},
        "description": {"max_length": 65535},
        "category": {"max_length": 100},
        "type": {"max_length": 100},
        "revision": {"max_length": 100},
        "file_upload_path": {"max_length": 255},
        "save_filename": {"max_length": 255},
        "status": {"in": ["Active", "Inactive", "Draft"]},
        "parent_type": {"in": PARENT_TYPES},
    },
    relationships=USER_REFERENCES,
    defaults={"status": "Active", "revision": "1.0"},
))


class DocumentService:
    """Convenience operations for Documents."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.DOCUMENTS)

    def create_document(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_document(self, document_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(document_id, data)

    def find_document_by_id(self, document_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(document_id)

    def find_documents_by_category(self, category: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"category": category}, limit=limit, offset=offset)

    def find_documents_by_type(self, document_type: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"type": document_type}, limit=limit, offset=offset)

    def find_documents_by_parent(self, parent_type: str, parent_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(
            {"parent_type": parent_type, "parent_id": parent_id}, limit=limit, offset=offset
        )

    def find_documents_by_status(self, status: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"status": status}, limit=limit, offset=offset)

    def find_active_documents(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.find_documents_by_status("Active", limit, offset)

    def create_document_with_file(self, data: dict[str, Any], file_path: Path, filename: str | None = None) -> str:
        """Create a document record pointing at a local file."""
        path = Path(file_path)
        if not path.is_file():
            raise ValidationError(
                f"File does not exist: {path}",
                [f"File '{path}' must exist"],
                module=self.records.module_name,
            )

        document = dict(data)
        document["save_filename"] = filename or path.name
        document["file_upload_path"] = str(path)
        return self.records.create(document)

    def create_document_revision(self, document_id: str, data: dict[str, Any] | None = None) -> str:
        """
        Create a new document carrying the next revision number.

        Raises:
            RecordNotFoundError: If the original document does not exist
        """
        original = self.records.find_by_id(document_id)
        if original is None:
            raise RecordNotFoundError(
                f"Document not found: {document_id}",
                module=self.records.module_name,
                record_id=document_id,
            )

        revision = {f: original[f] for f in REVISION_FIELDS if original.get(f)}
        revision["status"] = "Active"
        revision.update(data or {})
        revision["revision"] = increment_revision(original.get("revision"))
        return self.records.create(revision)

    def get_document_statistics(self) -> dict[str, Any]:
        stats = self.records.statistics("status", "category", "type")
        stats["active"] = stats["by_status"].get("Active", 0)
        return stats
