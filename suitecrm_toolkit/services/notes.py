"""Notes module."""

from pathlib import Path
from typing import Any

from ..core.errors import ValidationError
from ..core.models import ModuleKind, ModuleSpec
from ..core.query import contains, not_empty
from ..core.registry import register_module
from .accounts import USER_REFERENCES
from .activities import PARENT_TYPES, check_parent
from .base import count_by
from .directory import ServiceDirectory
from .formatting import guess_mime_type, to_flag

NOTE_SOURCES = ["internal", "external", "web", "email", "api"]


def preprocess_note(data: dict[str, Any]) -> dict[str, Any]:
    if data.get("filename") and not data.get("file_mime_type"):
        data["file_mime_type"] = guess_mime_type(data["filename"])
    for field in ("portal_flag", "embed_flag"):
        if field in data:
            data[field] = to_flag(data[field])
    return data


NOTES = register_module(ModuleSpec(
    kind=ModuleKind.NOTES,
    required_fields=("name",),
    rules={
        "name": {"max_length": 255},
        "description": {"max_length": 65535},
        "filename": {"max_length": 255},
        "file_mime_type": {"max_length": 100},
        "parent_type": {"in": PARENT_TYPES},
        "contact_name": {"max_length": 255},
        "note_source": {"in": NOTE_SOURCES},
        "sms_number": {"max_length": 50},
    },
    relationships={**USER_REFERENCES, "contact_id": ModuleKind.CONTACTS},
    defaults={"note_source": "internal"},
    business_rules=lambda service, data, is_create: check_parent(service, data),
    preprocess=preprocess_note,
))


def _require_file(path: Path) -> Path:
    path = Path(path)
    if not path.is_file():
        raise ValidationError(
            f"Attachment file does not exist: {path}",
            [f"File '{path}' must exist"],
            module=ModuleKind.NOTES.value,
        )
    return path


class NoteService:
    """Convenience operations for Notes."""

    def __init__(self, directory: ServiceDirectory):
        self.directory = directory
        self.records = directory.records(ModuleKind.NOTES)

    def create_note(self, data: dict[str, Any]) -> str:
        return self.records.create(data)

    def update_note(self, note_id: str, data: dict[str, Any]) -> bool:
        return self.records.update(note_id, data)

    def find_note_by_id(self, note_id: str) -> dict[str, Any] | None:
        return self.records.find_by_id(note_id)

    def create_note_with_attachment(
        self,
        data: dict[str, Any],
        file_path: Path,
        filename: str | None = None,
        mime_type: str | None = None,
    ) -> str:
        """
        Create a note and upload a file as its attachment.

        Args:
            data: Note fields
            file_path: Local file to upload
            filename: Name shown in SuiteCRM (defaults to the file's name)
            mime_type: MIME type (guessed from the filename if omitted)

        Returns:
            The new note's id

        Raises:
            ValidationError: If the file does not exist or the note is invalid
        """
        path = _require_file(file_path)
        filename = filename or path.name

        note = dict(data)
        note["filename"] = filename
        note["file_mime_type"] = mime_type or guess_mime_type(filename)

        note_id = self.records.create(note)
        self.records.api.set_note_attachment(note_id, filename, path.read_bytes())
        return note_id

    def attach_file_to_note(self, note_id: str, file_path: Path) -> str:
        path = _require_file(file_path)
        return self.records.api.set_note_attachment(note_id, path.name, path.read_bytes())

    def find_notes_by_parent(self, parent_type: str, parent_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search(
            {"parent_type": parent_type, "parent_id": parent_id}, limit=limit, offset=offset
        )

    def find_notes_by_assigned_user(self, user_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"assigned_user_id": user_id}, limit=limit, offset=offset)

    def find_notes_by_contact(self, contact_id: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"contact_id": contact_id}, limit=limit, offset=offset)

    def find_notes_by_subject(self, subject: str, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"name": contains(subject)}, limit=limit, offset=offset)

    def find_notes_with_attachments(self, limit: int = 20, offset: int = 0) -> list[dict[str, Any]]:
        return self.records.search({"filename": not_empty()}, limit=limit, offset=offset)

    def create_quick_note(
        self,
        subject: str,
        description: str,
        parent_type: str | None = None,
        parent_id: str | None = None,
    ) -> str:
        data = {"name": subject, "description": description, "note_source": "internal"}
        if parent_type and parent_id:
            data["parent_type"] = parent_type
            data["parent_id"] = parent_id
        return self.records.create(data)

    def get_note_statistics(self) -> dict[str, Any]:
        notes = self.records.search(None, ["note_source", "parent_type", "filename"], limit=1000)
        with_attachments = sum(1 for n in notes if n.get("filename"))
        return {
            "total": len(notes),
            "by_source": count_by(notes, "note_source"),
            "by_parent_type": count_by(notes, "parent_type", missing="None"),
            "with_attachments": with_attachments,
            "without_attachments": len(notes) - with_attachments,
        }
