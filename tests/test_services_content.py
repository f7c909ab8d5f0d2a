"""Tests for the Notes, Documents, Emails and EmailTemplates services."""

from unittest.mock import Mock

import pytest

from suitecrm_toolkit.client.rest_client import SuiteCRMClient
from suitecrm_toolkit.core.errors import RecordNotFoundError, ValidationError
from suitecrm_toolkit.services import (
    DocumentService,
    EmailService,
    EmailTemplateService,
    NoteService,
    ServiceDirectory,
)
from suitecrm_toolkit.services.email_templates import replace_variables, validate_template


@pytest.fixture
def api():
    api = Mock(spec=SuiteCRMClient)
    api.create_record.return_value = "new-1"
    api.update_record.return_value = True
    api.search_records.return_value = []
    api.get_record.side_effect = lambda module, record_id, fields=None: {"id": record_id}
    return api


@pytest.fixture
def directory(api):
    return ServiceDirectory(api)


def sent_data(api, method="create_record"):
    return getattr(api, method).call_args[0][-1]


def sent_criteria(api):
    return api.search_records.call_args[0][1]


# ===== Note Tests =====

def test_create_note_with_attachment(directory, api, tmp_path):
    """Test that the note is created before its file is uploaded."""
    report = tmp_path / "report.pdf"
    report.write_bytes(b"%PDF-1.4 test")
    api.create_record.return_value = "note-1"
    notes = NoteService(directory)

    note_id = notes.create_note_with_attachment({"name": "Quarterly report"}, report)

    assert note_id == "note-1"
    data = sent_data(api)
    assert data["filename"] == "report.pdf"
    assert data["file_mime_type"] == "application/pdf"
    assert data["note_source"] == "internal"
    api.set_note_attachment.assert_called_once_with("note-1", "report.pdf", b"%PDF-1.4 test")


def test_create_note_with_missing_file(directory, api, tmp_path):
    """Test that a missing file fails before anything is created."""
    notes = NoteService(directory)

    with pytest.raises(ValidationError):
        notes.create_note_with_attachment({"name": "Ghost"}, tmp_path / "missing.txt")

    api.create_record.assert_not_called()
    api.set_note_attachment.assert_not_called()


def test_attach_file_to_note(directory, api, tmp_path):
    """Test uploading to an existing note."""
    attachment = tmp_path / "notes.txt"
    attachment.write_text("hello", encoding="utf-8")
    api.set_note_attachment.return_value = "note-1"
    notes = NoteService(directory)

    assert notes.attach_file_to_note("note-1", attachment) == "note-1"
    api.set_note_attachment.assert_called_once_with("note-1", "notes.txt", b"hello")


def test_create_quick_note_with_parent(directory, api):
    """Test quick notes check their parent."""
    notes = NoteService(directory)

    notes.create_quick_note("Call summary", "Went well", "Accounts", "acc-1")

    data = sent_data(api)
    assert data["parent_type"] == "Accounts"
    api.get_record.assert_any_call("Accounts", "acc-1", ["id"])


def test_note_flags_and_source(directory, api):
    """Test flag conversion and note source rule."""
    notes = NoteService(directory)

    notes.create_note({"name": "Portal note", "portal_flag": True, "embed_flag": "no"})
    data = sent_data(api)
    assert data["portal_flag"] == "1"
    assert data["embed_flag"] == "0"

    with pytest.raises(ValidationError):
        notes.create_note({"name": "Bad source", "note_source": "carrier pigeon"})


def test_note_statistics(directory, api):
    """Test note statistics."""
    notes = NoteService(directory)
    api.search_records.return_value = [
        {"note_source": "internal", "parent_type": "Accounts", "filename": "a.pdf"},
        {"note_source": "email", "parent_type": "", "filename": ""},
    ]

    stats = notes.get_note_statistics()

    assert stats["with_attachments"] == 1
    assert stats["without_attachments"] == 1
    assert stats["by_parent_type"] == {"Accounts": 1, "None": 1}


def test_find_notes_with_attachments(directory, api):
    """Test attachment criteria."""
    NoteService(directory).find_notes_with_attachments()

    assert sent_criteria(api) == {"filename": {"operator": "not_empty", "value": None}}


# ===== Document Tests =====

def test_create_document_defaults(directory, api):
    """Test document defaults."""
    DocumentService(directory).create_document({"document_name": "Handbook"})

    data = sent_data(api)
    assert data["status"] == "Active"
    assert data["revision"] == "1.0"


def test_create_document_with_file(directory, api, tmp_path):
    """Test pointing a document at a local file."""
    contract = tmp_path / "contract.docx"
    contract.write_bytes(b"PK")

    DocumentService(directory).create_document_with_file({"document_name": "Contract"}, contract)

    data = sent_data(api)
    assert data["save_filename"] == "contract.docx"
    assert data["file_upload_path"] == str(contract)


def test_create_document_revision(directory, api):
    """Test that a revision copies fields and bumps the number."""
    api.get_record.side_effect = None
    api.get_record.return_value = {
        "id": "doc-1",
        "document_name": "Handbook",
        "category": "HR",
        "revision": "1.3",
        "status": "Inactive",
    }
    documents = DocumentService(directory)

    documents.create_document_revision("doc-1", {"description": "Updated leave policy"})

    data = sent_data(api)
    assert data["document_name"] == "Handbook"
    assert data["category"] == "HR"
    assert data["revision"] == "1.4"
    assert data["status"] == "Active"
    assert data["description"] == "Updated leave policy"
    assert "id" not in data


def test_revision_of_missing_document(directory, api):
    """Test revising a document that does not exist."""
    api.get_record.side_effect = None
    api.get_record.return_value = None

    with pytest.raises(RecordNotFoundError):
        DocumentService(directory).create_document_revision("doc-9")


def test_document_statistics(directory, api):
    """Test document statistics."""
    api.search_records.return_value = [
        {"status": "Active", "category": "HR", "type": "Policy"},
        {"status": "Draft", "category": "HR", "type": ""},
    ]

    stats = DocumentService(directory).get_document_statistics()

    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["by_category"] == {"HR": 2}
    assert stats["by_type"] == {"Policy": 1, "Unknown": 1}


# ===== Email Tests =====

def test_log_sent_email(directory, api):
    """Test logging an outgoing email."""
    EmailService(directory).log_sent_email({
        "name": "Proposal",
        "from_addr": "jane.doe@acme.com",
        "to_addrs": "buyer@globex.com",
        "date_sent": "2024-03-01",
    })

    data = sent_data(api)
    assert data["status"] == "sent"
    assert data["type"] == "outbound"
    assert data["date_sent"] == "2024-03-01 00:00:00"


def test_log_received_email_stamps_date(directory, api):
    """Test logging an incoming email."""
    EmailService(directory).log_received_email({"name": "Question"})

    data = sent_data(api)
    assert data["status"] == "received"
    assert data["type"] == "inbound"
    assert len(data["date_received"]) == 19


def test_email_invalid_sender(directory, api):
    """Test email address rule on from_addr."""
    with pytest.raises(ValidationError) as exc_info:
        EmailService(directory).create_email({"name": "Hi", "from_addr": "jane at acme"})

    assert exc_info.value.errors == ["Field 'from_addr' must be a valid email address"]


def test_mark_as_read_and_archive(directory, api):
    """Test email status updates."""
    emails = EmailService(directory)

    emails.mark_as_read("em-1")
    assert sent_data(api, "update_record") == {"status": "read"}

    emails.archive_email("em-1")
    assert sent_data(api, "update_record") == {"status": "archived"}


def test_find_emails_by_date_range(directory, api):
    """Test date range criteria."""
    EmailService(directory).find_emails_by_date_range("2024-03-01", "2024-03-31")

    assert sent_criteria(api) == {
        "date_entered": {"operator": "between", "value": ["2024-03-01 00:00:00", "2024-03-31 23:59:59"]}
    }


def test_email_statistics(directory, api):
    """Test email statistics."""
    api.search_records.return_value = [
        {"status": "sent", "type": "outbound"},
        {"status": "sent", "type": "outbound"},
        {"status": "received", "type": "inbound"},
    ]

    stats = EmailService(directory).get_email_statistics()

    assert stats["total"] == 3
    assert stats["sent"] == 2
    assert stats["received"] == 1
    assert stats["draft"] == 0
    assert stats["outbound"] == 2
    assert stats["inbound"] == 1


# ===== Template Tests =====

def test_validate_template_warnings():
    """Test unknown variables and unbalanced HTML."""
    result = validate_template({
        "subject": "Hello $contact_first_name",
        "body": "<p>Hi $contact_first_name, your code is $promo_code<br><b>today</p>",
    })

    assert result["valid"] is True
    assert result["warnings"] == [
        "Variable '$promo_code' may not be available in all contexts",
        "HTML tags may not be properly balanced",
    ]


def test_validate_template_empty_subject():
    """Test that a present but empty subject is an error."""
    result = validate_template({"subject": "", "body": "Hi"})

    assert result["valid"] is False
    assert result["errors"] == ["Subject is required"]


def test_replace_variables_longest_first():
    """Test that overlapping names substitute correctly."""
    content = "Dear $contact_first_name ($contact)"

    assert replace_variables(content, {"contact": "C-1", "contact_first_name": "Jane"}) == "Dear Jane (C-1)"


def test_create_template_duplicate_name(directory, api):
    """Test that template names are unique."""
    api.search_records.return_value = [{"id": "tpl-1"}]
    templates = EmailTemplateService(directory)

    with pytest.raises(ValidationError) as exc_info:
        templates.create_template({"name": "Welcome", "subject": "Hi", "body": "Hello"})

    assert exc_info.value.errors == ["Template with name 'Welcome' already exists"]
    assert sent_criteria(api) == {"name": "Welcome"}
    api.create_record.assert_not_called()


def test_clone_template(directory, api):
    """Test cloning strips system fields and unpublishes."""
    api.get_record.side_effect = None
    api.get_record.return_value = {
        "id": "tpl-1",
        "name": "Welcome",
        "subject": "Hi $contact_first_name",
        "body": "Welcome aboard",
        "published": "1",
        "date_entered": "2024-01-01 00:00:00",
        "type": "",
    }
    templates = EmailTemplateService(directory)

    templates.clone_template("tpl-1", "Welcome v2", {"subject": "Hello $contact_first_name"})

    data = sent_data(api)
    assert data["name"] == "Welcome v2"
    assert data["subject"] == "Hello $contact_first_name"
    assert data["published"] == "0"
    assert "id" not in data
    assert "date_entered" not in data
    assert "type" not in data


def test_clone_missing_template(directory, api):
    """Test cloning a template that does not exist."""
    api.get_record.side_effect = None
    api.get_record.return_value = None

    with pytest.raises(RecordNotFoundError) as exc_info:
        EmailTemplateService(directory).clone_template("tpl-9", "Copy")

    assert str(exc_info.value) == "Template with ID 'tpl-9' does not exist"


def test_render_template(directory, api):
    """Test rendering subject and body."""
    api.get_record.side_effect = None
    api.get_record.return_value = {
        "id": "tpl-1",
        "subject": "Hi $contact_first_name",
        "body": "Your account manager is $user_first_name.",
    }

    rendered = EmailTemplateService(directory).render_template(
        "tpl-1", {"contact_first_name": "Jane", "user_first_name": "Sam"}
    )

    assert rendered == {"subject": "Hi Jane", "body": "Your account manager is Sam."}


def test_prepare_test_email(directory, api):
    """Test that a rendered draft email is stored for the test address."""
    api.get_record.side_effect = lambda module, record_id, fields=None: {
        "id": record_id,
        "subject": "Hi $contact_first_name",
        "body": "Sent to $contact_email",
    }
    api.create_record.return_value = "em-1"

    email_id = EmailTemplateService(directory).prepare_test_email(
        "tpl-1", "jane.doe@acme.com", {"contact_first_name": "Jane"}
    )

    assert email_id == "em-1"
    module, data = api.create_record.call_args[0]
    assert module == "Emails"
    assert data["subject"] == "Hi Jane"
    assert data["description"] == "Sent to jane.doe@acme.com"
    assert data["to_addrs"] == "jane.doe@acme.com"
    assert data["status"] == "draft"


def test_prepare_test_email_invalid_address(directory, api):
    """Test that the test address is validated first."""
    with pytest.raises(ValidationError) as exc_info:
        EmailTemplateService(directory).prepare_test_email("tpl-1", "not-an-address")

    assert str(exc_info.value).startswith("Invalid test email address")
    api.get_record.assert_not_called()


def test_get_template_variables():
    """Test variable listing per module."""
    variables = EmailTemplateService(Mock()).get_template_variables("Lead")

    assert variables["module"] == "Lead"
    assert "$lead_status" in variables["variables"]
    assert "$contact_first_name" in variables["variables"]
