"""Tests for the command line interface."""

import json
from unittest.mock import MagicMock, patch

import pytest

from suitecrm_toolkit.cli.main import main, parse_fields, parse_where
from suitecrm_toolkit.core.errors import AuthenticationError

ENV_VARS = ("SUITE_CRM_URL", "SUITE_CRM_USERNAME", "SUITE_CRM_PASSWORD")


@pytest.fixture
def crm():
    """A connected SuiteCRM double returned by SuiteCRM.from_env()."""
    crm = MagicMock()
    crm.connect.return_value = crm
    crm.__enter__.return_value = crm
    crm.config.url = "https://crm.example.com"
    crm.config.username = "admin"
    crm.client.user_id = "1"
    with patch("suitecrm_toolkit.cli.main.SuiteCRM") as suitecrm:
        suitecrm.from_env.return_value = crm
        suitecrm.from_file.return_value = crm
        yield crm


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SUITECRM_TOOLKIT_HOME", str(tmp_path / "profiles"))
    return tmp_path / "profiles"


# ===== Parsing Tests =====

def test_parse_where():
    """Test --where parsing."""
    assert parse_where(["status=New", "priority = P1"]) == {"status": "New", "priority": " P1"}
    assert parse_where(["name=a=b"]) == {"name": "a=b"}
    assert parse_where(None) == {}


def test_parse_where_invalid():
    """Test malformed --where values."""
    with pytest.raises(ValueError) as exc_info:
        parse_where(["status"])

    assert "Invalid --where expression 'status'" in str(exc_info.value)


def test_parse_fields():
    """Test --fields parsing."""
    assert parse_fields("id, name,,status") == ["id", "name", "status"]
    assert parse_fields(None) is None


# ===== Command Tests =====

def test_no_command_prints_help(capsys):
    """Test that a bare invocation exits with status 1."""
    with pytest.raises(SystemExit) as exc_info:
        main([])

    assert exc_info.value.code == 1
    assert "suitecrm-toolkit" in capsys.readouterr().out


def test_check(crm, capsys):
    """Test the check command."""
    main(["check"])

    captured = capsys.readouterr()
    assert "Connected to https://crm.example.com as admin" in captured.out
    assert "User ID: 1" in captured.out
    crm.connect.assert_called_once()


def test_check_authentication_failure(crm, capsys):
    """Test that a failed login exits with status 1."""
    crm.connect.side_effect = AuthenticationError("Authentication failed: Invalid Login")

    with pytest.raises(SystemExit) as exc_info:
        main(["check"])

    assert exc_info.value.code == 1
    assert "Error: Authentication failed: Invalid Login" in capsys.readouterr().err
    crm.close.assert_called_once()


def test_check_without_configuration(clean_env, capsys):
    """Test the error shown when no connection settings exist."""
    with pytest.raises(SystemExit) as exc_info:
        main(["check"])

    assert exc_info.value.code == 1
    assert "Missing required environment variables" in capsys.readouterr().err


def test_get(crm, capsys):
    """Test the get command."""
    crm.records.return_value.find_by_id.return_value = {"id": "acc-1", "name": "Acme"}

    main(["get", "Accounts", "acc-1", "--fields", "id,name"])

    assert json.loads(capsys.readouterr().out) == {"id": "acc-1", "name": "Acme"}
    crm.records.assert_called_once_with("Accounts")
    crm.records.return_value.find_by_id.assert_called_once_with("acc-1", ["id", "name"])


def test_get_not_found(crm, capsys):
    """Test the get command for a missing record."""
    crm.records.return_value.find_by_id.return_value = None

    with pytest.raises(SystemExit) as exc_info:
        main(["get", "Cases", "case-9"])

    assert exc_info.value.code == 1
    assert "Cases record 'case-9' not found" in capsys.readouterr().err


def test_get_rejects_unknown_module(crm):
    """Test that module names are checked by the parser."""
    with pytest.raises(SystemExit) as exc_info:
        main(["get", "Widgets", "w-1"])

    assert exc_info.value.code == 2


def test_search(crm, capsys):
    """Test the search command."""
    crm.records.return_value.search.return_value = [{"id": "c-1"}]

    main(["search", "Contacts", "--where", "last_name=Doe", "--limit", "5"])

    assert json.loads(capsys.readouterr().out) == [{"id": "c-1"}]
    crm.records.return_value.search.assert_called_once_with(
        {"last_name": "Doe"}, None, limit=5, offset=0
    )


def test_search_no_results(crm, capsys):
    """Test the search command with nothing found."""
    crm.records.return_value.search.return_value = []

    main(["search", "Leads"])

    assert "No Leads records found." in capsys.readouterr().out


def test_search_invalid_where(crm, capsys):
    """Test that a bad --where fails before connecting."""
    with pytest.raises(SystemExit) as exc_info:
        main(["search", "Leads", "--where", "oops"])

    assert exc_info.value.code == 1
    crm.connect.assert_not_called()


def test_stats(crm, capsys):
    """Test the stats command."""
    crm.records.return_value.statistics.return_value = {
        "total": 3,
        "by_status": {"New": 1, "Closed": 2},
    }

    main(["stats", "Cases", "--by", "status"])

    out = capsys.readouterr().out
    assert "Cases: 3 records" in out
    assert out.index("Closed: 2") < out.index("New: 1")
    crm.records.return_value.statistics.assert_called_once_with("status", limit=1000)


def test_modules(capsys):
    """Test the modules command."""
    main(["modules"])

    out = capsys.readouterr().out
    assert "Supported modules (22):" in out
    assert "AOS_Quotes" in out
    assert "required: last_name" in out


def test_save_profile(clean_env, monkeypatch, capsys):
    """Test saving the environment as a profile without its password."""
    monkeypatch.setenv("SUITE_CRM_URL", "https://crm.example.com")
    monkeypatch.setenv("SUITE_CRM_USERNAME", "admin")
    monkeypatch.setenv("SUITE_CRM_PASSWORD", "secret")

    main(["save-profile", "prod"])

    saved = json.loads((clean_env / "prod.json").read_text(encoding="utf-8"))
    assert saved["url"] == "https://crm.example.com"
    assert "password" not in saved
    assert "Saved profile 'prod'" in capsys.readouterr().out


def test_profile_option_uses_saved_profile(crm, clean_env):
    """Test that --profile loads a profile instead of the environment."""
    with patch("suitecrm_toolkit.cli.main.SuiteCRM") as suitecrm:
        suitecrm.from_file.return_value = crm
        main(["--profile", "prod", "check"])

    suitecrm.from_file.assert_called_once()
    assert suitecrm.from_file.call_args[0][0].name == "prod.json"
    suitecrm.from_env.assert_not_called()
