"""Tests for field rule evaluation."""

from suitecrm_toolkit.core.validation import check_required, check_rules, is_blank


def test_is_blank():
    """Test values treated as absent."""
    assert is_blank(None)
    assert is_blank("")
    assert not is_blank(0)
    assert not is_blank("0")


def test_check_required():
    """Test that missing, None and empty fields are reported."""
    errors = check_required({"name": "", "last_name": None}, ("name", "last_name", "email1", "title"))
    assert errors == [
        "Field 'name' is required",
        "Field 'last_name' is required",
        "Field 'email1' is required",
        "Field 'title' is required",
    ]
    assert check_required({"name": "Acme"}, ("name",)) == []


def test_rules_skip_missing_and_none_values():
    """Test that rules only apply to provided values."""
    rules = {"email1": {"email": True}, "status": {"in": ["New"]}}
    assert check_rules({"status": None}, rules) == []


def test_rules_check_empty_strings():
    """Test that an empty string is a value and must satisfy its rules."""
    rules = {
        "lead_source": {"in": ["Web Site", "Cold Call"]},
        "email1": {"email": True},
        "description": {"max_length": 10},
    }
    errors = check_rules({"lead_source": "", "email1": "", "description": ""}, rules)
    assert errors == [
        "Field 'lead_source' must be one of: Web Site, Cold Call",
        "Field 'email1' must be a valid email address",
    ]


def test_rules_collect_all_violations():
    """Test that evaluation does not stop at the first violation."""
    rules = {
        "name": {"max_length": 5},
        "status": {"in": ["New", "Closed"]},
        "email1": {"email": True},
        "phone_work": {"phone": True},
    }
    errors = check_rules(
        {"name": "Too long name", "status": "Open", "email1": "not-an-email", "phone_work": "call me"},
        rules,
    )

    assert errors == [
        "Field 'name' cannot exceed 5 characters",
        "Field 'status' must be one of: New, Closed",
        "Field 'email1' must be a valid email address",
        "Field 'phone_work' must be a valid phone number",
    ]


def test_valid_values_pass():
    """Test values that satisfy every rule."""
    rules = {
        "email1": {"email": True},
        "phone_work": {"phone": True},
        "website": {"url": True},
        "code": {"pattern": r"[A-Z]{3}"},
        "amount": {"min": 0, "max": 100},
    }
    data = {
        "email1": "jane.doe@acme.com",
        "phone_work": "+1 (555) 123-4567 ext 89",
        "website": "https://acme.com/about",
        "code": "ABC",
        "amount": "42.5",
    }
    assert check_rules(data, rules) == []


def test_numeric_rules():
    """Test min and max bounds and non-numeric input."""
    rules = {"amount": {"min": 0}, "probability": {"max": 100}}

    assert check_rules({"amount": -1}, rules) == ["Field 'amount' must be at least 0"]
    assert check_rules({"probability": 150}, rules) == ["Field 'probability' cannot exceed 100"]
    assert check_rules({"amount": "lots"}, rules) == ["Field 'amount' must be a number"]


def test_pattern_and_url_rules():
    """Test full-match patterns and URL checks."""
    rules = {"code": {"pattern": r"[A-Z]{3}"}, "website": {"url": True}}

    errors = check_rules({"code": "ABCD", "website": "acme.com"}, rules)
    assert errors == [
        "Field 'code' has an invalid format",
        "Field 'website' must be a valid URL",
    ]


def test_disabled_flags_are_ignored():
    """Test that email/phone/url rules set to False do nothing."""
    rules = {"email1": {"email": False}, "phone_work": {"phone": False}, "website": {"url": False}}
    assert check_rules({"email1": "x", "phone_work": "x", "website": "x"}, rules) == []
