"""Registration validation rules and messages."""

from __future__ import annotations

import pytest

from authsvc.services._shared.errors import FieldError
from authsvc.services.validation.registration import validate_registration

VALID = {
    "email": "a@b.com",
    "firstName": "John",
    "lastName": "Doe",
    "password": "Secure123!",
    "confirmPassword": "Secure123!",
}


def payload(**overrides):
    data = dict(VALID)
    data.update(overrides)
    return data


def messages_for(result, field):
    return [e.message for e in result.errors if e.field == field]


def test_valid_payload():
    result = validate_registration(VALID)
    assert result.is_valid is True
    assert result.errors == []


def test_unknown_keys_are_ignored():
    assert validate_registration(payload(role="admin")).is_valid is True


@pytest.mark.parametrize("data", [{}, None, [], "text", 42])
def test_everything_missing_reports_one_error_per_field(data):
    result = validate_registration(data)
    assert result.is_valid is False
    assert result.errors == [
        FieldError("email", "Email is required"),
        FieldError("firstName", "First name is required"),
        FieldError("lastName", "Last name is required"),
        FieldError("password", "Password is required"),
        FieldError("confirmPassword", "Password confirmation is required"),
    ]


def test_null_values_count_as_missing():
    result = validate_registration(payload(email=None, firstName=None))
    assert [e.field for e in result.errors] == ["email", "firstName"]


class TestEmail:
    @pytest.mark.parametrize("email", ["   ", ""])
    def test_blank(self, email):
        assert messages_for(validate_registration(payload(email=email)), "email") == [
            "Email is required"
        ]

    @pytest.mark.parametrize("email", ["a@b", "ab.com", "a b@c.com", "a@b .com", "@b.com"])
    def test_bad_shape(self, email):
        assert messages_for(validate_registration(payload(email=email)), "email") == [
            "Invalid email format"
        ]

    def test_too_long(self):
        email = "a" * 250 + "@b.com"
        assert messages_for(validate_registration(payload(email=email)), "email") == [
            "Email must be 254 characters or less"
        ]

    def test_non_string(self):
        assert messages_for(validate_registration(payload(email=123)), "email") == [
            "Not a valid string."
        ]


class TestNames:
    @pytest.mark.parametrize("name", ["Mary Jane", "O'Brien", "Smith-Jones"])
    def test_allowed_characters(self, name):
        assert validate_registration(payload(firstName=name, lastName=name)).is_valid

    def test_blank_first_name(self):
        assert messages_for(validate_registration(payload(firstName="  ")), "firstName") == [
            "First name is required"
        ]

    def test_invalid_characters(self):
        assert messages_for(validate_registration(payload(lastName="Doe3")), "lastName") == [
            "Last name can only contain letters, spaces, hyphens, and apostrophes"
        ]

    def test_too_long(self):
        assert messages_for(validate_registration(payload(firstName="A" * 51)), "firstName") == [
            "First name must be 50 characters or less"
        ]

    def test_too_long_and_invalid_reports_both(self):
        assert messages_for(validate_registration(payload(lastName="D0e" * 20)), "lastName") == [
            "Last name must be 50 characters or less",
            "Last name can only contain letters, spaces, hyphens, and apostrophes",
        ]


class TestPassword:
    def test_every_rule_reported_in_order(self):
        result = validate_registration(payload(password="        ", confirmPassword="        "))
        assert messages_for(result, "password") == [
            "Password must contain at least one uppercase letter",
            "Password must contain at least one lowercase letter",
            "Password must contain at least one number",
            "Password must contain at least one special character",
        ]

    def test_too_short(self):
        result = validate_registration(payload(password="Ab1!", confirmPassword="Ab1!"))
        assert messages_for(result, "password") == [
            "Password must be at least 8 characters long"
        ]

    def test_too_long(self):
        long_pw = "Aa1!" * 33
        result = validate_registration(payload(password=long_pw, confirmPassword=long_pw))
        assert messages_for(result, "password") == ["Password must be 128 characters or less"]

    @pytest.mark.parametrize("special", list("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"))
    def test_each_special_character_counts(self, special):
        pw = f"Secure123{special}"
        assert validate_registration(payload(password=pw, confirmPassword=pw)).is_valid

    def test_mismatch(self):
        result = validate_registration(payload(confirmPassword="Secure123?"))
        assert result.errors == [FieldError("confirmPassword", "Passwords do not match")]

    def test_missing_confirmation(self):
        result = validate_registration(payload(confirmPassword=""))
        assert result.errors == [
            FieldError("confirmPassword", "Password confirmation is required")
        ]
