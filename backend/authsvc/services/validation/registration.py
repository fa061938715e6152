"""
Registration input validation.

:func:`validate_registration` is a pure, total function: it never raises and
reports every violated rule, in field order, so one call can drive complete
form feedback. The rules live on :class:`RegistrationSchema` (Marshmallow),
which reads the camelCase wire names used by clients.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, pre_load, validates_schema

from authsvc.services._shared.errors import FieldError

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
NAME_RE = re.compile(r"[a-zA-Z\s'-]+")
SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

EMAIL_MAX = 254
NAME_MAX = 50
PASSWORD_MIN = 8
PASSWORD_MAX = 128

#: Wire names, in reporting order.
FIELDS = ("email", "firstName", "lastName", "password", "confirmPassword")


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of :func:`validate_registration`."""

    is_valid: bool
    errors: list[FieldError] = field(default_factory=list)


def _blank(value: str) -> bool:
    return value.strip() == ""


def _email_errors(email: str) -> list[str]:
    if _blank(email):
        return ["Email is required"]
    if not EMAIL_RE.fullmatch(email):
        return ["Invalid email format"]
    if len(email) > EMAIL_MAX:
        return [f"Email must be {EMAIL_MAX} characters or less"]
    return []


def _name_errors(value: str, label: str) -> list[str]:
    if _blank(value):
        return [f"{label} is required"]
    out = []
    if len(value) > NAME_MAX:
        out.append(f"{label} must be {NAME_MAX} characters or less")
    if not NAME_RE.fullmatch(value):
        out.append(f"{label} can only contain letters, spaces, hyphens, and apostrophes")
    return out


def _password_errors(password: str) -> list[str]:
    # Whitespace is significant in passwords; only the empty string is "missing".
    if password == "":
        return ["Password is required"]
    out = []
    if len(password) < PASSWORD_MIN:
        out.append(f"Password must be at least {PASSWORD_MIN} characters long")
    if len(password) > PASSWORD_MAX:
        out.append(f"Password must be {PASSWORD_MAX} characters or less")
    if not re.search(r"[A-Z]", password):
        out.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        out.append("Password must contain at least one lowercase letter")
    if not re.search(r"[0-9]", password):
        out.append("Password must contain at least one number")
    if not SPECIAL_RE.search(password):
        out.append("Password must contain at least one special character")
    return out


class RegistrationSchema(Schema):
    """
    Registration payload (camelCase on the wire).

    Missing or ``null`` fields are loaded as empty strings so the "required"
    rules report them with their own messages; non-string values fail the
    field type check instead.
    """

    class Meta:
        unknown = EXCLUDE

    email = fields.String()
    first_name = fields.String(data_key="firstName")
    last_name = fields.String(data_key="lastName")
    password = fields.String()
    confirm_password = fields.String(data_key="confirmPassword")

    @pre_load
    def fill_missing(self, data: Any, **kwargs: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        out = dict(data)
        for name in FIELDS:
            if out.get(name) is None:
                out[name] = ""
        return out

    @validates_schema(skip_on_field_errors=False)
    def check_rules(self, data: dict[str, Any], **kwargs: Any) -> None:
        errors: dict[str, list[str]] = {}

        def add(wire: str, messages: list[str]) -> None:
            if messages:
                errors[wire] = messages

        if "email" in data:
            add("email", _email_errors(data["email"]))
        if "first_name" in data:
            add("firstName", _name_errors(data["first_name"], "First name"))
        if "last_name" in data:
            add("lastName", _name_errors(data["last_name"], "Last name"))
        if "password" in data:
            add("password", _password_errors(data["password"]))
        if "confirm_password" in data:
            confirm = data["confirm_password"]
            if confirm == "":
                add("confirmPassword", ["Password confirmation is required"])
            elif "password" in data and confirm != data["password"]:
                add("confirmPassword", ["Passwords do not match"])

        if errors:
            raise ValidationError(errors)


_schema = RegistrationSchema()


def validate_registration(data: Any) -> ValidationResult:
    """
    Validate a registration payload.

    :param data: Raw request body (any JSON value; non-mappings count as empty).
    :returns: ``ValidationResult`` with every violated rule, in field order.
    """
    payload = data if isinstance(data, Mapping) else {}
    messages = _schema.validate(payload)
    errors = [
        FieldError(field=name, message=str(message))
        for name in FIELDS
        for message in messages.get(name, [])
    ]
    return ValidationResult(is_valid=not errors, errors=errors)
