"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, ValidationError, fields, validates

from authsvc.schemas.user import UserSchema
from authsvc.services.validation.registration import EMAIL_RE


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    class Meta:
        unknown = EXCLUDE

    email = fields.String(required=True, error_messages={"required": "Email is required"})
    password = fields.String(required=True, error_messages={"required": "Password is required"})

    @validates("email")
    def check_email(self, value: str, **kwargs: Any) -> None:
        if not value:
            raise ValidationError("Email is required")
        if not EMAIL_RE.fullmatch(value):
            raise ValidationError("Please enter a valid email address")

    @validates("password")
    def check_password(self, value: str, **kwargs: Any) -> None:
        if not value:
            raise ValidationError("Password is required")


class RefreshTokenSchema(Schema):
    """Input payload carrying a refresh token (refresh and logout)."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(
        required=True,
        data_key="refreshToken",
        error_messages={"required": "Refresh token is required"},
    )

    @validates("refresh_token")
    def check_token(self, value: str, **kwargs: Any) -> None:
        if not value.strip():
            raise ValidationError("Refresh token is required")


class TokenPairSchema(Schema):
    """Response payload with an access/refresh token pair."""

    access_token = fields.String(required=True, data_key="accessToken")
    refresh_token = fields.String(required=True, data_key="refreshToken")


class AuthResultSchema(TokenPairSchema):
    """Response payload for registration and login."""

    user = fields.Nested(UserSchema, required=True)
