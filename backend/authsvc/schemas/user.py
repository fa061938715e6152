"""User resource schemas."""

from __future__ import annotations

from marshmallow import Schema, fields


class UserSchema(Schema):
    """Public representation of a user (the password hash is never exposed)."""

    id = fields.String(required=True)
    email = fields.String(required=True)
    first_name = fields.String(required=True, data_key="firstName")
    last_name = fields.String(required=True, data_key="lastName")
    is_active = fields.Boolean(required=True, data_key="isActive")
    email_verified = fields.Boolean(required=True, data_key="emailVerified")
    created_at = fields.DateTime(required=True, data_key="createdAt")
    updated_at = fields.DateTime(required=True, data_key="updatedAt")
