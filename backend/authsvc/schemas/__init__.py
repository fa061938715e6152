"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import AuthResultSchema, LoginSchema, RefreshTokenSchema, TokenPairSchema
from .user import UserSchema

__all__ = [
    "AuthResultSchema",
    "LoginSchema",
    "RefreshTokenSchema",
    "TokenPairSchema",
    "UserSchema",
]
