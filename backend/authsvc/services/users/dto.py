"""
DTOs for UserService.

Data Transfer Objects isolate the service layer from ORM models and from the
wire format, keeping the password hash out of every outward contract.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from authsvc.services._shared.ports.user_store import UserRecord
from authsvc.services._shared.ports.user_store import UserUpdateData as UserUpdateIn

__all__ = ["RegistrationIn", "RegistrationOut", "UserPublicOut", "UserUpdateIn"]

# --------------------------------------------------------------------------- #
# Input DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class RegistrationIn:
    """
    Input DTO for self-registration.

    Values are kept as received; :func:`validate_registration` decides
    whether they are acceptable.

    :param email: Login email (normalized by the store).
    :type email: str
    :param first_name: Given name.
    :type first_name: str
    :param last_name: Family name.
    :type last_name: str
    :param password: Raw password.
    :type password: str
    :param confirm_password: Must equal ``password``.
    :type confirm_password: str
    """

    email: Any
    first_name: Any
    last_name: Any
    password: Any
    confirm_password: Any

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> RegistrationIn:
        """Build from a camelCase request body (missing keys become ``None``)."""
        return cls(
            email=payload.get("email"),
            first_name=payload.get("firstName"),
            last_name=payload.get("lastName"),
            password=payload.get("password"),
            confirm_password=payload.get("confirmPassword"),
        )

    def as_payload(self) -> dict[str, Any]:
        """Return the camelCase mapping understood by the validator."""
        return {
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "password": self.password,
            "confirmPassword": self.confirm_password,
        }


# --------------------------------------------------------------------------- #
# Output DTOs
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class UserPublicOut:
    """
    Public-safe representation of a user (no password hash).

    :param id: User identifier.
    :param email: Normalized email.
    :param first_name: Given name.
    :param last_name: Family name.
    :param is_active: Whether the account may log in.
    :param email_verified: Verification flag (informational).
    :param created_at: Creation timestamp.
    :param updated_at: Last update timestamp.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: UserRecord) -> UserPublicOut:
        return cls(
            id=record.id,
            email=record.email,
            first_name=record.first_name,
            last_name=record.last_name,
            is_active=record.is_active,
            email_verified=record.email_verified,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


@dataclass(frozen=True, slots=True)
class RegistrationOut:
    """
    Result of a successful registration.

    :param user: Public-safe user payload.
    :param access_token: Encoded access JWT.
    :param refresh_token: Encoded refresh JWT (already persisted).
    """

    user: UserPublicOut
    access_token: str
    refresh_token: str
