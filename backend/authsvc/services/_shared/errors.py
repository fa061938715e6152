"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never import Flask or HTTP
concerns. Every exception carries an :class:`ErrorKind` from a closed set;
the translation to HTTP responses (RFC 7807) is a single table lookup in
``authsvc/core/errors.py``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    PostgreSQL includes the constraint name in the error message. SQLite only
    reports ``table.column``, so for ``uq_<table>_<column>`` names every
    ``table.column`` split of the suffix is matched as well.

    Parameters
    ----------
    exc : IntegrityError
        The exception raised by SQLAlchemy during flush/commit.
    constraint_name : str
        The name of the database constraint to match (e.g., 'uq_users_email').

    Returns
    -------
    bool
        True if the IntegrityError matches the given constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    if constraint_name.lower() in message:
        return True
    # SQLite: "UNIQUE constraint failed: users.email"
    if constraint_name.startswith("uq_") and "unique" in message:
        parts = constraint_name[3:].lower().split("_")
        candidates = {
            f"{'_'.join(parts[:i])}.{'_'.join(parts[i:])}" for i in range(1, len(parts))
        }
        return any(candidate in message for candidate in candidates)
    return False


class ErrorKind(str, Enum):
    """Closed set of failure categories surfaced by the auth core."""

    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_EMAIL = "duplicate_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_DEACTIVATED = "account_deactivated"
    INVALID_TOKEN = "invalid_token"
    TOKEN_EXPIRED = "token_expired"
    INVALID_TOKEN_TYPE = "invalid_token_type"
    CONFIGURATION_ERROR = "configuration_error"
    HASHING_FAILED = "hashing_failed"
    VERIFICATION_FAILED = "verification_failed"
    STORE_FAILED = "store_failed"
    REGISTRATION_FAILED = "registration_failed"
    LOGIN_FAILED = "login_failed"
    REFRESH_FAILED = "refresh_failed"
    LOGOUT_FAILED = "logout_failed"
    NOT_FOUND = "not_found"


class TokenKind(str, Enum):
    """The two token flavours issued by the codec."""

    ACCESS = "access"
    REFRESH = "refresh"


# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - ``kind`` identifies the failure; ``message`` is safe to show clients.
    """

    kind: ErrorKind = ErrorKind.STORE_FAILED
    default_message: str = "Service error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def details(self) -> dict[str, Any] | None:
        """Return structured, client-safe details (``None`` by default)."""
        return None


# --------------------------------------------------------------------------- #
# Validation / registration
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class FieldError:
    """
    A single validation failure.

    :param field: Wire name of the offending input field.
    :param message: Human-readable rule violation.
    """

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class ValidationFailedError(ServiceError):
    """Registration input violated one or more rules."""

    kind = ErrorKind.VALIDATION_FAILED
    default_message = "Validation failed"

    def __init__(self, errors: Sequence[FieldError]) -> None:
        super().__init__()
        self.errors = list(errors)

    def details(self) -> dict[str, Any]:
        return {"errors": [e.as_dict() for e in self.errors]}


class DuplicateEmailError(ServiceError):
    """An account with the normalized email already exists."""

    kind = ErrorKind.DUPLICATE_EMAIL
    default_message = "User with this email already exists"

    def details(self) -> dict[str, Any]:
        return {"errors": [{"field": "email", "message": self.message}]}


class RegistrationFailedError(ServiceError):
    """Registration failed for an internal reason; the cause is logged, not exposed."""

    kind = ErrorKind.REGISTRATION_FAILED
    default_message = "An unexpected error occurred during registration"


# --------------------------------------------------------------------------- #
# Credentials
# --------------------------------------------------------------------------- #


class InvalidCredentialsError(ServiceError):
    """Unknown email or wrong password (deliberately indistinguishable)."""

    kind = ErrorKind.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class AccountDeactivatedError(ServiceError):
    """The account exists but ``is_active`` is false."""

    kind = ErrorKind.ACCOUNT_DEACTIVATED
    default_message = "Account is deactivated"


class HashingError(ServiceError):
    """The password hash primitive failed."""

    kind = ErrorKind.HASHING_FAILED
    default_message = "Failed to hash password"


class VerificationError(ServiceError):
    """The password verification primitive failed unexpectedly."""

    kind = ErrorKind.VERIFICATION_FAILED
    default_message = "Failed to verify password"


class LoginFailedError(ServiceError):
    kind = ErrorKind.LOGIN_FAILED
    default_message = "Failed to complete login process"


# --------------------------------------------------------------------------- #
# Tokens
# --------------------------------------------------------------------------- #


class ConfigurationError(ServiceError):
    """Token secrets (or another required setting) are missing."""

    kind = ErrorKind.CONFIGURATION_ERROR
    default_message = "JWT secrets are not configured"


class InvalidTokenError(ServiceError):
    """
    Token is malformed, badly signed, from another deployment, unknown to
    the store, or already revoked.

    :param token_kind: Which token flavour was being checked.
    """

    kind = ErrorKind.INVALID_TOKEN

    def __init__(self, token_kind: TokenKind, message: str | None = None) -> None:
        self.token_kind = token_kind
        super().__init__(message or f"Invalid {token_kind.value} token")


class TokenExpiredError(ServiceError):
    """Token signature is valid but ``exp`` has passed."""

    kind = ErrorKind.TOKEN_EXPIRED

    def __init__(self, token_kind: TokenKind) -> None:
        self.token_kind = token_kind
        super().__init__(f"{token_kind.value.capitalize()} token expired")


class InvalidTokenTypeError(ServiceError):
    """A correctly signed token of the other flavour was presented."""

    kind = ErrorKind.INVALID_TOKEN_TYPE
    default_message = "Invalid token type"


class RefreshFailedError(ServiceError):
    kind = ErrorKind.REFRESH_FAILED
    default_message = "Failed to refresh token"


class LogoutFailedError(ServiceError):
    kind = ErrorKind.LOGOUT_FAILED
    default_message = "Failed to logout user"


# --------------------------------------------------------------------------- #
# Persistence
# --------------------------------------------------------------------------- #


class StoreError(ServiceError):
    """A user or token store operation failed."""

    kind = ErrorKind.STORE_FAILED
    default_message = "Storage operation failed"


class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, entity: str, key: str | int) -> None:
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} not found: {key}")

