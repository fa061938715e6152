"""Service layer public API.

This package exposes the essential building blocks for the service layer so
that callers can import from :mod:`authsvc.services` without knowing the
internal structure.

Re-exports
----------
- Base primitives (from ``authsvc.services._shared.base``)
    * :class:`BaseService`

- User service (from ``authsvc.services.users``)
    * :class:`UserService`
    * DTOs: :class:`RegistrationIn`, :class:`RegistrationOut`,
      :class:`UserPublicOut`, :class:`UserUpdateIn`

- Auth service (from ``authsvc.services.auth``)
    * :class:`AuthService`
    * DTOs: :class:`LoginIn`, :class:`RefreshIn`, :class:`LogoutIn`,
      :class:`AuthResultOut`, :class:`TokenPairOut`

- Registration validation (from ``authsvc.services.validation``)
    * :func:`validate_registration`, :class:`ValidationResult`
"""

from __future__ import annotations

# Base primitives
from ._shared.base import BaseService

# Auth service + DTOs
from .auth.dto import AuthResultOut, LoginIn, LogoutIn, RefreshIn, TokenPairOut
from .auth.service import AuthService

# User service + DTOs
from .users.dto import RegistrationIn, RegistrationOut, UserPublicOut, UserUpdateIn
from .users.service import UserService
from .validation.registration import ValidationResult, validate_registration

__all__ = [
    # Base
    "BaseService",
    # Users
    "UserService",
    "RegistrationIn",
    "RegistrationOut",
    "UserPublicOut",
    "UserUpdateIn",
    # Auth
    "AuthService",
    "LoginIn",
    "RefreshIn",
    "LogoutIn",
    "AuthResultOut",
    "TokenPairOut",
    # Validation
    "ValidationResult",
    "validate_registration",
]
