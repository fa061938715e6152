"""
authsvc.services._shared.ports
==============================

Collection of *ports* (hexagonal interfaces) the auth services depend on.

Modules
-------
- :mod:`token_provider`:
    :class:`~.TokenProvider` — issuing and verifying access/refresh tokens.

- :mod:`password_hasher`:
    :class:`~.PasswordHasher` — one-way password hashing.

- :mod:`token_store`:
    :class:`~.TokenStore`, :class:`~.RefreshTokenView` and the in-memory double.

- :mod:`user_store`:
    :class:`~.UserStore`, :class:`~.UserRecord` and the in-memory double.

Concrete adapters (SQLAlchemy, Redis, bcrypt, PyJWT) live under
``authsvc.infra``.
"""

from __future__ import annotations

from .password_hasher import PasswordHasher
from .token_provider import TokenClaims, TokenPair, TokenProvider
from .token_store import InMemoryTokenStore, RefreshTokenView, TokenStore
from .user_store import (
    InMemoryUserStore,
    UserCreateData,
    UserRecord,
    UserStore,
    UserUpdateData,
)

__all__ = [
    "PasswordHasher",
    "TokenProvider",
    "TokenClaims",
    "TokenPair",
    "TokenStore",
    "RefreshTokenView",
    "InMemoryTokenStore",
    "UserStore",
    "UserRecord",
    "UserCreateData",
    "UserUpdateData",
    "InMemoryUserStore",
]
