from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Protocol
from uuid import uuid4

from authsvc.services._shared.errors import StoreError

#: Lifetime applied by ``save`` when the caller passes no ``expires_at``.
DEFAULT_REFRESH_TTL = timedelta(days=7)


def as_utc(value: datetime) -> datetime:
    """Label naive datetimes as UTC (SQLite drops tzinfo on round-trip)."""
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


@dataclass(frozen=True)
class RefreshTokenView:
    """
    Read-model for a persisted refresh token.

    :ivar id: Row identifier.
    :ivar user_id: Owner user id.
    :ivar token: Signed refresh token value.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar is_revoked: Whether the token has been revoked.
    :ivar created_at: Persistence timestamp (UTC).
    """

    id: str
    user_id: str
    token: str
    expires_at: datetime
    is_revoked: bool
    created_at: datetime

    def is_valid(self, now: datetime | None = None) -> bool:
        """Return ``True`` when not revoked and not yet expired."""
        now = now or datetime.now(UTC)
        return not self.is_revoked and as_utc(self.expires_at) > now


class TokenStore(Protocol):
    """
    Stateful store for refresh tokens.

    ``revoke`` MUST be atomic: when several callers revoke the same token
    concurrently, exactly one of them observes ``True``.
    """

    def save(self, user_id: str, token: str, expires_at: datetime | None = None) -> bool:
        """Persist a new, non-revoked refresh token (default expiry: 7 days)."""

    def find(self, token: str) -> RefreshTokenView | None:
        """Return the record only while it is valid (not revoked, not expired)."""

    def revoke(self, token: str) -> bool:
        """Conditionally revoke; ``True`` iff this call flipped the flag."""

    def revoke_all(self, user_id: str) -> int:
        """Revoke every non-revoked token of the user; return how many."""

    def cleanup_expired(self) -> int:
        """Delete expired or revoked records; return how many."""

    def count_active(self, user_id: str) -> int:
        """Count the user's currently valid tokens."""


class InMemoryTokenStore(TokenStore):
    """
    In-memory refresh token store with atomic conditional revoke.

    .. note::
       Uses a threading lock to simulate atomicity in unit tests.
    """

    def __init__(self) -> None:
        self._by_token: dict[str, RefreshTokenView] = {}
        self._lock = threading.Lock()

    def save(self, user_id: str, token: str, expires_at: datetime | None = None) -> bool:
        now = datetime.now(UTC)
        with self._lock:
            if token in self._by_token:
                raise StoreError("Failed to save refresh token")
            self._by_token[token] = RefreshTokenView(
                id=uuid4().hex,
                user_id=user_id,
                token=token,
                expires_at=as_utc(expires_at) if expires_at else now + DEFAULT_REFRESH_TTL,
                is_revoked=False,
                created_at=now,
            )
        return True

    def get(self, token: str) -> RefreshTokenView | None:
        """Return the raw record regardless of validity (test helper)."""
        return self._by_token.get(token)

    def find(self, token: str) -> RefreshTokenView | None:
        view = self._by_token.get(token)
        if view is None or not view.is_valid():
            return None
        return view

    def revoke(self, token: str) -> bool:
        with self._lock:
            view = self._by_token.get(token)
            if view is None or view.is_revoked:
                return False
            self._by_token[token] = replace(view, is_revoked=True)
            return True

    def revoke_all(self, user_id: str) -> int:
        with self._lock:
            targets = [
                v for v in self._by_token.values() if v.user_id == user_id and not v.is_revoked
            ]
            for v in targets:
                self._by_token[v.token] = replace(v, is_revoked=True)
            return len(targets)

    def cleanup_expired(self) -> int:
        now = datetime.now(UTC)
        with self._lock:
            stale = [t for t, v in self._by_token.items() if not v.is_valid(now)]
            for t in stale:
                del self._by_token[t]
            return len(stale)

    def count_active(self, user_id: str) -> int:
        now = datetime.now(UTC)
        return sum(1 for v in self._by_token.values() if v.user_id == user_id and v.is_valid(now))
