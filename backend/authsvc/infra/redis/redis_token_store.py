# comments in English; reST docstrings
from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from authsvc.core.logger import token_prefix
from authsvc.services._shared.errors import StoreError
from authsvc.services._shared.ports.token_store import (
    DEFAULT_REFRESH_TTL,
    RefreshTokenView,
    TokenStore,
    as_utc,
)

logger = logging.getLogger(__name__)


def _s(value: Any, default: str = "") -> str:
    """Decode a Redis reply (bytes or str) to ``str``."""
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


@dataclass(slots=True)
class RedisRefreshTokenStore(TokenStore):
    """
    Redis-backed refresh token store.

    Layout
    ------
    - ``rt:<sha256(token)>`` hash: ``id``, ``user_id``, ``token``,
      ``expires_at``, ``is_revoked``, ``created_at``; the key expires with
      the token.
    - ``rt:u:<user_id>`` set: digests of the user's tokens; it expires with
      the longest-lived of them, and :meth:`cleanup_expired` prunes it sooner.

    Conditional revoke uses WATCH/MULTI/EXEC (optimistic locking), so among
    concurrent revokers exactly one observes ``True``.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _digest(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @classmethod
    def _k(cls, token: str) -> str:
        return f"rt:{cls._digest(token)}"

    @staticmethod
    def _kd(digest: str) -> str:
        return f"rt:{digest}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> float:
        return as_utc(dt).timestamp()

    @staticmethod
    def _view(h: dict[Any, Any]) -> RefreshTokenView:
        get = lambda name: h.get(name.encode()) if name.encode() in h else h.get(name)  # noqa: E731
        return RefreshTokenView(
            id=_s(get("id")),
            user_id=_s(get("user_id")),
            token=_s(get("token")),
            expires_at=datetime.fromtimestamp(float(_s(get("expires_at"), "0")), tz=UTC),
            is_revoked=_s(get("is_revoked"), "0") == "1",
            created_at=datetime.fromtimestamp(float(_s(get("created_at"), "0")), tz=UTC),
        )

    def _conditional_revoke(self, key: str) -> bool:
        """Flip ``is_revoked`` on ``key`` if present and unrevoked (optimistic lock)."""
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(key)
                    state = p.hget(key, "is_revoked")
                    if state is None or _s(state) == "1":
                        p.unwatch()
                        return False
                    p.multi()
                    p.hset(key, "is_revoked", "1")
                    p.execute()
                    return True
            except WatchError:
                # Concurrent modification detected; re-read and retry
                continue

    # -------------------- API ------------------------

    def save(self, user_id: str, token: str, expires_at: datetime | None = None) -> bool:
        now = datetime.now(UTC)
        expiry = as_utc(expires_at) if expires_at else now + DEFAULT_REFRESH_TTL
        key = self._k(token)
        ttl = max(1, int(self._to_ts(expiry) - now.timestamp()))
        user_key = self._ku(user_id)
        try:
            if self.r.exists(key):
                raise StoreError("Failed to save refresh token")
            # Never shorten the index below a token it still lists
            index_ttl = max(ttl, int(self.r.ttl(user_key)))
            pipe = self.r.pipeline(transaction=True)
            pipe.hset(
                key,
                mapping={
                    "id": uuid4().hex,
                    "user_id": user_id,
                    "token": token,
                    "expires_at": str(self._to_ts(expiry)),
                    "is_revoked": "0",
                    "created_at": str(now.timestamp()),
                },
            )
            pipe.expire(key, ttl)
            pipe.sadd(user_key, self._digest(token))
            pipe.expire(user_key, index_ttl)
            pipe.execute()
        except RedisError as exc:
            logger.error("Refresh token save failed", extra={"user_id": user_id}, exc_info=True)
            raise StoreError("Failed to save refresh token") from exc
        logger.info(
            "Refresh token saved",
            extra={"event": "token.saved", "user_id": user_id, "token_prefix": token_prefix(token)},
        )
        return True

    def find(self, token: str) -> RefreshTokenView | None:
        try:
            h = self.r.hgetall(self._k(token))
        except RedisError as exc:
            raise StoreError("Failed to find refresh token") from exc
        if not h:
            return None
        view = self._view(h)
        return view if view.is_valid() else None

    def revoke(self, token: str) -> bool:
        try:
            revoked = self._conditional_revoke(self._k(token))
        except RedisError as exc:
            logger.error("Refresh token revoke failed", exc_info=True)
            raise StoreError("Failed to revoke refresh token") from exc
        if revoked:
            logger.info(
                "Refresh token revoked",
                extra={"event": "token.revoked", "token_prefix": token_prefix(token)},
            )
        return revoked

    def revoke_all(self, user_id: str) -> int:
        try:
            digests = [_s(m) for m in self.r.smembers(self._ku(user_id))]
            affected = sum(1 for d in digests if self._conditional_revoke(self._kd(d)))
        except RedisError as exc:
            logger.error("Bulk refresh token revoke failed", exc_info=True)
            raise StoreError("Failed to revoke refresh tokens") from exc
        logger.info(
            "Refresh tokens revoked for user",
            extra={"event": "token.revoked_all", "user_id": user_id, "tokens_revoked": affected},
        )
        return affected

    def cleanup_expired(self) -> int:
        """
        Delete revoked or expired hashes and prune dangling index entries.

        Keys removed by Redis TTL expiry are already gone and are not counted.
        """
        now = datetime.now(UTC)
        deleted = 0
        try:
            for user_key in self.r.scan_iter(match="rt:u:*"):
                for member in self.r.smembers(user_key):
                    digest = _s(member)
                    key = self._kd(digest)
                    h = self.r.hgetall(key)
                    if not h:
                        self.r.srem(user_key, member)
                        continue
                    if not self._view(h).is_valid(now):
                        pipe = self.r.pipeline(transaction=True)
                        pipe.delete(key)
                        pipe.srem(user_key, member)
                        pipe.execute()
                        deleted += 1
        except RedisError as exc:
            logger.error("Refresh token cleanup failed", exc_info=True)
            raise StoreError("Failed to clean up refresh tokens") from exc
        logger.info(
            "Expired refresh tokens cleaned up",
            extra={"event": "token.cleanup", "tokens_deleted": deleted},
        )
        return deleted

    def count_active(self, user_id: str) -> int:
        now = datetime.now(UTC)
        try:
            digests = [_s(m) for m in self.r.smembers(self._ku(user_id))]
            count = 0
            for d in digests:
                h = self.r.hgetall(self._kd(d))
                if h and self._view(h).is_valid(now):
                    count += 1
            return count
        except RedisError as exc:
            raise StoreError("Failed to count refresh tokens") from exc
