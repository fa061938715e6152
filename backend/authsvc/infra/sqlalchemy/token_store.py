"""SQLAlchemy-backed :class:`TokenStore` adapter."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.exc import SQLAlchemyError

from authsvc.core.logger import token_prefix
from authsvc.models.refresh_token import RefreshToken
from authsvc.services._shared.errors import StoreError
from authsvc.services._shared.ports.token_store import (
    DEFAULT_REFRESH_TTL,
    RefreshTokenView,
    TokenStore,
    as_utc,
)
from authsvc.uow.sqlalchemy_uow import (
    SessionProvider,
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)


def to_view(row: RefreshToken) -> RefreshTokenView:
    return RefreshTokenView(
        id=row.id,
        user_id=row.user_id,
        token=row.token,
        expires_at=as_utc(row.expires_at),
        is_revoked=bool(row.is_revoked),
        created_at=as_utc(row.created_at),
    )


class SQLAlchemyTokenStore(TokenStore):
    """
    Refresh token persistence in the ``refresh_tokens`` table.

    ``revoke`` is a single conditional ``UPDATE``; among concurrent callers
    exactly one sees a row count of 1.

    :param session_provider: Returns the session each UoW should use.
    """

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider

    def _rw(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self._session_provider)

    def _ro(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork(self._session_provider)

    def save(self, user_id: str, token: str, expires_at: datetime | None = None) -> bool:
        expiry = as_utc(expires_at) if expires_at else datetime.now(UTC) + DEFAULT_REFRESH_TTL
        try:
            with self._rw() as uow:
                uow.refresh_tokens.add(
                    RefreshToken(user_id=user_id, token=token, expires_at=expiry)
                )
        except SQLAlchemyError as exc:
            logger.error(
                "Refresh token save failed",
                extra={"user_id": user_id, "token_prefix": token_prefix(token)},
                exc_info=True,
            )
            raise StoreError("Failed to save refresh token") from exc
        logger.info(
            "Refresh token saved",
            extra={"event": "token.saved", "user_id": user_id, "token_prefix": token_prefix(token)},
        )
        return True

    def find(self, token: str) -> RefreshTokenView | None:
        try:
            with self._ro() as uow:
                row = uow.refresh_tokens.get_valid(token, datetime.now(UTC))
                return to_view(row) if row is not None else None
        except SQLAlchemyError as exc:
            logger.error("Refresh token lookup failed", exc_info=True)
            raise StoreError("Failed to find refresh token") from exc

    def revoke(self, token: str) -> bool:
        try:
            with self._rw() as uow:
                affected = uow.refresh_tokens.revoke(token)
        except SQLAlchemyError as exc:
            logger.error("Refresh token revoke failed", exc_info=True)
            raise StoreError("Failed to revoke refresh token") from exc
        if affected:
            logger.info(
                "Refresh token revoked",
                extra={"event": "token.revoked", "token_prefix": token_prefix(token)},
            )
        return affected > 0

    def revoke_all(self, user_id: str) -> int:
        try:
            with self._rw() as uow:
                affected = uow.refresh_tokens.revoke_all_for_user(user_id)
        except SQLAlchemyError as exc:
            logger.error("Bulk refresh token revoke failed", exc_info=True)
            raise StoreError("Failed to revoke refresh tokens") from exc
        logger.info(
            "Refresh tokens revoked for user",
            extra={"event": "token.revoked_all", "user_id": user_id, "tokens_revoked": affected},
        )
        return affected

    def cleanup_expired(self) -> int:
        try:
            with self._rw() as uow:
                deleted = uow.refresh_tokens.delete_expired_or_revoked(datetime.now(UTC))
        except SQLAlchemyError as exc:
            logger.error("Refresh token cleanup failed", exc_info=True)
            raise StoreError("Failed to clean up refresh tokens") from exc
        logger.info(
            "Expired refresh tokens cleaned up",
            extra={"event": "token.cleanup", "tokens_deleted": deleted},
        )
        return deleted

    def count_active(self, user_id: str) -> int:
        try:
            with self._ro() as uow:
                return uow.refresh_tokens.count_valid_for_user(user_id, datetime.now(UTC))
        except SQLAlchemyError as exc:
            raise StoreError("Failed to count refresh tokens") from exc
