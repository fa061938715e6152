"""Refresh token repository with conditional (race-safe) revocation."""

from __future__ import annotations

from datetime import datetime
from typing import cast

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.engine import CursorResult

from authsvc.models.refresh_token import RefreshToken
from authsvc.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Revocation is expressed as single ``UPDATE ... WHERE is_revoked = false``
    statements so the database arbitrates concurrent revokes: the affected
    row count tells each caller whether *it* flipped the flag.
    """

    model = RefreshToken

    def _filterable_fields(self):
        return {
            "token": RefreshToken.token,
            "user_id": RefreshToken.user_id,
            "is_revoked": RefreshToken.is_revoked,
        }

    def get_valid(self, token: str, now: datetime) -> RefreshToken | None:
        """Return the row for ``token`` only if not revoked and not expired."""
        stmt = select(RefreshToken).where(
            RefreshToken.token == token,
            RefreshToken.is_revoked.is_(False),
            RefreshToken.expires_at > now,
        )
        return cast(RefreshToken | None, self.session.execute(stmt).scalars().first())

    def revoke(self, token: str) -> int:
        """Flip ``is_revoked`` for ``token`` if still unrevoked; return rows affected."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token == token, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def revoke_all_for_user(self, user_id: str) -> int:
        """Revoke every unrevoked token of ``user_id``; return rows affected."""
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id, RefreshToken.is_revoked.is_(False))
            .values(is_revoked=True)
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def delete_expired_or_revoked(self, now: datetime) -> int:
        """Delete rows that are expired or revoked; return rows deleted."""
        stmt = (
            delete(RefreshToken)
            .where(or_(RefreshToken.expires_at < now, RefreshToken.is_revoked.is_(True)))
            .execution_options(synchronize_session=False)
        )
        result = cast(CursorResult, self.session.execute(stmt))
        return int(result.rowcount or 0)

    def count_valid_for_user(self, user_id: str, now: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.is_revoked.is_(False),
                RefreshToken.expires_at > now,
            )
        )
        return int(self.session.execute(stmt).scalar_one())
