"""User repository for persistence-level lookups."""

from __future__ import annotations

from typing import cast

from sqlalchemy import select

from authsvc.models.user import User
from authsvc.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Persistence-only repository for :class:`User`.

    It NEVER hashes or verifies passwords and never issues tokens; those
    concerns live in the service layer.
    """

    model = User

    # ---------------------------- Whitelists ----------------------------

    def _sortable_fields(self):
        """Expose sortable fields for safe sorting."""
        return {
            "email": User.email,
            "created_at": User.created_at,
        }

    def _filterable_fields(self):
        """Whitelist fields safe for equality filters."""
        return {
            "email": User.email,
            "is_active": User.is_active,
        }

    def _updatable_fields(self):
        """Publicly allowed updatable fields (password hash excluded)."""
        return {"email", "first_name", "last_name", "is_active", "email_verified"}

    # ---------------------------- Lookup helpers ----------------------------

    def get_by_email(self, email: str) -> User | None:
        """Fetch a user by email (case-insensitive).

        :param email: Email address to normalise and search.
        :type email: str
        :returns: User instance or ``None`` when not found.
        :rtype: User | None
        """
        stmt = select(User).where(User.email == email.lower().strip())
        result = self.session.execute(stmt).scalars().first()
        return cast(User | None, result)

    def exists_by_email(self, email: str) -> bool:
        """Return ``True`` when a user with the provided email exists."""
        stmt = select(User.id).where(User.email == email.lower().strip())
        return bool(self.session.execute(stmt).first())

    def list_active(self) -> list[User]:
        """Return active users, newest first."""
        return self.list(filters={"is_active": True}, sort=["-created_at"])
