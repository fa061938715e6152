from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from authsvc.services._shared.errors import DuplicateEmailError


def normalize_email(email: str) -> str:
    """Lowercase and trim an email address."""
    return email.strip().lower()


@dataclass(frozen=True, slots=True)
class UserRecord:
    """
    Read-model of a persisted user, detached from any ORM session.

    ``password_hash`` is present here but never leaves the service layer.
    """

    id: str
    email: str
    first_name: str
    last_name: str
    password_hash: str
    is_active: bool
    email_verified: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class UserCreateData:
    """Fields required to create a user; ``password_hash`` is already hashed."""

    email: str
    first_name: str
    last_name: str
    password_hash: str


@dataclass(frozen=True, slots=True)
class UserUpdateData:
    """
    Partial update; ``None`` means "leave unchanged".

    :param email: New email (normalized by the store).
    :param first_name: New first name (trimmed by the store).
    :param last_name: New last name (trimmed by the store).
    :param is_active: Activate / deactivate the account.
    :param email_verified: Flip the verification flag.
    """

    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    is_active: bool | None = None
    email_verified: bool | None = None

    def changes(self) -> dict[str, object]:
        """Return only the provided fields, normalized for storage."""
        out: dict[str, object] = {}
        if self.email is not None:
            out["email"] = normalize_email(self.email)
        if self.first_name is not None:
            out["first_name"] = self.first_name.strip()
        if self.last_name is not None:
            out["last_name"] = self.last_name.strip()
        if self.is_active is not None:
            out["is_active"] = self.is_active
        if self.email_verified is not None:
            out["email_verified"] = self.email_verified
        return out


class UserStore(Protocol):
    """
    Persistence contract for users.

    Email uniqueness MUST be enforced atomically by the store; a violating
    ``create``/``update`` raises :class:`DuplicateEmailError`.
    """

    def create(self, data: UserCreateData) -> UserRecord: ...

    def find_by_id(self, user_id: str) -> UserRecord | None: ...

    def find_by_email(self, email: str) -> UserRecord | None: ...

    def update(self, user_id: str, data: UserUpdateData) -> UserRecord | None: ...

    def delete(self, user_id: str) -> bool: ...

    def count(self) -> int: ...

    def find_active(self) -> list[UserRecord]: ...


class InMemoryUserStore(UserStore):
    """
    Dictionary-backed user store for unit tests.

    .. note::
       A threading lock stands in for the database unique index.
    """

    def __init__(self) -> None:
        self._by_id: dict[str, UserRecord] = {}
        self._lock = threading.Lock()

    def _email_taken(self, email: str, *, exclude_id: str | None = None) -> bool:
        return any(u.email == email and u.id != exclude_id for u in self._by_id.values())

    def create(self, data: UserCreateData) -> UserRecord:
        email = normalize_email(data.email)
        now = datetime.now(UTC)
        with self._lock:
            if self._email_taken(email):
                raise DuplicateEmailError()
            record = UserRecord(
                id=uuid4().hex,
                email=email,
                first_name=data.first_name.strip(),
                last_name=data.last_name.strip(),
                password_hash=data.password_hash,
                is_active=True,
                email_verified=False,
                created_at=now,
                updated_at=now,
            )
            self._by_id[record.id] = record
            return record

    def find_by_id(self, user_id: str) -> UserRecord | None:
        return self._by_id.get(user_id)

    def find_by_email(self, email: str) -> UserRecord | None:
        target = normalize_email(email)
        return next((u for u in self._by_id.values() if u.email == target), None)

    def update(self, user_id: str, data: UserUpdateData) -> UserRecord | None:
        changes = data.changes()
        with self._lock:
            current = self._by_id.get(user_id)
            if current is None:
                return None
            email = changes.get("email")
            if isinstance(email, str) and self._email_taken(email, exclude_id=user_id):
                raise DuplicateEmailError()
            updated = replace(current, **changes, updated_at=datetime.now(UTC))
            self._by_id[user_id] = updated
            return updated

    def delete(self, user_id: str) -> bool:
        with self._lock:
            return self._by_id.pop(user_id, None) is not None

    def count(self) -> int:
        return len(self._by_id)

    def find_active(self) -> list[UserRecord]:
        active = [u for u in self._by_id.values() if u.is_active]
        return sorted(active, key=lambda u: u.created_at, reverse=True)
