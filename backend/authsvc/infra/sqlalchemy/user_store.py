"""SQLAlchemy-backed :class:`UserStore` adapter."""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authsvc.models.user import User
from authsvc.services._shared.errors import DuplicateEmailError, StoreError, violates
from authsvc.services._shared.ports.token_store import as_utc
from authsvc.services._shared.ports.user_store import (
    UserCreateData,
    UserRecord,
    UserStore,
    UserUpdateData,
)
from authsvc.uow.sqlalchemy_uow import (
    SessionProvider,
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)

logger = logging.getLogger(__name__)


def to_record(user: User) -> UserRecord:
    """Map an ORM ``User`` to a detached :class:`UserRecord`."""
    return UserRecord(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        password_hash=user.password_hash,
        is_active=bool(user.is_active),
        email_verified=bool(user.email_verified),
        created_at=as_utc(user.created_at),
        updated_at=as_utc(user.updated_at),
    )


class SQLAlchemyUserStore(UserStore):
    """
    User persistence through the Unit of Work.

    Email uniqueness is enforced by ``uq_users_email``; a violation is
    reported as :class:`DuplicateEmailError`. Other database failures are
    logged and wrapped in :class:`StoreError`.

    :param session_provider: Returns the session each UoW should use.
    """

    def __init__(self, session_provider: SessionProvider) -> None:
        self._session_provider = session_provider

    def _rw(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(self._session_provider)

    def _ro(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork(self._session_provider)

    def create(self, data: UserCreateData) -> UserRecord:
        try:
            with self._rw() as uow:
                user = uow.users.add(
                    User(
                        email=data.email,
                        first_name=data.first_name,
                        last_name=data.last_name,
                        password_hash=data.password_hash,
                    )
                )
                record = to_record(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email"):
                raise DuplicateEmailError() from exc
            logger.error("User insert violated a constraint", exc_info=True)
            raise StoreError("Failed to create user") from exc
        except SQLAlchemyError as exc:
            logger.error("User insert failed", exc_info=True)
            raise StoreError("Failed to create user") from exc
        logger.info("User created", extra={"event": "user.created", "user_id": record.id})
        return record

    def find_by_id(self, user_id: str) -> UserRecord | None:
        try:
            with self._ro() as uow:
                user = uow.users.get(user_id)
                return to_record(user) if user is not None else None
        except SQLAlchemyError as exc:
            logger.error("User lookup by id failed", exc_info=True)
            raise StoreError("Failed to load user") from exc

    def find_by_email(self, email: str) -> UserRecord | None:
        try:
            with self._ro() as uow:
                user = uow.users.get_by_email(email)
                return to_record(user) if user is not None else None
        except SQLAlchemyError as exc:
            logger.error("User lookup by email failed", exc_info=True)
            raise StoreError("Failed to load user") from exc

    def update(self, user_id: str, data: UserUpdateData) -> UserRecord | None:
        try:
            with self._rw() as uow:
                user = uow.users.get(user_id)
                if user is None:
                    return None
                uow.users.assign_updates(user, data.changes())
                record = to_record(user)
        except IntegrityError as exc:
            if violates(exc, "uq_users_email"):
                raise DuplicateEmailError() from exc
            raise StoreError("Failed to update user") from exc
        except SQLAlchemyError as exc:
            logger.error("User update failed", exc_info=True)
            raise StoreError("Failed to update user") from exc
        logger.info("User updated", extra={"event": "user.updated", "user_id": user_id})
        return record

    def delete(self, user_id: str) -> bool:
        try:
            with self._rw() as uow:
                user = uow.users.get(user_id)
                if user is None:
                    return False
                uow.users.delete(user)
        except SQLAlchemyError as exc:
            logger.error("User delete failed", exc_info=True)
            raise StoreError("Failed to delete user") from exc
        logger.info("User deleted", extra={"event": "user.deleted", "user_id": user_id})
        return True

    def count(self) -> int:
        try:
            with self._ro() as uow:
                return uow.users.count()
        except SQLAlchemyError as exc:
            raise StoreError("Failed to count users") from exc

    def find_active(self) -> list[UserRecord]:
        try:
            with self._ro() as uow:
                return [to_record(u) for u in uow.users.list_active()]
        except SQLAlchemyError as exc:
            logger.error("Active user listing failed", exc_info=True)
            raise StoreError("Failed to list users") from exc
