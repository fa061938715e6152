"""
UserService
===========

Application service for the ``User`` aggregate:

- Self-registration (validate, enforce email uniqueness, hash, persist,
  issue and persist the initial token pair).
- Pass-through reads and mutations used by the HTTP layer and by
  :class:`~authsvc.services.auth.service.AuthService`.
"""

from __future__ import annotations

from authsvc.services._shared.base import BaseService
from authsvc.services._shared.errors import (
    DuplicateEmailError,
    RegistrationFailedError,
    ValidationFailedError,
)
from authsvc.services._shared.ports import (
    PasswordHasher,
    TokenProvider,
    TokenStore,
    UserCreateData,
    UserRecord,
    UserStore,
)
from authsvc.services._shared.ports.user_store import normalize_email
from authsvc.services.users.dto import (
    RegistrationIn,
    RegistrationOut,
    UserPublicOut,
    UserUpdateIn,
)
from authsvc.services.validation.registration import validate_registration


class UserService(BaseService):
    """
    Registration orchestration and user pass-throughs.

    :param users: User persistence port.
    :param token_store: Refresh token persistence port.
    :param hasher: Password hashing port.
    :param tokens: Token issuing port.
    """

    def __init__(
        self,
        *,
        users: UserStore,
        token_store: TokenStore,
        hasher: PasswordHasher,
        tokens: TokenProvider,
    ) -> None:
        super().__init__()
        self.users = users
        self.token_store = token_store
        self.hasher = hasher
        self.tokens = tokens

    # --------------------------------------------------------------------- #
    # Registration
    # --------------------------------------------------------------------- #

    def register(self, dto: RegistrationIn) -> RegistrationOut:
        """
        Register a new user and log them in.

        :param dto: Registration input.
        :type dto: RegistrationIn
        :returns: Public user plus a freshly issued token pair.
        :rtype: RegistrationOut
        :raises ValidationFailedError: Input violates one or more rules.
        :raises DuplicateEmailError: The normalized email is already taken.
        :raises RegistrationFailedError: Any internal fault (details logged).
        :raises ConfigurationError: Token secrets are missing.
        """
        result = validate_registration(dto.as_payload())
        if not result.is_valid:
            raise ValidationFailedError(result.errors)

        email = normalize_email(dto.email)
        with self.guard(RegistrationFailedError):
            with self.guard(RegistrationFailedError, "Failed to create user account"):
                # Pre-check for a friendly error; the unique index is authoritative.
                if self.users.find_by_email(email) is not None:
                    raise DuplicateEmailError()

            with self.guard(RegistrationFailedError, "Failed to process user registration"):
                password_hash = self.hasher.hash(dto.password)

            with self.guard(RegistrationFailedError, "Failed to create user account"):
                record = self.users.create(
                    UserCreateData(
                        email=email,
                        first_name=dto.first_name.strip(),
                        last_name=dto.last_name.strip(),
                        password_hash=password_hash,
                    )
                )

            try:
                pair = self.tokens.issue(record.id, record.email)
                self.token_store.save(record.id, pair.refresh_token, pair.refresh_expires_at)
            except Exception:
                # The account must not outlive a registration that reported failure.
                self._discard(record.id)
                raise

        self.log.info("User registered", extra={"event": "user.registered", "user_id": record.id})
        return RegistrationOut(
            user=UserPublicOut.from_record(record),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    def _discard(self, user_id: str) -> None:
        """Delete a user whose registration could not be completed."""
        try:
            self.users.delete(user_id)
        except Exception:
            self.log.error(
                "Failed to roll back incomplete registration",
                extra={"event": "user.register_rollback", "user_id": user_id},
                exc_info=True,
            )

    # --------------------------------------------------------------------- #
    # Pass-throughs
    # --------------------------------------------------------------------- #

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self.users.find_by_id(user_id)

    def get_by_email(self, email: str) -> UserRecord | None:
        """Look up a user by email (lowercased and trimmed first)."""
        return self.users.find_by_email(normalize_email(email))

    def update(self, user_id: str, dto: UserUpdateIn) -> UserRecord | None:
        """
        Apply a partial update.

        :returns: The updated record, or ``None`` if the user does not exist.
        :raises DuplicateEmailError: The new email belongs to another user.
        """
        return self.users.update(user_id, dto)

    def delete(self, user_id: str) -> bool:
        return self.users.delete(user_id)

    def count(self) -> int:
        return self.users.count()

    def list_active(self) -> list[UserRecord]:
        """Active users, newest first."""
        return self.users.find_active()
