# authsvc/services/auth/service.py
from __future__ import annotations

from authsvc.core.logger import token_prefix
from authsvc.services._shared.base import BaseService
from authsvc.services._shared.errors import (
    AccountDeactivatedError,
    InvalidCredentialsError,
    InvalidTokenError,
    LoginFailedError,
    LogoutFailedError,
    RefreshFailedError,
    TokenKind,
)
from authsvc.services._shared.ports import (
    PasswordHasher,
    TokenProvider,
    TokenStore,
    UserRecord,
)
from authsvc.services.auth.dto import (
    AuthResultOut,
    LoginIn,
    LogoutIn,
    RefreshIn,
    TokenPairOut,
)
from authsvc.services.users.dto import UserPublicOut
from authsvc.services.users.service import UserService


class AuthService(BaseService):
    """
    Authentication lifecycle service (login / refresh / logout).

    Each refresh token lineage moves through ``issued -> rotated (old revoked,
    new issued) | revoked (logout) | expired``. Signature checks come from the
    :class:`TokenProvider`; validity (not revoked, not expired) comes from the
    :class:`TokenStore`, whose conditional revoke is the concurrency boundary.

    :param users: User service used for lookups.
    :param hasher: Password hashing port.
    :param tokens: Token issuing/verifying port.
    :param token_store: Refresh token persistence port.
    """

    def __init__(
        self,
        *,
        users: UserService,
        hasher: PasswordHasher,
        tokens: TokenProvider,
        token_store: TokenStore,
    ) -> None:
        super().__init__()
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.token_store = token_store

    # ------------------------------------------------------------------ #
    # Login
    # ------------------------------------------------------------------ #

    def login(self, dto: LoginIn) -> AuthResultOut:
        """
        Authenticate credentials and issue a persisted token pair.

        Unknown email and wrong password raise the same
        :class:`InvalidCredentialsError`; the unknown-email path still runs a
        dummy verification so both take comparable time.

        :param dto: Login input.
        :returns: Public user plus access/refresh tokens.
        :raises InvalidCredentialsError: Unknown email or wrong password.
        :raises AccountDeactivatedError: Correct account but ``is_active`` is false.
        :raises LoginFailedError: Any internal fault (details logged).
        """
        with self.guard(LoginFailedError):
            user = self.users.get_by_email(dto.email)
            if user is None:
                self.hasher.dummy_verify(dto.password)
                raise InvalidCredentialsError()
            if not user.is_active:
                raise AccountDeactivatedError()
            if not self.hasher.verify(dto.password, user.password_hash):
                raise InvalidCredentialsError()

            pair = self.tokens.issue(user.id, user.email)
            self.token_store.save(user.id, pair.refresh_token, pair.refresh_expires_at)

        self.log.info("User logged in", extra={"event": "auth.login", "user_id": user.id})
        return AuthResultOut(
            user=UserPublicOut.from_record(user),
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
        )

    # ------------------------------------------------------------------ #
    # Refresh with rotation
    # ------------------------------------------------------------------ #

    def refresh(self, dto: RefreshIn) -> TokenPairOut:
        """
        Rotate a refresh token and emit a new token pair.

        The presented token is revoked *before* the new pair is issued. The
        revoke is conditional, so of two concurrent refreshes with the same
        token only one wins; the loser (and any later replay) gets
        :class:`InvalidTokenError`.

        :param dto: Refresh input.
        :returns: New access/refresh tokens.
        :raises InvalidTokenError: Bad signature, unknown, revoked or expired record.
        :raises TokenExpiredError: The JWT ``exp`` has passed.
        :raises InvalidTokenTypeError: An access token was presented.
        :raises RefreshFailedError: Any internal fault (details logged).
        """
        token = dto.refresh_token
        with self.guard(RefreshFailedError):
            claims = self.tokens.verify_refresh(token)

            record = self.token_store.find(token)
            if record is None or record.user_id != claims.user_id:
                raise InvalidTokenError(TokenKind.REFRESH)
            if not self.token_store.revoke(token):
                raise InvalidTokenError(TokenKind.REFRESH)

            user = self.users.get_by_id(claims.user_id)
            if user is None:
                raise InvalidTokenError(TokenKind.REFRESH)
            if not user.is_active:
                raise AccountDeactivatedError()

            pair = self.tokens.issue(user.id, user.email)
            self.token_store.save(user.id, pair.refresh_token, pair.refresh_expires_at)

        self.log.info(
            "Refresh token rotated",
            extra={
                "event": "auth.refresh",
                "user_id": user.id,
                "token_prefix": token_prefix(token),
            },
        )
        return TokenPairOut(access_token=pair.access_token, refresh_token=pair.refresh_token)

    # ------------------------------------------------------------------ #
    # Logout
    # ------------------------------------------------------------------ #

    def logout(self, dto: LogoutIn) -> bool:
        """
        Revoke a single refresh token.

        :returns: ``False`` when nothing was revoked (unknown or already
            revoked token); logout is idempotent.
        :raises LogoutFailedError: The store failed.
        """
        with self.guard(LogoutFailedError):
            revoked = self.token_store.revoke(dto.refresh_token)
        self.log.info(
            "User logged out" if revoked else "Logout revoked nothing",
            extra={"event": "auth.logout", "token_prefix": token_prefix(dto.refresh_token)},
        )
        return revoked

    def logout_all(self, user_id: str) -> bool:
        """
        Revoke every active refresh token of ``user_id``.

        :returns: Always ``True``; having no active sessions is a valid end state.
        :raises LogoutFailedError: The store failed.
        """
        with self.guard(
            LogoutFailedError, "Failed to logout from all devices", user_id=user_id
        ):
            count = self.token_store.revoke_all(user_id)
        self.log.info(
            "User logged out from all devices",
            extra={"event": "auth.logout_all", "user_id": user_id, "tokens_revoked": count},
        )
        return True

    # ------------------------------------------------------------------ #
    # Misc
    # ------------------------------------------------------------------ #

    def validate_user(self, user_id: str) -> UserRecord | None:
        """Re-confirm that the token owner still exists."""
        return self.users.get_by_id(user_id)

    def cleanup_expired_tokens(self) -> int:
        """Delete expired or revoked refresh tokens; returns how many were removed."""
        return self.token_store.cleanup_expired()
