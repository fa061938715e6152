"""PyJWT adapter issuing and verifying typed access/refresh tokens."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import jwt

from authsvc.core.config import TokenSettings
from authsvc.services._shared.errors import (
    ConfigurationError,
    InvalidTokenError,
    InvalidTokenTypeError,
    TokenExpiredError,
    TokenKind,
)
from authsvc.services._shared.ports.token_provider import TokenClaims, TokenPair, TokenProvider

logger = logging.getLogger(__name__)

BEARER_SCHEME = "Bearer"
_REQUIRED_CLAIMS = ["userId", "email", "type", "iat", "exp", "iss", "aud", "jti"]


class JWTTokenCodec(TokenProvider):
    """
    HS256 token codec with one secret per token flavour.

    Access and refresh tokens are signed with different keys, carry a
    ``type`` claim, and are bound to the configured issuer and audience.

    :param settings: Secrets, issuer/audience and lifetimes.
    """

    def __init__(self, settings: TokenSettings) -> None:
        self.settings = settings

    # -------------------- helpers --------------------

    def _secrets(self) -> dict[TokenKind, str]:
        s = self.settings
        if not s.access_secret or not s.refresh_secret:
            raise ConfigurationError()
        return {TokenKind.ACCESS: s.access_secret, TokenKind.REFRESH: s.refresh_secret}

    @staticmethod
    def _other(kind: TokenKind) -> TokenKind:
        return TokenKind.REFRESH if kind is TokenKind.ACCESS else TokenKind.ACCESS

    def _encode(
        self, *, kind: TokenKind, user_id: str, email: str, now: datetime, key: str
    ) -> tuple[str, datetime]:
        ttl = self.settings.access_ttl if kind is TokenKind.ACCESS else self.settings.refresh_ttl
        expires_at = now + ttl
        payload: dict[str, Any] = {
            "userId": user_id,
            "email": email,
            "type": kind.value,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self.settings.issuer,
            "aud": self.settings.audience,
            "jti": uuid4().hex,
        }
        token = jwt.encode(payload, key, algorithm=self.settings.algorithm)
        return token, datetime.fromtimestamp(payload["exp"], tz=UTC)

    def _decode(self, token: str, key: str, *, verify_exp: bool = True) -> dict[str, Any]:
        return jwt.decode(
            token,
            key,
            algorithms=[self.settings.algorithm],
            issuer=self.settings.issuer,
            audience=self.settings.audience,
            options={"require": _REQUIRED_CLAIMS, "verify_exp": verify_exp},
        )

    def _signed_as(self, token: str, key: str, kind: TokenKind) -> bool:
        """Return ``True`` if ``token`` is a valid ``kind`` token under ``key`` (no expiry)."""
        try:
            payload = self._decode(token, key, verify_exp=False)
        except jwt.InvalidTokenError:
            return False
        return payload.get("type") == kind.value

    def _verify(self, token: str, expected: TokenKind) -> TokenClaims:
        keys = self._secrets()
        other = self._other(expected)
        # Type is settled before expiry: a stale token of the wrong flavour is
        # reported as the wrong type, whichever secrets are configured.
        try:
            payload = self._decode(token, keys[expected], verify_exp=False)
        except jwt.InvalidSignatureError as exc:
            if self._signed_as(token, keys[other], other):
                raise InvalidTokenTypeError() from exc
            raise InvalidTokenError(expected) from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(expected) from exc

        if payload.get("type") != expected.value:
            raise InvalidTokenTypeError()
        try:
            self._decode(token, keys[expected])
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(expected) from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(expected) from exc
        return TokenClaims(
            user_id=str(payload["userId"]),
            email=str(payload["email"]),
            type=expected,
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            jti=str(payload["jti"]),
        )

    # -------------------- API ------------------------

    def issue(self, user_id: str, email: str) -> TokenPair:
        """
        Issue a fresh access + refresh pair for ``user_id``.

        :raises ConfigurationError: If either secret is missing.
        """
        keys = self._secrets()
        now = datetime.now(UTC)
        access, access_exp = self._encode(
            kind=TokenKind.ACCESS,
            user_id=user_id,
            email=email,
            now=now,
            key=keys[TokenKind.ACCESS],
        )
        refresh, refresh_exp = self._encode(
            kind=TokenKind.REFRESH,
            user_id=user_id,
            email=email,
            now=now,
            key=keys[TokenKind.REFRESH],
        )
        logger.debug("Issued token pair", extra={"user_id": user_id})
        return TokenPair(
            access_token=access,
            refresh_token=refresh,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    def verify_access(self, token: str) -> TokenClaims:
        """
        Verify an access token.

        :raises TokenExpiredError: Valid signature, past ``exp``.
        :raises InvalidTokenTypeError: A refresh token was presented.
        :raises InvalidTokenError: Any other signature/claim failure.
        :raises ConfigurationError: If either secret is missing.
        """
        return self._verify(token, TokenKind.ACCESS)

    def verify_refresh(self, token: str) -> TokenClaims:
        """Verify a refresh token; mirror of :meth:`verify_access`."""
        return self._verify(token, TokenKind.REFRESH)

    @staticmethod
    def extract_from_header(value: str | None) -> str | None:
        """
        Extract the token from an ``Authorization: Bearer <token>`` header.

        Surrounding and repeated whitespace is tolerated. Returns ``None`` for
        a missing header, another scheme, a missing token or extra segments.
        """
        if not value or not isinstance(value, str):
            return None
        parts = value.split()
        if len(parts) != 2 or parts[0] != BEARER_SCHEME:
            return None
        return parts[1]
