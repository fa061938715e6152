from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from authsvc.services._shared.errors import TokenKind


@dataclass(frozen=True, slots=True)
class TokenClaims:
    """
    Verified payload of an access or refresh token.

    :ivar user_id: Owner identifier (``userId`` claim).
    :ivar email: Email at issuance time.
    :ivar type: Token flavour.
    :ivar issued_at: ``iat`` as an aware UTC datetime.
    :ivar expires_at: ``exp`` as an aware UTC datetime.
    :ivar jti: Unique token identifier.
    """

    user_id: str
    email: str
    type: TokenKind
    issued_at: datetime
    expires_at: datetime
    jti: str


@dataclass(frozen=True, slots=True)
class TokenPair:
    """Freshly issued access + refresh tokens with their absolute expiries."""

    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class TokenProvider(Protocol):
    """Port for issuing and verifying the two token flavours."""

    def issue(self, user_id: str, email: str) -> TokenPair: ...

    def verify_access(self, token: str) -> TokenClaims: ...

    def verify_refresh(self, token: str) -> TokenClaims: ...

    def extract_from_header(self, value: str | None) -> str | None: ...
