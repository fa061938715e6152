"""Repository package exposing persistence-layer access for all domain models."""

from __future__ import annotations

from authsvc.repositories.base import BaseRepository, apply_sorting, parse_sort_tokens
from authsvc.repositories.refresh_token import RefreshTokenRepository
from authsvc.repositories.user import UserRepository

__all__ = [
    # Base
    "BaseRepository",
    "apply_sorting",
    "parse_sort_tokens",
    # Domain
    "UserRepository",
    "RefreshTokenRepository",
]
