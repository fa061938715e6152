"""Tests for the RefreshToken model."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from authsvc.models.refresh_token import RefreshToken
from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.user import UserFactory


class TestRefreshToken:
    def test_defaults(self, session):
        user = UserFactory()
        row = RefreshToken(
            user_id=user.id,
            token="tok",
            expires_at=datetime.now(UTC) + timedelta(days=1),
        )
        session.add(row)
        session.commit()
        assert row.is_revoked is False
        assert row.created_at is not None
        assert row.user.id == user.id

    def test_token_is_unique(self, session):
        RefreshTokenFactory(token="dup")
        with pytest.raises(IntegrityError):
            RefreshTokenFactory(token="dup")
        session.rollback()

    def test_user_relationship_lists_tokens(self, session):
        user = UserFactory()
        RefreshTokenFactory(user=user)
        RefreshTokenFactory(user=user)
        session.refresh(user)
        assert len(user.refresh_tokens) == 2

    def test_deleting_user_removes_tokens(self, session):
        token = RefreshTokenFactory()
        session.delete(token.user)
        session.commit()
        assert session.query(RefreshToken).count() == 0
