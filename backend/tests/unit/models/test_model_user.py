"""Tests for the User model."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

from authsvc.models.user import User
from tests.factories.user import hash_password


def make_user(**overrides) -> User:
    values = {
        "email": "alice@example.com",
        "first_name": "Alice",
        "last_name": "Smith",
        "password_hash": hash_password("Secure123!"),
    }
    values.update(overrides)
    return User(**values)


class TestUser:
    def test_defaults_after_insert(self, session):
        u = make_user()
        session.add(u)
        session.commit()
        assert len(u.id) == 32
        assert u.is_active is True
        assert u.email_verified is False
        assert u.created_at is not None
        assert u.updated_at is not None

    def test_email_normalized_and_unique(self, session):
        u1 = make_user(email="  Alice@Example.com ")
        session.add(u1)
        session.commit()
        assert u1.email == "alice@example.com"

        session.add(make_user(email="ALICE@example.com"))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_names_are_trimmed(self):
        u = make_user(first_name="  Alice ", last_name=" Smith")
        assert u.first_name == "Alice"
        assert u.last_name == "Smith"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("email", ""),
            ("email", "not-an-email"),
            ("email", "a@nodot"),
            ("first_name", "   "),
            ("last_name", ""),
            ("password_hash", ""),
        ],
    )
    def test_basic_validations(self, field, value):
        with pytest.raises(ValueError):
            make_user(**{field: value})

    def test_repr_includes_id(self):
        u = make_user(id="abc")
        assert repr(u) == "<User id=abc>"
