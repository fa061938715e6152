"""Factory Boy definition for :class:`authsvc.models.user.User`."""

from __future__ import annotations

from functools import lru_cache

import bcrypt
import factory

from authsvc.models.user import User
from tests.factories import BaseFactory

DEFAULT_PASSWORD = "Secure123!"


@lru_cache(maxsize=8)
def hash_password(plaintext: str) -> str:
    """bcrypt hash at the minimum cost (cached; tests only need verifiability)."""
    return bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=4)).decode("utf-8")


class UserFactory(BaseFactory):
    """
    Build persisted :class:`authsvc.models.user.User` instances.

    Pass ``password=...`` to choose the plaintext behind ``password_hash``.
    """

    class Meta:
        model = User
        exclude = ("password",)

    password = DEFAULT_PASSWORD
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    first_name = factory.Faker("first_name")
    last_name = factory.Faker("last_name")
    password_hash = factory.LazyAttribute(lambda o: hash_password(o.password))
    is_active = True
    email_verified = False
