"""Behaviour of the in-memory port doubles used by the service tests."""

from __future__ import annotations

import threading
from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from authsvc.services._shared.errors import DuplicateEmailError, StoreError
from authsvc.services._shared.ports import (
    InMemoryTokenStore,
    InMemoryUserStore,
    UserCreateData,
    UserUpdateData,
)


def _create(store: InMemoryUserStore, email: str = "john@example.com"):
    return store.create(
        UserCreateData(email=email, first_name=" John ", last_name="Doe", password_hash="h")
    )


class TestInMemoryUserStore:
    def test_create_normalizes_and_defaults(self):
        store = InMemoryUserStore()
        user = _create(store, "  John@Example.COM ")
        assert user.email == "john@example.com"
        assert user.first_name == "John"
        assert user.is_active is True
        assert user.email_verified is False
        assert store.count() == 1

    def test_duplicate_email_is_case_insensitive(self):
        store = InMemoryUserStore()
        _create(store)
        with pytest.raises(DuplicateEmailError):
            _create(store, "JOHN@example.com")

    def test_find_by_email_normalizes(self):
        store = InMemoryUserStore()
        user = _create(store)
        assert store.find_by_email(" JOHN@EXAMPLE.COM") == user
        assert store.find_by_email("nobody@example.com") is None

    def test_update_and_conflict(self):
        store = InMemoryUserStore()
        john = _create(store)
        jane = _create(store, "jane@example.com")
        updated = store.update(john.id, UserUpdateData(first_name=" Johnny ", is_active=False))
        assert updated is not None
        assert updated.first_name == "Johnny"
        assert updated.is_active is False
        with pytest.raises(DuplicateEmailError):
            store.update(jane.id, UserUpdateData(email="John@Example.com"))
        assert store.update("missing", UserUpdateData(first_name="x")) is None

    def test_delete(self):
        store = InMemoryUserStore()
        user = _create(store)
        assert store.delete(user.id) is True
        assert store.delete(user.id) is False
        assert store.count() == 0

    def test_find_active_newest_first(self):
        store = InMemoryUserStore()
        with freeze_time("2026-01-01"):
            old = _create(store, "old@example.com")
        with freeze_time("2026-02-01"):
            new = _create(store, "new@example.com")
        with freeze_time("2026-03-01"):
            gone = _create(store, "gone@example.com")
        store.update(gone.id, UserUpdateData(is_active=False))
        assert [u.id for u in store.find_active()] == [new.id, old.id]

    def test_concurrent_creates_keep_email_unique(self):
        store = InMemoryUserStore()
        errors: list[Exception] = []

        def worker():
            try:
                _create(store, "race@example.com")
            except DuplicateEmailError as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert store.count() == 1
        assert len(errors) == 7


class TestInMemoryTokenStore:
    def test_save_and_find(self):
        store = InMemoryTokenStore()
        assert store.save("u-1", "tok") is True
        view = store.find("tok")
        assert view is not None
        assert view.user_id == "u-1"
        assert view.is_revoked is False

    def test_default_expiry_is_seven_days(self):
        store = InMemoryTokenStore()
        with freeze_time("2026-05-01 12:00:00"):
            store.save("u-1", "tok")
        view = store.get("tok")
        assert view is not None
        assert view.expires_at == datetime(2026, 5, 8, 12, 0, tzinfo=UTC)

    def test_duplicate_token_is_rejected(self):
        store = InMemoryTokenStore()
        store.save("u-1", "tok")
        with pytest.raises(StoreError):
            store.save("u-2", "tok")

    def test_expired_token_is_not_found(self):
        store = InMemoryTokenStore()
        with freeze_time("2026-05-01"):
            store.save("u-1", "tok", datetime(2026, 5, 2, tzinfo=UTC))
            assert store.find("tok") is not None
        with freeze_time("2026-05-03"):
            assert store.find("tok") is None
            assert store.count_active("u-1") == 0

    def test_revoke_is_conditional(self):
        store = InMemoryTokenStore()
        store.save("u-1", "tok")
        assert store.revoke("tok") is True
        assert store.revoke("tok") is False
        assert store.revoke("unknown") is False
        assert store.find("tok") is None

    def test_concurrent_revoke_has_one_winner(self):
        store = InMemoryTokenStore()
        store.save("u-1", "tok")
        results: list[bool] = []
        barrier = threading.Barrier(10)

        def worker():
            barrier.wait()
            results.append(store.revoke("tok"))

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results.count(True) == 1

    def test_revoke_all_counts_only_unrevoked(self):
        store = InMemoryTokenStore()
        for token in ("a", "b", "c"):
            store.save("u-1", token)
        store.save("u-2", "d")
        store.revoke("a")
        assert store.revoke_all("u-1") == 2
        assert store.revoke_all("u-1") == 0
        assert store.count_active("u-2") == 1

    def test_cleanup_removes_expired_and_revoked(self):
        store = InMemoryTokenStore()
        now = datetime.now(UTC)
        store.save("u-1", "live")
        store.save("u-1", "revoked")
        store.save("u-1", "expired", now - timedelta(seconds=1))
        store.revoke("revoked")
        assert store.cleanup_expired() == 2
        assert store.get("live") is not None
        assert store.get("revoked") is None
        assert store.cleanup_expired() == 0
