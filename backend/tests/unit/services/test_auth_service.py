"""AuthService login / refresh / logout over in-memory ports."""

from __future__ import annotations

import dataclasses
import logging
import threading
from datetime import timedelta

import pytest

from authsvc.core.config import TokenSettings
from authsvc.infra.jwt.token_codec import JWTTokenCodec
from authsvc.infra.security.bcrypt_hasher import BcryptCredentialHasher
from authsvc.services._shared.errors import (
    AccountDeactivatedError,
    InvalidCredentialsError,
    InvalidTokenError,
    InvalidTokenTypeError,
    LoginFailedError,
    LogoutFailedError,
    RefreshFailedError,
    StoreError,
    TokenExpiredError,
    TokenKind,
)
from authsvc.services._shared.ports import (
    InMemoryTokenStore,
    InMemoryUserStore,
    UserUpdateData,
)
from authsvc.services.auth.dto import LoginIn, LogoutIn, RefreshIn
from authsvc.services.auth.service import AuthService
from authsvc.services.users.dto import RegistrationIn
from authsvc.services.users.service import UserService

PASSWORD = "Secure123!"
SETTINGS = TokenSettings(
    access_secret="svc-access-secret-0123456789abcdef",
    refresh_secret="svc-refresh-secret-0123456789abcdef",
)


class Env:
    """Services wired around shared in-memory stores."""

    def __init__(self, settings: TokenSettings = SETTINGS) -> None:
        self.users_store = InMemoryUserStore()
        self.token_store = InMemoryTokenStore()
        self.hasher = BcryptCredentialHasher(rounds=4)
        self.codec = JWTTokenCodec(settings)
        self.users = UserService(
            users=self.users_store,
            token_store=self.token_store,
            hasher=self.hasher,
            tokens=self.codec,
        )
        self.auth = AuthService(
            users=self.users,
            hasher=self.hasher,
            tokens=self.codec,
            token_store=self.token_store,
        )

    def register(self, email: str = "a@b.com"):
        return self.users.register(
            RegistrationIn(
                email=email,
                first_name="John",
                last_name="Doe",
                password=PASSWORD,
                confirm_password=PASSWORD,
            )
        )


@pytest.fixture()
def env() -> Env:
    return Env()


@pytest.fixture()
def registered(env):
    return env.register()


class TestLogin:
    def test_success(self, env, registered):
        out = env.auth.login(LoginIn(email="A@B.com ", password=PASSWORD))
        assert out.user.id == registered.user.id
        assert env.codec.verify_access(out.access_token).email == "a@b.com"
        assert env.token_store.find(out.refresh_token) is not None
        assert env.token_store.count_active(registered.user.id) == 2

    def test_wrong_password_and_unknown_email_look_identical(self, env, registered):
        with pytest.raises(InvalidCredentialsError) as wrong:
            env.auth.login(LoginIn(email="a@b.com", password="Wrong123!"))
        with pytest.raises(InvalidCredentialsError) as unknown:
            env.auth.login(LoginIn(email="nobody@b.com", password=PASSWORD))
        assert wrong.value.message == unknown.value.message == "Invalid email or password"

    def test_unknown_email_runs_dummy_verification(self, env):
        calls = []

        class SpyHasher:
            def dummy_verify(self, plaintext):
                calls.append(plaintext)

        env.auth.hasher = SpyHasher()
        with pytest.raises(InvalidCredentialsError):
            env.auth.login(LoginIn(email="nobody@b.com", password=PASSWORD))
        assert calls == [PASSWORD]

    def test_deactivated_account(self, env, registered):
        env.users.update(registered.user.id, UserUpdateData(is_active=False))
        with pytest.raises(AccountDeactivatedError) as exc_info:
            env.auth.login(LoginIn(email="a@b.com", password=PASSWORD))
        assert exc_info.value.message == "Account is deactivated"

    def test_store_failure_collapses(self, env, registered, monkeypatch):
        def boom(*args, **kwargs):
            raise StoreError("connection reset")

        monkeypatch.setattr(env.token_store, "save", boom)
        with pytest.raises(LoginFailedError) as exc_info:
            env.auth.login(LoginIn(email="a@b.com", password=PASSWORD))
        assert exc_info.value.message == "Failed to complete login process"


class TestRefresh:
    def test_rotation(self, env, registered):
        out = env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))
        assert out.refresh_token != registered.refresh_token
        assert env.token_store.find(registered.refresh_token) is None
        assert env.token_store.find(out.refresh_token) is not None
        assert env.codec.verify_access(out.access_token).user_id == registered.user.id

    def test_reusing_a_rotated_token_fails(self, env, registered):
        env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))
        with pytest.raises(InvalidTokenError) as exc_info:
            env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))
        assert exc_info.value.message == "Invalid refresh token"

    def test_concurrent_refresh_has_one_winner(self, env, registered):
        barrier = threading.Barrier(6)
        outcomes: list[str] = []

        def worker():
            barrier.wait()
            try:
                env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))
                outcomes.append("ok")
            except InvalidTokenError:
                outcomes.append("rejected")

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert outcomes.count("ok") == 1
        assert outcomes.count("rejected") == 5

    def test_access_token_is_wrong_type(self, env, registered):
        with pytest.raises(InvalidTokenTypeError):
            env.auth.refresh(RefreshIn(refresh_token=registered.access_token))

    def test_unknown_but_well_signed_token(self, env, registered):
        stray = env.codec.issue(registered.user.id, "a@b.com")
        with pytest.raises(InvalidTokenError):
            env.auth.refresh(RefreshIn(refresh_token=stray.refresh_token))

    def test_expired_jwt(self):
        env = Env(dataclasses.replace(SETTINGS, refresh_ttl=timedelta(seconds=-1)))
        pair = env.codec.issue("u-1", "a@b.com")
        with pytest.raises(TokenExpiredError) as exc_info:
            env.auth.refresh(RefreshIn(refresh_token=pair.refresh_token))
        assert exc_info.value.token_kind is TokenKind.REFRESH

    def test_deactivated_user(self, env, registered):
        env.users.update(registered.user.id, UserUpdateData(is_active=False))
        with pytest.raises(AccountDeactivatedError):
            env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))

    def test_deleted_user(self, env, registered):
        env.users.delete(registered.user.id)
        with pytest.raises(InvalidTokenError):
            env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))

    def test_store_failure_collapses(self, env, registered, monkeypatch):
        def boom(token):
            raise StoreError("timeout")

        monkeypatch.setattr(env.token_store, "find", boom)
        with pytest.raises(RefreshFailedError):
            env.auth.refresh(RefreshIn(refresh_token=registered.refresh_token))


class TestLogout:
    def test_logout_is_idempotent(self, env, registered):
        dto = LogoutIn(refresh_token=registered.refresh_token)
        assert env.auth.logout(dto) is True
        assert env.auth.logout(dto) is False

    def test_unknown_token(self, env):
        assert env.auth.logout(LogoutIn(refresh_token="never-issued")) is False

    def test_logout_all(self, env, registered):
        env.auth.login(LoginIn(email="a@b.com", password=PASSWORD))
        other = env.register("c@d.com")
        assert env.auth.logout_all(registered.user.id) is True
        assert env.token_store.count_active(registered.user.id) == 0
        assert env.token_store.count_active(other.user.id) == 1
        # No sessions left is still success
        assert env.auth.logout_all(registered.user.id) is True

    def test_store_failures_collapse(self, env, monkeypatch):
        def boom(*args):
            raise StoreError("down")

        monkeypatch.setattr(env.token_store, "revoke", boom)
        monkeypatch.setattr(env.token_store, "revoke_all", boom)
        with pytest.raises(LogoutFailedError) as single:
            env.auth.logout(LogoutIn(refresh_token="x"))
        with pytest.raises(LogoutFailedError) as every:
            env.auth.logout_all("u-1")
        assert single.value.message == "Failed to logout user"
        assert every.value.message == "Failed to logout from all devices"

    def test_collapsed_failure_is_logged_with_its_user(self, env, monkeypatch, caplog):
        def boom(*args):
            raise StoreError("down")

        monkeypatch.setattr(env.token_store, "revoke_all", boom)
        with caplog.at_level(logging.ERROR), pytest.raises(LogoutFailedError):
            env.auth.logout_all("u-42")
        [record] = [r for r in caplog.records if r.name == "authsvc.services.auth.service"]
        assert record.user_id == "u-42"
        assert record.event == "logout_failed"
        assert record.exc_info is not None


def test_full_lifecycle(env):
    reg = env.register()
    login = env.auth.login(LoginIn(email="a@b.com", password=PASSWORD))
    rotated = env.auth.refresh(RefreshIn(refresh_token=login.refresh_token))
    assert env.auth.logout(LogoutIn(refresh_token=rotated.refresh_token)) is True
    with pytest.raises(InvalidTokenError):
        env.auth.refresh(RefreshIn(refresh_token=rotated.refresh_token))
    assert env.auth.validate_user(reg.user.id).email == "a@b.com"


def test_cleanup_expired_tokens(env, registered):
    env.auth.logout(LogoutIn(refresh_token=registered.refresh_token))
    assert env.auth.cleanup_expired_tokens() == 1
