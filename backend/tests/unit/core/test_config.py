"""Settings parsing."""

from __future__ import annotations

from datetime import timedelta

import pytest

from authsvc.core import config as app_config
from authsvc.core.config import AuthSettings, parse_duration


@pytest.mark.parametrize(
    ("literal", "expected"),
    [
        ("15m", timedelta(minutes=15)),
        ("7d", timedelta(days=7)),
        (" 2H ", timedelta(hours=2)),
        ("30s", timedelta(seconds=30)),
        ("45", timedelta(seconds=45)),
        (60, timedelta(seconds=60)),
        (timedelta(minutes=1), timedelta(minutes=1)),
    ],
)
def test_parse_duration(literal, expected):
    assert parse_duration(literal) == expected


@pytest.mark.parametrize("literal", ["", "abc", "15w", "0m", "-5m", 0, "1.5h"])
def test_parse_duration_rejects(literal):
    with pytest.raises(ValueError):
        parse_duration(literal)


def test_auth_settings_defaults():
    settings = AuthSettings.from_mapping({"JWT_SECRET": "a", "JWT_REFRESH_SECRET": "b"})
    assert settings.bcrypt_rounds == 12
    assert settings.token_store_backend == "sqlalchemy"
    assert settings.tokens.access_ttl == timedelta(minutes=15)
    assert settings.tokens.refresh_ttl == timedelta(days=7)
    assert settings.tokens.issuer == "authsvc"
    assert settings.tokens.configured is True


def test_auth_settings_from_testing_config():
    testing = app_config.TestingConfig
    settings = AuthSettings.from_mapping(
        {k: getattr(testing, k) for k in dir(testing) if k.isupper()}
    )
    assert settings.bcrypt_rounds == 4
    assert settings.tokens.configured is True


def test_blank_secrets_are_unconfigured():
    settings = AuthSettings.from_mapping({"JWT_SECRET": "", "JWT_REFRESH_SECRET": None})
    assert settings.tokens.access_secret is None
    assert settings.tokens.configured is False


@pytest.mark.parametrize(
    "config",
    [
        {"BCRYPT_ROUNDS": 3},
        {"BCRYPT_ROUNDS": 32},
        {"TOKEN_STORE_BACKEND": "memcached"},
        {"JWT_EXPIRES_IN": "soon"},
    ],
)
def test_invalid_settings(config):
    with pytest.raises(ValueError):
        AuthSettings.from_mapping(config)
