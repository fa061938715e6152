"""Application settings with environment-based simple classes."""

from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final

from dotenv import load_dotenv

# Public selector env var (keep neutral name to avoid collisions)
ENV_VAR: Final[str] = "APP_ENV"  # 'development' | 'testing' | 'production'

# Loads .env in development (no-op when the file is missing)
load_dotenv()

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$", re.IGNORECASE)
_DURATION_UNITS: Final[dict[str, str]] = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
}


def env_bool(name: str, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable.

    Parameters
    ----------
    name: str
        Environment variable to inspect.
    default: bool, optional
        Value returned when the variable is unset. Defaults to ``False``.

    Returns
    -------
    bool
        ``True`` if the value resembles ``{"1", "true", "yes", "y", "on"}``
        ignoring case; otherwise ``False`` or ``default`` when missing.
    """
    val = os.getenv(name)
    if val is None:
        return default
    return str(val).strip().lower() in {"1", "true", "yes", "y", "on"}


def parse_duration(value: str | int | timedelta) -> timedelta:
    """Parse a compact duration such as ``"15m"`` or ``"7d"``.

    Bare integers are read as seconds.

    :param value: Duration literal, seconds, or an existing ``timedelta``.
    :returns: Parsed duration.
    :rtype: datetime.timedelta
    :raises ValueError: If the literal is malformed or not positive.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        seconds = value
        if seconds <= 0:
            raise ValueError(f"Duration must be positive, got {value!r}")
        return timedelta(seconds=seconds)
    match = _DURATION_RE.match(str(value))
    if match is None:
        raise ValueError(f"Invalid duration literal: {value!r}")
    amount = int(match.group(1))
    if amount <= 0:
        raise ValueError(f"Duration must be positive, got {value!r}")
    unit = _DURATION_UNITS[match.group(2).lower()]
    return timedelta(**{unit: amount})


class BaseConfig:
    """Base configuration shared across environments.

    Attributes
    ----------
    API_BASE_PREFIX: str
        Root path for registering API blueprints.
    SECRET_KEY: str
        Flask secret. Unused by token signing, kept for extensions.
    JWT_SECRET: str | None
        Signing secret for access tokens. No default: a missing value makes
        every token operation fail with a configuration error.
    JWT_REFRESH_SECRET: str | None
        Signing secret for refresh tokens, distinct from ``JWT_SECRET``.
    JWT_EXPIRES_IN / JWT_REFRESH_EXPIRES_IN: str
        Token lifetimes as compact durations (``15m``, ``7d``).
    JWT_ISSUER / JWT_AUDIENCE: str
        ``iss``/``aud`` claims stamped on and required from every token.
    BCRYPT_ROUNDS: int
        bcrypt cost factor (``BCRYPT_SALT_ROUNDS`` env var).
    TOKEN_STORE_BACKEND: str
        ``"sqlalchemy"`` (default) or ``"redis"``.
    REDIS_URL: str | None
        Redis connection URL; required when the Redis backend is selected.
    SQLALCHEMY_DATABASE_URI: str
        Database connection string consumed by SQLAlchemy.
    LOG_LEVEL: str
        Root logging verbosity (``INFO`` by default).

    Notes
    -----
    Values are primarily sourced from environment variables, enabling
    configuration without code changes.
    """

    API_BASE_PREFIX = "/api"

    # Secrets / security
    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET = os.getenv("JWT_SECRET")
    JWT_REFRESH_SECRET = os.getenv("JWT_REFRESH_SECRET")
    JWT_EXPIRES_IN = os.getenv("JWT_EXPIRES_IN", "15m")
    JWT_REFRESH_EXPIRES_IN = os.getenv("JWT_REFRESH_EXPIRES_IN", "7d")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "authsvc")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "authsvc-users")
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_SALT_ROUNDS", "12"))

    # Token persistence
    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "sqlalchemy")
    REDIS_URL = os.getenv("REDIS_URL")

    # DB
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    # Flask & JSON
    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Flask built-ins
    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    """Configuration tailored for local development.

    Notes
    -----
    Enables debug mode by default and uses a cheaper bcrypt cost unless
    ``BCRYPT_SALT_ROUNDS`` is set explicitly.
    """

    DEBUG = env_bool("FLASK_DEBUG", True)
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_SALT_ROUNDS", "10"))


class TestingConfig(BaseConfig):
    """Configuration for automated test runs.

    Notes
    -----
    - Forces ``TESTING`` mode and disables debug logs.
    - Uses an in-memory SQLite database unless ``TEST_DATABASE_URL`` is set.
    - Ships fixed signing secrets and the minimum bcrypt cost for speed.
    """

    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    SQLALCHEMY_ECHO = False
    JWT_SECRET = "test-access-secret-0123456789abcdef"
    JWT_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef"
    BCRYPT_ROUNDS = 4
    TOKEN_STORE_BACKEND = "sqlalchemy"
    REDIS_URL = None
    LOG_LEVEL = "WARNING"


class ProductionConfig(BaseConfig):
    """Configuration defaults for production deployments.

    Notes
    -----
    Keeps debug and SQL echoing disabled while relying on WSGI-level log
    configuration for noise control.
    """

    DEBUG = False
    SQLALCHEMY_ECHO = False
    PROPAGATE_EXCEPTIONS = False


# Map names -> classes (simple, explicit)
CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Return the configuration class inferred from ``APP_ENV``.

    Returns
    -------
    type[BaseConfig]
        Class to pass to :meth:`flask.Config.from_object`.

    Notes
    -----
    Falls back to :class:`DevelopmentConfig` when ``APP_ENV`` is unset or
    unknown.
    """
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


# --------------------------------------------------------------------------- #
# Typed settings handed to the auth core
# --------------------------------------------------------------------------- #

MIN_BCRYPT_ROUNDS: Final[int] = 4
MAX_BCRYPT_ROUNDS: Final[int] = 31


@dataclass(frozen=True, slots=True)
class TokenSettings:
    """
    Signing and lifetime parameters for the token codec.

    :ivar access_secret: HMAC key for access tokens (``None`` when unset).
    :ivar refresh_secret: HMAC key for refresh tokens (``None`` when unset).
    :ivar issuer: ``iss`` claim.
    :ivar audience: ``aud`` claim.
    :ivar access_ttl: Access token lifetime.
    :ivar refresh_ttl: Refresh token lifetime.
    :ivar algorithm: JWS algorithm.
    """

    access_secret: str | None
    refresh_secret: str | None
    issuer: str = "authsvc"
    audience: str = "authsvc-users"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=7)
    algorithm: str = "HS256"

    @property
    def configured(self) -> bool:
        return bool(self.access_secret) and bool(self.refresh_secret)


@dataclass(frozen=True, slots=True)
class AuthSettings:
    """
    Snapshot of every auth-relevant setting, read once at startup.

    :ivar tokens: Token codec settings.
    :ivar bcrypt_rounds: bcrypt cost factor.
    :ivar token_store_backend: Refresh-token persistence backend name.
    :ivar redis_url: Redis URL for the ``redis`` backend.
    """

    tokens: TokenSettings
    bcrypt_rounds: int = 12
    token_store_backend: str = "sqlalchemy"
    redis_url: str | None = None

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> AuthSettings:
        """
        Build settings from a Flask config (or any mapping).

        :param config: Mapping holding the ``BaseConfig`` keys.
        :returns: Validated settings.
        :raises ValueError: On an out-of-range bcrypt cost, a malformed
            duration, or an unknown token store backend.
        """
        rounds = int(config.get("BCRYPT_ROUNDS", 12))
        if not MIN_BCRYPT_ROUNDS <= rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(
                f"BCRYPT_ROUNDS must be between {MIN_BCRYPT_ROUNDS} and "
                f"{MAX_BCRYPT_ROUNDS}, got {rounds}"
            )
        backend = str(config.get("TOKEN_STORE_BACKEND", "sqlalchemy")).strip().lower()
        if backend not in {"sqlalchemy", "redis"}:
            raise ValueError(f"Unknown TOKEN_STORE_BACKEND: {backend!r}")

        tokens = TokenSettings(
            access_secret=config.get("JWT_SECRET") or None,
            refresh_secret=config.get("JWT_REFRESH_SECRET") or None,
            issuer=str(config.get("JWT_ISSUER", "authsvc")),
            audience=str(config.get("JWT_AUDIENCE", "authsvc-users")),
            access_ttl=parse_duration(config.get("JWT_EXPIRES_IN", "15m")),
            refresh_ttl=parse_duration(config.get("JWT_REFRESH_EXPIRES_IN", "7d")),
        )
        return cls(
            tokens=tokens,
            bcrypt_rounds=rounds,
            token_store_backend=backend,
            redis_url=config.get("REDIS_URL") or None,
        )
