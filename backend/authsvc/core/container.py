"""Object graph for the auth core, built once per application."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import redis  # type: ignore[import-untyped]
from flask import Flask, current_app
from sqlalchemy.orm import Session

from authsvc.core.config import AuthSettings
from authsvc.infra.jwt.token_codec import JWTTokenCodec
from authsvc.infra.redis.redis_token_store import RedisRefreshTokenStore
from authsvc.infra.security.bcrypt_hasher import BcryptCredentialHasher
from authsvc.infra.sqlalchemy.token_store import SQLAlchemyTokenStore
from authsvc.infra.sqlalchemy.user_store import SQLAlchemyUserStore
from authsvc.services._shared.ports import TokenStore, UserStore
from authsvc.services.auth.service import AuthService
from authsvc.services.users.service import UserService

EXTENSION_KEY = "authsvc"


@dataclass(frozen=True, slots=True)
class AuthContainer:
    """
    Explicitly constructed dependencies handed to the HTTP and CLI layers.

    :ivar settings: Settings the graph was built from.
    :ivar hasher: Credential hasher.
    :ivar codec: Token codec.
    :ivar user_store: User persistence adapter.
    :ivar token_store: Refresh token persistence adapter.
    :ivar users: Registration / user service.
    :ivar auth: Login / refresh / logout service.
    """

    settings: AuthSettings
    hasher: BcryptCredentialHasher
    codec: JWTTokenCodec
    user_store: UserStore
    token_store: TokenStore
    users: UserService
    auth: AuthService


def build_container(
    settings: AuthSettings,
    *,
    user_store: UserStore,
    token_store: TokenStore,
) -> AuthContainer:
    """Wire hasher, codec and services around the given stores."""
    hasher = BcryptCredentialHasher(rounds=settings.bcrypt_rounds)
    codec = JWTTokenCodec(settings.tokens)
    users = UserService(users=user_store, token_store=token_store, hasher=hasher, tokens=codec)
    auth = AuthService(users=users, hasher=hasher, tokens=codec, token_store=token_store)
    return AuthContainer(
        settings=settings,
        hasher=hasher,
        codec=codec,
        user_store=user_store,
        token_store=token_store,
        users=users,
        auth=auth,
    )


def init_app(
    app: Flask,
    *,
    session_provider: Callable[[], Session],
    redis_client: redis.Redis | None = None,
) -> AuthContainer:
    """
    Build the container from ``app.config`` and register it on the app.

    :param app: Flask application.
    :param session_provider: Returns the SQLAlchemy session for each UoW.
    :param redis_client: Connected client, required for the ``redis`` backend.
    :raises ValueError: Invalid settings.
    :raises RuntimeError: ``redis`` backend selected without a client.
    """
    settings = AuthSettings.from_mapping(app.config)
    token_store: TokenStore
    if settings.token_store_backend == "redis":
        if redis_client is None:
            raise RuntimeError("TOKEN_STORE_BACKEND=redis requires a Redis client.")
        token_store = RedisRefreshTokenStore(redis_client)
    else:
        token_store = SQLAlchemyTokenStore(session_provider)

    if not settings.tokens.configured:
        app.logger.warning("JWT secrets are not configured; token operations will fail")

    container = build_container(
        settings,
        user_store=SQLAlchemyUserStore(session_provider),
        token_store=token_store,
    )
    app.extensions[EXTENSION_KEY] = container
    return container


def get_container() -> AuthContainer:
    """Return the container of the current application."""
    return current_app.extensions[EXTENSION_KEY]
