"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authsvc.core.container import get_container
from authsvc.core.errors import Unauthorized
from authsvc.services._shared.errors import AccountDeactivatedError
from authsvc.services._shared.ports import UserRecord

F = TypeVar("F", bound=Callable[..., Any])


def json_body() -> dict[str, Any]:
    """Return the JSON request body, or an empty dict when absent or not an object."""

    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def require_auth(func: F) -> F:
    """
    Ensure the request carries a valid access token for an existing user.

    On success ``g.current_user`` holds the :class:`UserRecord` and
    ``g.token_claims`` the verified
    :class:`~authsvc.services._shared.ports.TokenClaims`. Codec failures
    propagate as service errors (401).
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        container = get_container()
        token = container.codec.extract_from_header(request.headers.get("Authorization"))
        if token is None:
            raise Unauthorized("Access denied. No token provided.")
        claims = container.codec.verify_access(token)
        user = container.auth.validate_user(claims.user_id)
        if user is None:
            raise Unauthorized("Invalid token.")
        if not user.is_active:
            raise AccountDeactivatedError()
        g.current_user = user
        g.token_claims = claims
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_user() -> UserRecord:
    """Return the user authenticated by :func:`require_auth`."""

    return g.current_user


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
