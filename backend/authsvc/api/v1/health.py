"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from authsvc.api.deps import json_response, timing
from authsvc.core.container import get_container
from authsvc.core.extensions import db

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return application, database and token backend health information."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:  # pragma: no cover - depends on DB backend
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"
    finally:
        db.session.rollback()
    settings = get_container().settings
    payload = {
        "status": "ok",
        "db": db_status,
        "token_store": settings.token_store_backend,
        "jwt_configured": settings.tokens.configured,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
