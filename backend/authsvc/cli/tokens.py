"""Flask CLI commands for refresh token maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authsvc.core.container import get_container
from authsvc.services._shared.errors import NotFoundError, ServiceError

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Refresh token maintenance commands."""


@tokens_cli.command("cleanup")
@with_appcontext
def cleanup_command() -> None:
    """Delete refresh tokens that are expired or revoked."""
    try:
        deleted = get_container().auth.cleanup_expired_tokens()
    except ServiceError as exc:
        raise click.ClickException(f"Cleanup failed: {exc.message}") from exc
    LOGGER.info(
        "Token cleanup finished",
        extra={"event": "cli.tokens.cleanup", "tokens_deleted": deleted},
    )
    click.echo(f"Deleted {deleted} expired or revoked refresh token(s).")


@tokens_cli.command("count")
@click.argument("user_id")
@with_appcontext
def count_command(user_id: str) -> None:
    """Print how many active refresh tokens USER_ID holds."""
    container = get_container()
    try:
        if container.users.get_by_id(user_id) is None:
            raise NotFoundError("User", user_id)
        active = container.token_store.count_active(user_id)
    except ServiceError as exc:
        raise click.ClickException(f"Count failed: {exc.message}") from exc
    click.echo(str(active))
