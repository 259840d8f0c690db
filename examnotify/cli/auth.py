"""
Token CLI commands.

Stores the bearer token issued at login, which both the REST calls and the
real-time connection authenticate with.
"""

import sys
from datetime import datetime, timezone

import click

from examnotify.token_store import TokenStore
from examnotify.tokens import (
    decode_claims,
    get_recipient_id,
    get_token_expiration_time,
    is_token_expired,
)


@click.group()
def token() -> None:
    """Manage the stored bearer token."""


@token.command("set")
@click.argument("value")
def set_token(value: str) -> None:
    """
    Store a bearer token.

    Example:

        examnotify token set eyJhbGciOiJIUzI1NiIs...
    """
    if decode_claims(value) is None:
        click.echo(
            click.style("Warning: ", fg="yellow")
            + "Token could not be decoded; recipient filtering will be skipped."
        )
    elif is_token_expired(value):
        click.echo(click.style("Error: ", fg="red", bold=True) + "Token is already expired.")
        sys.exit(1)

    TokenStore().set_token(value)
    click.echo(click.style("Token stored.", fg="green"))

    user_id = get_recipient_id(value)
    if user_id:
        click.echo(f"  User: {user_id}")


@token.command("show")
def show_token() -> None:
    """Show who the stored token belongs to and when it expires."""
    value = TokenStore().get_token()
    if not value:
        click.echo("No token stored.")
        return

    click.echo(f"User: {get_recipient_id(value) or 'unknown'}")

    expiration = get_token_expiration_time(value)
    if expiration is None:
        click.echo("Expires: unknown")
    else:
        expires_at = datetime.fromtimestamp(expiration, tz=timezone.utc)
        state = click.style("expired", fg="red") if is_token_expired(value) else click.style("valid", fg="green")
        click.echo(f"Expires: {expires_at.strftime('%Y-%m-%d %H:%M:%S UTC')} ({state})")


@token.command("clear")
def clear_token() -> None:
    """Remove the stored token and user record."""
    TokenStore().clear_auth()
    click.echo("Token cleared.")
