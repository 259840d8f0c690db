"""
Listen CLI command.

Starts the real-time notification listener.
"""

import sys

import click

from examnotify.config import ClientConfig
from examnotify.main import run_listener
from examnotify.token_store import TokenStore


@click.command()
@click.pass_context
def listen(ctx: click.Context) -> None:
    """
    Listen for real-time notifications.

    Connects to the server with the stored token and prints every
    notification addressed to you. Runs until stopped with Ctrl+C or SIGTERM.

    Example:

        examnotify listen
    """
    if not TokenStore().get_token():
        click.echo(click.style("Error: ", fg="red", bold=True) + "No token stored.")
        click.echo("Run 'examnotify token set TOKEN' first.")
        ctx.exit(1)

    config = ClientConfig()
    click.echo("Listening for notifications...")
    click.echo("Press Ctrl+C to stop")
    click.echo()

    sys.exit(run_listener(config))
