"""
CLI entry point.

Main command group for the ExamNotify CLI.
"""

import click

from examnotify import __version__
from examnotify.token_store import TokenStore
from examnotify.tokens import get_token_time_remaining

# Warn when the session ends within this many seconds
EXPIRY_WARNING_SECONDS = 15 * 60


def _show_expiry_warning() -> None:
    """Print a warning banner if the stored token is about to expire."""
    token = TokenStore().get_token()
    if not token:
        return

    remaining = get_token_time_remaining(token)
    if remaining <= 0:
        click.echo(
            click.style(
                "WARNING: The stored token has expired. Run 'examnotify token set' to log in again.",
                fg="yellow",
                bold=True,
            )
        )
        click.echo()
    elif remaining < EXPIRY_WARNING_SECONDS:
        click.echo(
            click.style(
                f"WARNING: The stored token expires in {int(remaining // 60)} minute(s).",
                fg="yellow",
            )
        )
        click.echo()


@click.group()
@click.version_option(version=__version__, prog_name="examnotify")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """
    ExamNotify - Real-time notifications for the exam dashboard.

    Receives missing-sheet, absent-student and AI-correction notifications
    from the exam-management server and manages them over its REST API.

    Use 'examnotify COMMAND --help' for more information on a command.
    """
    ctx.ensure_object(dict)

    if ctx.invoked_subcommand != "token":
        _show_expiry_warning()


# Import and register subcommands
from examnotify.cli.auth import token  # noqa: E402
from examnotify.cli.config import config  # noqa: E402
from examnotify.cli.inbox import inbox  # noqa: E402
from examnotify.cli.send import send  # noqa: E402
from examnotify.cli.listen import listen  # noqa: E402

cli.add_command(token)
cli.add_command(config)
cli.add_command(inbox)
cli.add_command(send)
cli.add_command(listen)


def main() -> None:
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
