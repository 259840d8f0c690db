"""
Inbox CLI commands.

Lists notifications and changes their state through the REST API.
"""

import json
import sys
from typing import Optional

import click

from examnotify.cli import run_with_client
from examnotify.models import (
    NotificationFilters,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
)

PRIORITY_COLORS = {
    NotificationPriority.LOW: "white",
    NotificationPriority.MEDIUM: "cyan",
    NotificationPriority.HIGH: "yellow",
    NotificationPriority.URGENT: "red",
}


def _choice(enum_cls) -> click.Choice:
    return click.Choice([member.value for member in enum_cls], case_sensitive=False)


def _report(ok: bool, success_message: str, failure_message: str) -> None:
    if ok:
        click.echo(click.style(success_message, fg="green"))
    else:
        click.echo(click.style("Error: ", fg="red", bold=True) + failure_message)
        sys.exit(1)


@click.group()
def inbox() -> None:
    """List notifications and change their state."""


@inbox.command("list")
@click.option("--type", "type_", type=_choice(NotificationType), help="Filter by type.")
@click.option("--priority", type=_choice(NotificationPriority), help="Filter by priority.")
@click.option("--status", type=_choice(NotificationStatus), help="Filter by status.")
@click.option("--from", "date_from", help="Only notifications created on or after this date.")
@click.option("--to", "date_to", help="Only notifications created on or before this date.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON.")
def list_notifications(
    type_: Optional[str],
    priority: Optional[str],
    status: Optional[str],
    date_from: Optional[str],
    date_to: Optional[str],
    as_json: bool,
) -> None:
    """
    List notifications for the current user.

    \b
    Examples:
        examnotify inbox list
        examnotify inbox list --status UNREAD --priority URGENT
    """
    filters = NotificationFilters(
        type=type_.upper() if type_ else None,
        priority=priority.upper() if priority else None,
        status=status.upper() if status else None,
        date_from=date_from,
        date_to=date_to,
    )
    notifications = run_with_client(lambda client: client.list_notifications(filters))

    if as_json:
        click.echo(json.dumps([n.to_wire() for n in notifications], indent=2))
        return

    if not notifications:
        click.echo("No notifications.")
        return

    for notification in notifications:
        color = PRIORITY_COLORS.get(notification.priority, "white")
        created = notification.created_at.strftime("%Y-%m-%d %H:%M") if notification.created_at else "-"
        click.echo(
            click.style(f"[{notification.priority.value}]", fg=color)
            + f" {notification.id}  {notification.status.value:<12} {created}  {notification.title}"
        )
        if notification.message:
            click.echo(f"    {notification.message}")


@inbox.command("counts")
def counts() -> None:
    """Show unread, urgent and total counts."""
    result = run_with_client(lambda client: client.get_counts())
    click.echo(f"Unread: {result.unread}")
    click.echo(f"Urgent: {result.urgent}")
    click.echo(f"Total:  {result.total}")


@inbox.command("read")
@click.argument("notification_id")
def read(notification_id: str) -> None:
    """Mark a notification as read."""
    ok = run_with_client(lambda client: client.mark_as_read(notification_id))
    _report(ok, f"Marked {notification_id} as read.", f"Could not mark {notification_id} as read.")


@inbox.command("read-all")
def read_all() -> None:
    """Mark every notification as read."""
    ok = run_with_client(lambda client: client.mark_all_as_read())
    _report(ok, "All notifications marked as read.", "Could not mark notifications as read.")


@inbox.command("ack")
@click.argument("notification_id")
def ack(notification_id: str) -> None:
    """Acknowledge a notification."""
    ok = run_with_client(lambda client: client.acknowledge(notification_id))
    _report(ok, f"Acknowledged {notification_id}.", f"Could not acknowledge {notification_id}.")


@inbox.command("dismiss")
@click.argument("notification_id")
def dismiss(notification_id: str) -> None:
    """Dismiss a notification."""
    ok = run_with_client(lambda client: client.dismiss(notification_id))
    _report(ok, f"Dismissed {notification_id}.", f"Could not dismiss {notification_id}.")


@inbox.command("delete")
@click.argument("notification_id")
@click.option("--force", is_flag=True, help="Delete without confirmation")
def delete(notification_id: str, force: bool) -> None:
    """Permanently delete a notification."""
    if not force and not click.confirm(f"Permanently delete {notification_id}?"):
        click.echo("Aborted.")
        return

    ok = run_with_client(lambda client: client.delete(notification_id))
    _report(ok, f"Deleted {notification_id}.", f"Could not delete {notification_id}.")


@inbox.command("clear")
@click.option("--force", is_flag=True, help="Clear without confirmation")
def clear(force: bool) -> None:
    """Dismiss every notification."""
    if not force and not click.confirm("Dismiss all notifications?"):
        click.echo("Aborted.")
        return

    ok = run_with_client(lambda client: client.clear_all())
    _report(ok, "All notifications cleared.", "Could not clear notifications.")
