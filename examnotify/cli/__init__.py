"""
ExamNotify CLI - Command-line interface for the notification client.

Commands:
- token: Store, show or clear the bearer token
- config: Show and change client configuration
- inbox: List notifications and change their state
- send: Create notifications
- listen: Run the real-time listener
"""

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from examnotify.config import ClientConfig
from examnotify.platform_notifier import NullNotifier
from examnotify.service import NotificationClient
from examnotify.token_store import TokenStore

T = TypeVar("T")


def build_client() -> NotificationClient:
    """Build a REST-only client from the stored configuration and token."""
    return NotificationClient(
        ClientConfig(),
        token_store=TokenStore(),
        notifier=NullNotifier(),
    )


def run_with_client(operation: Callable[[NotificationClient], Awaitable[T]]) -> T:
    """Run one async operation against a fresh client and close it."""

    async def runner() -> Any:
        async with build_client() as client:
            return await operation(client)

    return asyncio.run(runner())
