"""
Notification listener.

Long-running process that keeps the real-time connection open, logs every
delivered notification and periodically refreshes the REST counters.
"""

import asyncio
import logging
import signal
import sys
from typing import Optional

from examnotify import __version__
from examnotify.config import ClientConfig, ConfigError
from examnotify.models import Notification
from examnotify.service import NotificationClient
from examnotify.token_store import TokenStore


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Setup logging for the client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("examnotify.runner")


# ============================================================================
# Listener Runner
# ============================================================================


class ListenerRunner:
    """
    Runs a NotificationClient until SIGINT/SIGTERM.

    Attributes:
        config: Client configuration
        logger: Logger instance
    """

    def __init__(
        self,
        config: ClientConfig,
        token_store: Optional[TokenStore] = None,
        client: Optional[NotificationClient] = None,
    ):
        self.config = config
        self.logger = setup_logging(config.log_level)
        self._token_store = token_store or TokenStore()
        self._client = client
        self._shutdown_event = asyncio.Event()
        self.delivered_count = 0

    async def run(self) -> int:
        """
        Run the listener.

        Returns:
            Exit code (0 for success, 1 when not authenticated or misconfigured)
        """
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_shutdown)
            except (NotImplementedError, RuntimeError):
                # Not available on this platform or outside the main thread
                pass

        try:
            self.config.validate()
        except ConfigError as e:
            self.logger.error(f"Invalid configuration: {e}")
            return 1

        if not self._token_store.validate_and_clean():
            self.logger.error("No valid auth token stored. Run 'examnotify token set' first.")
            return 1

        if self._client is None:
            self._client = NotificationClient(self.config, token_store=self._token_store)

        self.logger.info(f"Starting ExamNotify listener v{__version__}")
        self.logger.info(f"API: {self._client.api_base_url}")
        self.logger.info(f"Real-time endpoint: {self._client.socket_url}")

        unsubscribe = self._client.subscribe(self._log_notification)
        try:
            await self._client.request_permission()
            if not await self._client.initialize():
                self.logger.warning(
                    "Real-time connection unavailable, falling back to periodic counts"
                )
            return await self._refresh_loop()
        except asyncio.CancelledError:
            self.logger.info("Listener shutdown requested")
            return 0
        finally:
            unsubscribe()
            await self._client.close()
            self.logger.info("Listener stopped")

    def _log_notification(self, notification: Notification) -> None:
        self.delivered_count += 1
        self.logger.info(
            f"[{notification.priority.value}] {notification.type.value}: "
            f"{notification.title} - {notification.message} ({notification.id})"
        )

    async def _refresh_loop(self) -> int:
        """Refresh counters until shutdown."""
        while not self._shutdown_event.is_set():
            counts = await self._client.get_counts()
            self.logger.info(
                f"Unread: {counts.unread}, urgent: {counts.urgent}, total: {counts.total} "
                f"(connection: {self._client.connection_state.value})"
            )

            try:
                await asyncio.wait_for(
                    self._shutdown_event.wait(),
                    timeout=self.config.counts_refresh_interval_seconds,
                )
            except asyncio.TimeoutError:
                pass

        return 0

    def request_shutdown(self) -> None:
        """Request graceful shutdown of the listener."""
        self._shutdown_event.set()


# ============================================================================
# Main Entry Point
# ============================================================================


def run_listener(config: Optional[ClientConfig] = None) -> int:
    """
    Run the listener.

    Returns:
        Exit code
    """
    runner = ListenerRunner(config or ClientConfig())
    return asyncio.run(runner.run())


if __name__ == "__main__":
    sys.exit(run_listener())
