"""
Desktop notification capability.

``PlatformNotifier`` is the interface the client uses to raise an OS-level
notification next to the in-process event. ``NullNotifier`` is used where
the platform has no notification support; ``DesktopNotifier`` shells out to
``notify-send`` (Linux) or ``osascript`` (macOS) on a daemon worker thread,
so showing a notification never blocks the event loop.
"""

import logging
import shutil
import subprocess
import sys
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

logger = logging.getLogger("examnotify.platform")

APP_NAME = "Exam Notifications"
MAX_BODY_LENGTH = 300
# Seconds a notification command may run before it is abandoned
DISPATCH_TIMEOUT = 5
# Tags remembered for coalescing repeated notifications
MAX_REMEMBERED_TAGS = 100


class PermissionState:
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"


class PlatformNotifier(ABC):
    """Capability interface for OS-level notifications."""

    @property
    @abstractmethod
    def is_supported(self) -> bool:
        """Whether the platform can show notifications at all."""

    @property
    @abstractmethod
    def permission(self) -> str:
        """Current permission state (see PermissionState)."""

    @abstractmethod
    async def request_permission(self) -> str:
        """Ask for permission and return the resulting state."""

    @abstractmethod
    def show(self, title: str, body: str, tag: str) -> bool:
        """
        Show a notification.

        Notifications sharing a tag are coalesced: a tag already shown is
        not shown again.

        Returns:
            True if a notification was handed to the platform
        """


class NullNotifier(PlatformNotifier):
    """Notifier for environments without notification support."""

    @property
    def is_supported(self) -> bool:
        return False

    @property
    def permission(self) -> str:
        return PermissionState.DENIED

    async def request_permission(self) -> str:
        return PermissionState.DENIED

    def show(self, title: str, body: str, tag: str) -> bool:
        return False


class DesktopNotifier(PlatformNotifier):
    """
    Notifier backed by the desktop's command-line notification tool.

    Permission starts in the default state and is granted by
    ``request_permission()`` when a notification tool is available.
    """

    def __init__(self, command: Optional[List[str]] = None, platform: Optional[str] = None):
        """
        Args:
            command: Explicit command prefix; title and body are appended
            platform: Platform name override (defaults to sys.platform)
        """
        self._platform = platform or sys.platform
        self._command = command if command is not None else self._detect_command()
        self._permission = PermissionState.DEFAULT
        self._shown_tags: dict[str, None] = {}
        self._workers: List[threading.Thread] = []

    def _detect_command(self) -> Optional[List[str]]:
        if self._platform.startswith("linux") and shutil.which("notify-send"):
            return ["notify-send", "--app-name", APP_NAME]
        if self._platform == "darwin" and shutil.which("osascript"):
            return ["osascript"]
        return None

    @property
    def is_supported(self) -> bool:
        return self._command is not None

    @property
    def permission(self) -> str:
        return self._permission

    async def request_permission(self) -> str:
        if not self.is_supported:
            self._permission = PermissionState.DENIED
        elif self._permission == PermissionState.DEFAULT:
            self._permission = PermissionState.GRANTED
        return self._permission

    def _build_args(self, title: str, body: str) -> List[str]:
        if self._command == ["osascript"]:
            safe_title = title.replace('"', "'")
            safe_body = body.replace('"', "'")
            script = f'display notification "{safe_body}" with title "{safe_title}"'
            return ["osascript", "-e", script]
        return list(self._command) + [title, body]

    def show(self, title: str, body: str, tag: str) -> bool:
        if not self.is_supported or self._permission != PermissionState.GRANTED:
            return False

        if tag in self._shown_tags:
            logger.debug(f"Notification tag {tag} already shown, coalescing")
            return False

        self._shown_tags[tag] = None
        if len(self._shown_tags) > MAX_REMEMBERED_TAGS:
            oldest = next(iter(self._shown_tags))
            del self._shown_tags[oldest]

        title = (title or APP_NAME).strip()
        body = (body or "").strip()[:MAX_BODY_LENGTH]

        worker = threading.Thread(
            target=self._dispatch,
            args=(self._build_args(title, body),),
            daemon=True,
        )
        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        worker.start()
        return True

    def _dispatch(self, args: List[str]) -> None:
        """Run the notification command. Executes on a worker thread."""
        try:
            subprocess.run(
                args,
                capture_output=True,
                text=True,
                timeout=DISPATCH_TIMEOUT,
                check=True,
            )
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as e:
            logger.warning(f"Desktop notification failed: {e}")

    def wait_for_dispatch(self, timeout: Optional[float] = None) -> bool:
        """
        Block until pending notification commands finish.

        Returns:
            True if no command is still running when the wait ends
        """
        for worker in list(self._workers):
            worker.join(timeout)
        self._workers = [w for w in self._workers if w.is_alive()]
        return not self._workers


def default_notifier(enabled: bool = True) -> PlatformNotifier:
    """Return a DesktopNotifier when enabled and supported, else a NullNotifier."""
    if not enabled:
        return NullNotifier()
    notifier = DesktopNotifier()
    return notifier if notifier.is_supported else NullNotifier()
