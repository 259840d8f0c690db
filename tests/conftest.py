"""
Pytest configuration and fixtures for ExamNotify tests.

Provides temporary configuration and token storage, signed test tokens,
sample notification payloads, and a fake Socket.IO client that records
registrations and lets tests push events.
"""

import asyncio
import inspect
import time
from functools import partial
from pathlib import Path
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
import yaml
from socketio.exceptions import ConnectionError as SocketConnectionError

from examnotify.config import ClientConfig
from examnotify.models import NotificationCounts
from examnotify.platform_notifier import PermissionState, PlatformNotifier
from examnotify.realtime import RealtimeConnection
from examnotify.token_store import TokenStore

TEST_SIGNING_KEY = "examnotify-test-signing-key-0123456789abcdef"


# ============================================================================
# Environment Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch) -> None:
    """Remove ExamNotify environment variables so tests are isolated."""
    for var in (
        "EXAMNOTIFY_API_URL",
        "EXAMNOTIFY_PAGE_URL",
        "EXAMNOTIFY_LOG_LEVEL",
        "EXAMNOTIFY_CONFIG_PATH",
        "EXAMNOTIFY_VERSION",
    ):
        monkeypatch.delenv(var, raising=False)


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_config_dir(tmp_path) -> Path:
    """Temporary directory for client configuration files."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def client_config_values() -> dict:
    """Sample client configuration."""
    return {
        "api_url": "http://localhost:4000/api",
        "page_url": "",
        "log_level": "DEBUG",
        "request_timeout_seconds": 5.0,
        "reconnection_attempts": 3,
        "reconnection_delay_seconds": 0.5,
        "dedup_max_entries": 100,
        "dedup_keep_entries": 50,
        "counts_refresh_interval_seconds": 30,
        "desktop_notifications": False,
        "fail_closed_on_undecodable_token": False,
    }


@pytest.fixture
def client_config_file(temp_config_dir: Path, client_config_values: dict) -> Path:
    """Configuration file written from client_config_values."""
    config_path = temp_config_dir / "client-config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(client_config_values, f)
    return config_path


@pytest.fixture
def client_config(client_config_file: Path) -> ClientConfig:
    """Loaded client configuration."""
    return ClientConfig(config_path=client_config_file)


# ============================================================================
# Token Fixtures
# ============================================================================


def make_token(claims: dict, expires_in: Optional[int] = 3600) -> str:
    """Build a signed JWT with an expiry relative to now."""
    payload = dict(claims)
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    return jwt.encode(payload, TEST_SIGNING_KEY, algorithm="HS256")


@pytest.fixture
def token_factory():
    """Return the make_token helper."""
    return make_token


@pytest.fixture
def user_token() -> str:
    """Valid token for user u1."""
    return make_token({"sub": "u1", "role": "teacher"})


@pytest.fixture
def token_store(tmp_path) -> TokenStore:
    """Empty token store in a temporary directory."""
    return TokenStore(base_dir=tmp_path / "store")


@pytest.fixture
def authed_token_store(token_store: TokenStore, user_token: str) -> TokenStore:
    """Token store holding a valid token for user u1."""
    token_store.set_token(user_token, user={"id": "u1", "name": "Test Teacher"})
    return token_store


@pytest.fixture
def isolated_home(tmp_path, monkeypatch) -> Path:
    """Point the default token store and config locations at tmp_path."""
    store_dir = tmp_path / "home-store"
    monkeypatch.setattr(TokenStore, "DEFAULT_BASE_DIR", store_dir)
    monkeypatch.setenv("EXAMNOTIFY_CONFIG_PATH", str(tmp_path / "home-config" / "client-config.yaml"))
    return store_dir


# ============================================================================
# Notification Fixtures
# ============================================================================


@pytest.fixture
def notification_payload() -> dict:
    """Wire-format notification addressed to u1."""
    return {
        "id": "n1",
        "type": "MISSING_SHEET",
        "priority": "HIGH",
        "status": "UNREAD",
        "title": "Missing Answer Sheet",
        "message": "Asha Rao (Roll: 12) - Maths Midterm",
        "recipientId": "u1",
        "relatedEntityId": "exam_1",
        "relatedEntityType": "exam",
        "metadata": {"rollNumber": "12", "className": "10-A"},
        "createdAt": "2024-03-01T09:30:00Z",
    }


@pytest.fixture
def student_details() -> dict:
    """Details for student-related notifications."""
    return {
        "student_id": "stu_1",
        "student_name": "Asha Rao",
        "roll_number": "12",
        "exam_id": "exam_1",
        "exam_title": "Maths Midterm",
        "class_name": "10-A",
        "reason": "Sheet not scanned",
    }


# ============================================================================
# Mock Collaborators
# ============================================================================


@pytest.fixture
def mock_api_client() -> MagicMock:
    """Mock NotificationApiClient with successful defaults."""
    client = MagicMock()
    client.list_notifications = AsyncMock(return_value=[])
    client.get_counts = AsyncMock(return_value=NotificationCounts(unread=2, urgent=1, total=5))
    client.mark_as_read = AsyncMock(return_value=None)
    client.acknowledge = AsyncMock(return_value=None)
    client.dismiss = AsyncMock(return_value=None)
    client.delete = AsyncMock(return_value=None)
    client.clear_all = AsyncMock(return_value=None)
    client.mark_all_as_read = AsyncMock(return_value=None)
    client.create_notification = AsyncMock(return_value={"id": "n_new"})
    client.close = AsyncMock()
    return client


class RecordingNotifier(PlatformNotifier):
    """Platform notifier that records what it was asked to show."""

    def __init__(self, supported: bool = True, permission: str = PermissionState.GRANTED):
        self.supported = supported
        self._permission = permission
        self.shown: list[tuple[str, str, str]] = []

    @property
    def is_supported(self) -> bool:
        return self.supported

    @property
    def permission(self) -> str:
        return self._permission

    async def request_permission(self) -> str:
        if self.supported and self._permission == PermissionState.DEFAULT:
            self._permission = PermissionState.GRANTED
        return self._permission

    def show(self, title: str, body: str, tag: str) -> bool:
        self.shown.append((title, body, tag))
        return True


@pytest.fixture
def recording_notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_notifier():
    """Build RecordingNotifier instances with custom support/permission."""
    return RecordingNotifier


# ============================================================================
# Fake Socket.IO Client
# ============================================================================


class FakeSocketClient:
    """
    Stand-in for socketio.AsyncClient.

    Stores handlers the way python-socketio does (``handlers[namespace][event]``)
    and lets tests push server events with ``emit_from_server``.
    """

    def __init__(self, **kwargs: Any):
        self.options = kwargs
        self.handlers: dict[str, dict[str, Any]] = {}
        self.connected = False
        self.fail_connect = False
        self.connect_calls: list[dict] = []
        self.disconnect_calls = 0
        self._stopped = asyncio.Event()

    def on(self, event: str, handler: Any = None, namespace: Optional[str] = None) -> None:
        self.handlers.setdefault(namespace or "/", {})[event] = handler

    async def connect(self, url: str, **kwargs: Any) -> None:
        self.connect_calls.append({"url": url, **kwargs})
        if self.fail_connect:
            await self.emit_from_server("connect_error", "Connection refused")
            raise SocketConnectionError("Connection refused")
        self.connected = True
        await self.emit_from_server("connect")

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        was_connected = self.connected
        self.connected = False
        if was_connected:
            await self.emit_from_server("disconnect", "client disconnect")
        self._stopped.set()

    async def wait(self) -> None:
        await self._stopped.wait()

    async def emit_from_server(self, event: str, *args: Any) -> Any:
        handler = self.handlers.get("/", {}).get(event)
        if handler is None:
            return None
        result = handler(*args)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def drop_connection(self) -> None:
        """Simulate a transport-level disconnect (library will reconnect)."""
        self.connected = False
        await self.emit_from_server("disconnect", "transport close")

    async def reconnect(self) -> None:
        """Simulate a successful automatic reconnection."""
        self.connected = True
        await self.emit_from_server("connect")

    def give_up(self) -> None:
        """Simulate the library exhausting its reconnection attempts."""
        self.connected = False
        self._stopped.set()


@pytest.fixture
def socket_factory():
    """Factory building FakeSocketClient instances; created sockets in .created."""
    created: list[FakeSocketClient] = []

    def factory(**kwargs: Any) -> FakeSocketClient:
        sock = FakeSocketClient(**kwargs)
        created.append(sock)
        return sock

    factory.created = created
    return factory


@pytest.fixture
def connection_factory(socket_factory):
    """RealtimeConnection factory wired to FakeSocketClient."""
    return partial(RealtimeConnection, socket_factory=socket_factory)
