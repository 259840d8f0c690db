"""
Real-time connection to the notification server.

Wraps one python-socketio AsyncClient. Reconnection after a dropped
connection is left to the Socket.IO library (bounded attempts, fixed delay);
this module tracks the resulting state and forwards ``notification`` events
to a callback.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Optional

import socketio
from socketio.exceptions import ConnectionError as SocketConnectionError

from examnotify.config import DEFAULT_RECONNECTION_ATTEMPTS, DEFAULT_RECONNECTION_DELAY
from examnotify.event_bus import NOTIFICATION_EVENT

logger = logging.getLogger("examnotify.realtime")

DEFAULT_CONNECT_TIMEOUT = 10  # seconds
TRANSPORTS = ["websocket", "polling"]

NotificationCallback = Callable[[Any], Any]
SocketFactory = Callable[..., socketio.AsyncClient]


class ConnectionState(str, Enum):
    """Lifecycle of a single connection."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    FAILED = "failed"


class RealtimeConnection:
    """
    One Socket.IO connection authenticated with a bearer token.

    Handlers are registered at most once per instance. After
    ``disconnect()`` the handlers are removed and late events are ignored,
    so a replaced connection never delivers again.

    Attributes:
        url: Server origin the socket connects to
        state: Current ConnectionState
    """

    def __init__(
        self,
        url: str,
        token: str,
        on_notification: NotificationCallback,
        reconnection_attempts: int = DEFAULT_RECONNECTION_ATTEMPTS,
        reconnection_delay: float = DEFAULT_RECONNECTION_DELAY,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        socket_factory: Optional[SocketFactory] = None,
    ):
        """
        Initialize the connection (does not connect).

        Args:
            url: Server origin, e.g. http://localhost:4000
            token: Bearer token sent as handshake auth
            on_notification: Called with each ``notification`` event payload
            reconnection_attempts: Bound on automatic reconnection attempts
            reconnection_delay: Fixed delay between attempts, in seconds
            connect_timeout: Seconds to wait for the namespace handshake
            socket_factory: Builds the Socket.IO client (used by tests)
        """
        self.url = url
        self._token = token
        self._on_notification = on_notification
        self._reconnection_attempts = reconnection_attempts
        self._connect_timeout = connect_timeout

        factory = socket_factory or socketio.AsyncClient
        self._sio = factory(
            reconnection=True,
            reconnection_attempts=reconnection_attempts,
            reconnection_delay=reconnection_delay,
            reconnection_delay_max=reconnection_delay,
            randomization_factor=0,
            handle_sigint=False,
            logger=False,
        )

        self._handlers_registered = False
        self._closing = False
        self._state = ConnectionState.DISCONNECTED
        self._failed_attempts = 0
        self._supervisor: Optional[asyncio.Task] = None

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def handlers_registered(self) -> bool:
        return self._handlers_registered

    @property
    def failed_attempts(self) -> int:
        """Consecutive failed connection attempts since the last success."""
        return self._failed_attempts

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED and bool(
            getattr(self._sio, "connected", False)
        )

    # -------------------------------------------------------------------------
    # Handler registration
    # -------------------------------------------------------------------------

    def register_handlers(self) -> bool:
        """
        Register the event handlers on the socket.

        Returns:
            False if handlers were already registered on this instance
        """
        if self._handlers_registered:
            logger.debug("Handlers already registered on this connection, skipping")
            return False

        self._sio.on("connect", self._handle_connect)
        self._sio.on("disconnect", self._handle_disconnect)
        self._sio.on("connect_error", self._handle_connect_error)
        self._sio.on(NOTIFICATION_EVENT, self._handle_notification)
        self._handlers_registered = True
        return True

    def unregister_handlers(self) -> None:
        """Remove this connection's handlers from the socket."""
        # Handler table layout (handlers[namespace][event]) checked against python-socketio 5.11
        namespace_handlers = getattr(self._sio, "handlers", {}).get("/", {})
        for event in ("connect", "disconnect", "connect_error", NOTIFICATION_EVENT):
            namespace_handlers.pop(event, None)
        self._handlers_registered = False

    # -------------------------------------------------------------------------
    # Socket.IO event handlers
    # -------------------------------------------------------------------------

    async def _handle_connect(self) -> None:
        self._state = ConnectionState.CONNECTED
        self._failed_attempts = 0
        logger.info(f"Real-time connection established to {self.url}")

    async def _handle_disconnect(self, reason: Any = None) -> None:
        if self._closing:
            self._state = ConnectionState.DISCONNECTED
            return

        self._state = ConnectionState.RECONNECTING
        logger.warning(f"Real-time connection lost ({reason or 'unknown reason'}), reconnecting")

    async def _handle_connect_error(self, data: Any = None) -> None:
        self._failed_attempts += 1
        logger.warning(
            f"Real-time connection error: {data} "
            f"(attempt {self._failed_attempts}/{self._reconnection_attempts})"
        )

    async def _handle_notification(self, data: Any) -> None:
        if not self._handlers_registered:
            # Late event on a replaced connection
            return
        self._on_notification(data)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def connect(self) -> bool:
        """
        Open the connection.

        Returns:
            True if connected; False if the initial attempt failed (state
            becomes FAILED)
        """
        self.register_handlers()
        self._closing = False
        self._state = ConnectionState.CONNECTING
        logger.info(f"Connecting to real-time server at {self.url}")

        try:
            await self._sio.connect(
                self.url,
                auth={"token": self._token},
                transports=TRANSPORTS,
                wait_timeout=self._connect_timeout,
            )
        except SocketConnectionError as e:
            self._state = ConnectionState.FAILED
            logger.error(f"Failed to connect to real-time server: {e}")
            return False

        self._state = ConnectionState.CONNECTED
        self._supervisor = asyncio.create_task(self._supervise())
        return True

    async def _supervise(self) -> None:
        """
        Wait for the socket to stop for good.

        ``AsyncClient.wait()`` returns once the connection is gone and the
        library's reconnection loop has ended without reconnecting.
        """
        await self._sio.wait()

        if not self._closing and not getattr(self._sio, "connected", False):
            self._state = ConnectionState.FAILED
            logger.error(
                f"Giving up on real-time connection after "
                f"{self._reconnection_attempts} reconnection attempts"
            )

    async def disconnect(self) -> None:
        """Unregister handlers and close the socket."""
        self._closing = True
        self.unregister_handlers()

        try:
            await self._sio.disconnect()
        except Exception as e:
            logger.warning(f"Error while closing real-time connection: {e}")

        if self._supervisor is not None and not self._supervisor.done():
            self._supervisor.cancel()
            try:
                await self._supervisor
            except asyncio.CancelledError:
                pass
        self._supervisor = None

        self._state = ConnectionState.DISCONNECTED
        logger.info("Real-time connection closed")
