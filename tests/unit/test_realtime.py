"""
Unit tests for the real-time connection.

Uses FakeSocketClient from conftest in place of socketio.AsyncClient.
"""

import asyncio

import pytest
import socketio

from examnotify.event_bus import NOTIFICATION_EVENT
from examnotify.realtime import ConnectionState, RealtimeConnection


def make_connection(socket_factory, received=None, **kwargs):
    received = received if received is not None else []
    return RealtimeConnection(
        "http://localhost:4000",
        "token-abc",
        received.append,
        socket_factory=socket_factory,
        **kwargs,
    )


class TestSocketOptions:
    """Tests for how the Socket.IO client is built."""

    def test_reconnection_options(self, socket_factory):
        make_connection(socket_factory, reconnection_attempts=3, reconnection_delay=2.0)

        options = socket_factory.created[0].options
        assert options["reconnection"] is True
        assert options["reconnection_attempts"] == 3
        assert options["reconnection_delay"] == 2.0
        assert options["reconnection_delay_max"] == 2.0
        assert options["randomization_factor"] == 0

    @pytest.mark.asyncio
    async def test_connect_sends_token_and_transports(self, socket_factory):
        connection = make_connection(socket_factory)

        assert await connection.connect() is True

        call = socket_factory.created[0].connect_calls[0]
        assert call["url"] == "http://localhost:4000"
        assert call["auth"] == {"token": "token-abc"}
        assert call["transports"] == ["websocket", "polling"]

        await connection.disconnect()


class TestHandlerRegistration:
    """Tests for single registration of handlers."""

    def test_register_once(self, socket_factory):
        connection = make_connection(socket_factory)

        assert connection.register_handlers() is True
        assert connection.register_handlers() is False

        handlers = socket_factory.created[0].handlers["/"]
        assert set(handlers) == {"connect", "disconnect", "connect_error", "notification"}

    @pytest.mark.asyncio
    async def test_connect_does_not_register_twice(self, socket_factory):
        connection = make_connection(socket_factory)
        connection.register_handlers()

        await connection.connect()

        assert connection.handlers_registered is True
        await connection.disconnect()

    @pytest.mark.asyncio
    async def test_disconnect_unregisters(self, socket_factory):
        received = []
        connection = make_connection(socket_factory, received)
        await connection.connect()
        sock = socket_factory.created[0]

        await connection.disconnect()

        assert connection.handlers_registered is False
        assert "notification" not in sock.handlers["/"]
        await sock.emit_from_server("notification", {"id": "late"})
        assert received == []

    def test_unregister_against_real_client(self):
        created = []

        def real_factory(**kwargs):
            created.append(socketio.AsyncClient(**kwargs))
            return created[0]

        connection = make_connection(real_factory)
        connection.register_handlers()
        assert NOTIFICATION_EVENT in created[0].handlers["/"]

        connection.unregister_handlers()

        registered = created[0].handlers.get("/", {})
        assert not {"connect", "disconnect", "connect_error", NOTIFICATION_EVENT} & set(registered)
        assert connection.handlers_registered is False

    @pytest.mark.asyncio
    async def test_late_event_on_stale_handler_ignored(self, socket_factory):
        received = []
        connection = make_connection(socket_factory, received)
        await connection.connect()
        stale_handler = socket_factory.created[0].handlers["/"]["notification"]

        await connection.disconnect()
        await stale_handler({"id": "late"})

        assert received == []


class TestConnectionState:
    """Tests for state transitions."""

    @pytest.mark.asyncio
    async def test_connected(self, socket_factory):
        received = []
        connection = make_connection(socket_factory, received)
        assert connection.state == ConnectionState.DISCONNECTED

        await connection.connect()

        assert connection.state == ConnectionState.CONNECTED
        assert connection.is_connected is True

        await socket_factory.created[0].emit_from_server("notification", {"id": "n1"})
        assert received == [{"id": "n1"}]

        await connection.disconnect()
        assert connection.state == ConnectionState.DISCONNECTED
        assert connection.is_connected is False

    @pytest.mark.asyncio
    async def test_initial_failure(self, socket_factory):
        connection = make_connection(socket_factory)
        # The fake socket is created in the constructor
        socket_factory.created[0].fail_connect = True

        assert await connection.connect() is False

        assert connection.state == ConnectionState.FAILED
        assert connection.failed_attempts == 1
        assert connection.is_connected is False

    @pytest.mark.asyncio
    async def test_drop_and_reconnect(self, socket_factory):
        connection = make_connection(socket_factory)
        await connection.connect()
        sock = socket_factory.created[0]

        await sock.drop_connection()
        assert connection.state == ConnectionState.RECONNECTING
        assert connection.is_connected is False

        await sock.emit_from_server("connect_error", "refused")
        assert connection.failed_attempts == 1

        await sock.reconnect()
        assert connection.state == ConnectionState.CONNECTED
        assert connection.failed_attempts == 0

        await connection.disconnect()

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, socket_factory):
        connection = make_connection(socket_factory, reconnection_attempts=2)
        await connection.connect()
        sock = socket_factory.created[0]

        await sock.drop_connection()
        sock.give_up()
        for _ in range(3):
            await asyncio.sleep(0)

        assert connection.state == ConnectionState.FAILED

        await connection.disconnect()
        assert connection.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_disconnect_errors_logged(self, socket_factory, caplog):
        connection = make_connection(socket_factory)
        await connection.connect()
        sock = socket_factory.created[0]

        async def broken_disconnect():
            raise RuntimeError("socket already closed")

        sock.disconnect = broken_disconnect

        await connection.disconnect()

        assert connection.state == ConnectionState.DISCONNECTED
        assert "socket already closed" in caplog.text
