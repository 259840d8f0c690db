"""
Unit tests for the notification event bus.
"""

import asyncio

import pytest

from examnotify.event_bus import NotificationBus
from examnotify.models import Notification


@pytest.fixture
def notification(notification_payload):
    return Notification.model_validate(notification_payload)


class TestNotificationBus:
    """Tests for NotificationBus."""

    def test_publish_to_subscribers(self, notification):
        bus = NotificationBus()
        received = []
        bus.subscribe(received.append)
        bus.subscribe(lambda n: received.append(n.id))

        assert bus.publish(notification) == 2
        assert received == [notification, "n1"]

    def test_subscribe_twice_registers_once(self, notification):
        bus = NotificationBus()
        received = []
        bus.subscribe(received.append)
        bus.subscribe(received.append)

        bus.publish(notification)

        assert bus.subscriber_count == 1
        assert len(received) == 1

    def test_unsubscribe_callable(self, notification):
        bus = NotificationBus()
        received = []
        unsubscribe = bus.subscribe(received.append)

        unsubscribe()
        unsubscribe()

        assert bus.publish(notification) == 0
        assert received == []

    def test_failing_subscriber_does_not_block_others(self, notification, caplog):
        bus = NotificationBus()
        received = []

        def broken(_):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(received.append)

        assert bus.publish(notification) == 1
        assert received == [notification]
        assert "failed for notification n1" in caplog.text

    @pytest.mark.asyncio
    async def test_coroutine_subscriber(self, notification):
        bus = NotificationBus()
        received = []

        async def handler(n):
            await asyncio.sleep(0)
            received.append(n.id)

        bus.subscribe(handler)
        bus.publish(notification)
        await bus.drain()

        assert received == ["n1"]

    @pytest.mark.asyncio
    async def test_failing_coroutine_subscriber_logged(self, notification, caplog):
        bus = NotificationBus()

        async def handler(_):
            raise RuntimeError("async boom")

        bus.subscribe(handler)
        bus.publish(notification)
        await bus.drain()
        await asyncio.sleep(0)

        assert "Async subscriber failed" in caplog.text
