"""
Notification client.

Composes the real-time connection, the delivered-ID set, the event bus and
the REST client into the one object an application builds at its root.
Everything that must be unique per process (the canonical connection and
the delivery history) lives on this instance.
"""

import logging
from typing import Any, Awaitable, Callable, Mapping, Optional, Union

from pydantic import ValidationError

from examnotify.api_client import ApiError, NotificationApiClient
from examnotify.config import ClientConfig
from examnotify.dedup import DeliveredIds
from examnotify.endpoint import resolve_api_base_url, socket_url_from_api_base
from examnotify.event_bus import NotificationBus, Subscriber
from examnotify.models import (
    AICorrectionDetails,
    Notification,
    NotificationCounts,
    NotificationCreate,
    NotificationFilters,
    StudentExamDetails,
)
from examnotify.platform_notifier import PermissionState, PlatformNotifier, default_notifier
from examnotify.realtime import ConnectionState, RealtimeConnection
from examnotify.token_store import TokenStore
from examnotify.tokens import get_recipient_id

logger = logging.getLogger("examnotify.client")

ConnectionFactory = Callable[..., RealtimeConnection]


class NotificationClient:
    """
    Real-time notification client with a REST facade.

    Inbound notifications are delivered at most once per session, only to
    the user the stored token belongs to. REST operations never raise: they
    return False, an empty list or zero counts on failure.

    Attributes:
        config: Client configuration
        bus: Event bus subscribers receive delivered notifications from
        api_base_url: Resolved REST base URL
        socket_url: Resolved real-time endpoint
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        token_store: Optional[TokenStore] = None,
        api_client: Optional[NotificationApiClient] = None,
        bus: Optional[NotificationBus] = None,
        notifier: Optional[PlatformNotifier] = None,
        connection_factory: Optional[ConnectionFactory] = None,
    ):
        """
        Initialize the client (does not connect; call initialize()).

        Args:
            config: Client configuration (loaded from disk when omitted)
            token_store: Persistent token storage
            api_client: REST client (built from config when omitted)
            bus: Event bus for delivered notifications
            notifier: Desktop notification capability
            connection_factory: Builds RealtimeConnection instances
        """
        self.config = config or ClientConfig()
        self._token_store = token_store or TokenStore()

        self.api_base_url = resolve_api_base_url(self.config.api_url, self.config.page_url)
        self.socket_url = socket_url_from_api_base(self.api_base_url)

        self._api = api_client or NotificationApiClient(
            self.api_base_url,
            token_provider=self._token_store.get_token,
            timeout=self.config.request_timeout_seconds,
        )
        self.bus = bus or NotificationBus()
        self._notifier = notifier or default_notifier(self.config.desktop_notifications)
        self._connection_factory = connection_factory or RealtimeConnection

        self._delivered = DeliveredIds(
            max_entries=self.config.dedup_max_entries,
            keep_entries=self.config.dedup_keep_entries,
        )
        self._connection: Optional[RealtimeConnection] = None

    # -------------------------------------------------------------------------
    # Connection management
    # -------------------------------------------------------------------------

    @property
    def connection(self) -> Optional[RealtimeConnection]:
        """The canonical connection, if any."""
        return self._connection

    @property
    def connection_state(self) -> ConnectionState:
        if self._connection is None:
            return ConnectionState.DISCONNECTED
        return self._connection.state

    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_connected

    async def initialize(self) -> bool:
        """
        Open the real-time connection using the stored token.

        Any existing connection is torn down first. Without a stored token
        nothing happens.

        Returns:
            True if the connection was established
        """
        token = self._token_store.get_token()
        if not token:
            logger.debug("No auth token stored, skipping real-time connection")
            return False

        if self._connection is not None:
            logger.info("Replacing existing real-time connection")
            await self.disconnect()

        self._connection = self._connection_factory(
            self.socket_url,
            token,
            self.handle_notification,
            reconnection_attempts=self.config.reconnection_attempts,
            reconnection_delay=self.config.reconnection_delay_seconds,
        )
        return await self._connection.connect()

    async def disconnect(self) -> None:
        """Tear down the canonical connection."""
        connection, self._connection = self._connection, None
        if connection is not None:
            await connection.disconnect()

    async def reinitialize_socket(self) -> bool:
        """Reconnect with the current token (e.g. after login stored a new one)."""
        await self.disconnect()
        return await self.initialize()

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    @property
    def delivered_ids(self) -> DeliveredIds:
        return self._delivered

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Subscribe to delivered notifications; returns an unsubscribe callable."""
        return self.bus.subscribe(callback)

    def handle_notification(self, payload: Union[Notification, Mapping[str, Any]]) -> bool:
        """
        Process one inbound notification.

        Args:
            payload: Notification pushed by the server

        Returns:
            True if the notification was delivered to subscribers
        """
        if isinstance(payload, Notification):
            notification = payload
        else:
            try:
                notification = Notification.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"Dropping malformed notification payload: {e.error_count()} errors")
                return False

        notification_id = notification.id
        if notification_id in self._delivered:
            logger.debug(f"Notification {notification_id} already delivered, skipping")
            return False

        # Claim the ID before any other processing
        self._delivered.add(notification_id)

        current_user_id = get_recipient_id(self._token_store.get_token())
        if current_user_id is None and self.config.fail_closed_on_undecodable_token:
            self._delivered.discard(notification_id)
            logger.warning(
                f"Dropping notification {notification_id}: local token could not be decoded"
            )
            return False

        if (
            notification.recipient_id
            and current_user_id
            and notification.recipient_id != current_user_id
        ):
            self._delivered.discard(notification_id)
            logger.warning(
                f"Dropping notification {notification_id} addressed to "
                f"{notification.recipient_id} (current user {current_user_id})"
            )
            return False

        self.bus.publish(notification)
        if self._notifier.permission == PermissionState.GRANTED:
            self._notifier.show(notification.title, notification.message, tag=notification_id)

        removed = self._delivered.trim()
        if removed:
            logger.debug(f"Trimmed {removed} IDs from delivery history")
        return True

    async def request_permission(self) -> bool:
        """
        Ask for desktop notification permission.

        Returns:
            True if granted; False when unsupported or denied
        """
        if not self._notifier.is_supported:
            return False
        return await self._notifier.request_permission() == PermissionState.GRANTED

    # -------------------------------------------------------------------------
    # REST facade
    # -------------------------------------------------------------------------

    async def _attempt(self, call: Awaitable[Any], action: str) -> bool:
        try:
            await call
        except ApiError as e:
            logger.warning(f"Failed to {action}: {e}")
            return False
        return True

    async def list_notifications(
        self,
        filters: Optional[NotificationFilters] = None,
    ) -> list[Notification]:
        """List notifications; empty list on failure."""
        try:
            return await self._api.list_notifications(filters)
        except ApiError as e:
            logger.warning(f"Failed to fetch notifications: {e}")
            return []

    async def mark_as_read(self, notification_id: Optional[str]) -> bool:
        if not notification_id:
            return False
        return await self._attempt(self._api.mark_as_read(notification_id), "mark notification as read")

    async def acknowledge(self, notification_id: Optional[str]) -> bool:
        if not notification_id:
            return False
        return await self._attempt(self._api.acknowledge(notification_id), "acknowledge notification")

    async def dismiss(self, notification_id: Optional[str]) -> bool:
        if not notification_id:
            return False
        return await self._attempt(self._api.dismiss(notification_id), "dismiss notification")

    async def delete(self, notification_id: Optional[str]) -> bool:
        if not notification_id:
            return False
        return await self._attempt(self._api.delete(notification_id), "delete notification")

    async def clear_all(self) -> bool:
        return await self._attempt(self._api.clear_all(), "clear notifications")

    async def mark_all_as_read(self) -> bool:
        return await self._attempt(self._api.mark_all_as_read(), "mark all notifications as read")

    async def get_counts(self) -> NotificationCounts:
        """Get notification counters; all zero on failure."""
        try:
            return await self._api.get_counts()
        except ApiError as e:
            logger.warning(f"Failed to fetch notification counts: {e}")
            return NotificationCounts()

    async def _create(self, details_model, details, build, action: str) -> bool:
        try:
            details = details_model.model_validate(details)
        except ValidationError as e:
            logger.warning(f"Failed to {action}: invalid details ({e.error_count()} errors)")
            return False
        return await self._attempt(self._api.create_notification(build(details)), action)

    async def create_missing_sheet_notification(
        self,
        details: Union[StudentExamDetails, Mapping[str, Any]],
    ) -> bool:
        return await self._create(
            StudentExamDetails,
            details,
            NotificationCreate.missing_sheet,
            "create missing sheet notification",
        )

    async def create_absent_student_notification(
        self,
        details: Union[StudentExamDetails, Mapping[str, Any]],
    ) -> bool:
        return await self._create(
            StudentExamDetails,
            details,
            NotificationCreate.absent_student,
            "create absent student notification",
        )

    async def create_ai_correction_complete_notification(
        self,
        details: Union[AICorrectionDetails, Mapping[str, Any]],
    ) -> bool:
        return await self._create(
            AICorrectionDetails,
            details,
            NotificationCreate.ai_correction_complete,
            "create AI correction notification",
        )

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Disconnect and release the HTTP client."""
        await self.disconnect()
        await self.bus.drain()
        await self._api.close()

    async def __aenter__(self) -> "NotificationClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
