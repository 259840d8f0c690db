"""
Notification API client.

HTTP client for the backend's notification resource: listing, lifecycle
transitions, counters and creation. Every request carries the bearer token
read from the token store at call time. Failures are raised as typed
exceptions; callers that want safe defaults catch ApiError.
"""

import logging
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from examnotify import __version__
from examnotify.models import (
    Notification,
    NotificationCounts,
    NotificationCreate,
    NotificationFilters,
)

logger = logging.getLogger("examnotify.api")


# ============================================================================
# Constants
# ============================================================================

NOTIFICATIONS_PATH = "/notifications"
DEFAULT_TIMEOUT = 30.0  # seconds
USER_AGENT = f"ExamNotify-Client/{__version__}"

TokenProvider = Callable[[], Optional[str]]


# ============================================================================
# Exceptions
# ============================================================================


class ApiError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionError(ApiError):
    """Raised when connection to server fails."""

    pass


class AuthenticationError(ApiError):
    """Raised when the bearer token is missing, invalid or expired."""

    pass


class NotFoundError(ApiError):
    """Raised when the notification does not exist."""

    pass


# ============================================================================
# NotificationApiClient Class
# ============================================================================


class NotificationApiClient:
    """
    HTTP client for the notification REST resource.

    Attributes:
        api_base_url: Base URL of the backend API (e.g. http://host:4000/api)
    """

    def __init__(
        self,
        api_base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the API client.

        Args:
            api_base_url: Base URL of the backend API
            token_provider: Callable returning the current bearer token
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)

        Raises:
            ValueError: If api_base_url is empty
        """
        if not api_base_url:
            raise ValueError("api_base_url is required")

        self._api_base_url = api_base_url.rstrip("/")
        self._token_provider = token_provider or (lambda: None)

        self._client = httpx.AsyncClient(
            base_url=self._api_base_url,
            headers={
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @property
    def api_base_url(self) -> str:
        """Get the API base URL."""
        return self._api_base_url

    # -------------------------------------------------------------------------
    # Request helpers
    # -------------------------------------------------------------------------

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token_provider()}"}

    async def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send an authenticated request.

        Raises:
            ConnectionError: If connection to server fails
        """
        try:
            return await self._client.request(
                method, path, headers=self._auth_headers(), **kwargs
            )
        except httpx.ConnectError as e:
            raise ConnectionError(f"Failed to connect to server: {e}")
        except httpx.TimeoutException as e:
            raise ConnectionError(f"Connection timed out: {e}")
        except httpx.TransportError as e:
            raise ConnectionError(f"Transport error: {e}")

    @staticmethod
    def _detail(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict):
            return body.get("detail") or body.get("error") or body.get("message") or default
        return default

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        """
        Map a non-2xx response to an exception.

        Raises:
            AuthenticationError: On 401
            NotFoundError: On 404
            ApiError: On any other non-2xx status
        """
        status = response.status_code
        if 200 <= status < 300:
            return

        if status == 401:
            raise AuthenticationError("Invalid or expired token", status_code=401)
        elif status == 403:
            detail = self._detail(response, "Access denied")
            raise ApiError(f"Access denied: {detail}", status_code=403)
        elif status == 404:
            raise NotFoundError("Notification not found", status_code=404)
        elif status == 400:
            raise ApiError(self._detail(response, "Invalid request"), status_code=400)
        else:
            raise ApiError(
                f"{action} failed with status {status}",
                status_code=status,
            )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(f"Invalid JSON in response: {e}", status_code=response.status_code)

    @staticmethod
    def _item_path(notification_id: str, action: Optional[str] = None) -> str:
        path = f"{NOTIFICATIONS_PATH}/{quote(str(notification_id), safe='')}"
        return f"{path}/{action}" if action else path

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def list_notifications(
        self,
        filters: Optional[NotificationFilters] = None,
    ) -> list[Notification]:
        """
        List notifications for the current user.

        Args:
            filters: Optional filters (type, priority, status, recipient, dates)

        Returns:
            Notifications in server order. Items that fail validation are
            skipped.

        Raises:
            AuthenticationError: If the token is rejected
            ConnectionError: If connection to server fails
            ApiError: If the request fails
        """
        params = filters.to_query_params() if filters else {}
        response = await self._send("GET", NOTIFICATIONS_PATH, params=params)
        self._raise_for_status(response, "Notification list")

        body = self._json(response)
        items = body.get("notifications", []) if isinstance(body, dict) else body
        if not isinstance(items, list):
            raise ApiError("Unexpected notification list format", status_code=response.status_code)

        notifications = []
        for item in items:
            try:
                notifications.append(Notification.model_validate(item))
            except ValidationError as e:
                logger.warning(f"Skipping malformed notification in list: {e.error_count()} errors")
        return notifications

    async def get_counts(self) -> NotificationCounts:
        """
        Get unread, urgent and total counters.

        Raises:
            AuthenticationError: If the token is rejected
            ConnectionError: If connection to server fails
            ApiError: If the request fails
        """
        response = await self._send("GET", f"{NOTIFICATIONS_PATH}/counts")
        self._raise_for_status(response, "Notification counts")

        try:
            return NotificationCounts.model_validate(self._json(response))
        except ValidationError as e:
            raise ApiError(f"Invalid counts response: {e}", status_code=response.status_code)

    # -------------------------------------------------------------------------
    # Lifecycle transitions
    # -------------------------------------------------------------------------

    async def mark_as_read(self, notification_id: str) -> None:
        """Mark one notification as read."""
        response = await self._send("POST", self._item_path(notification_id, "read"))
        self._raise_for_status(response, "Mark as read")

    async def acknowledge(self, notification_id: str) -> None:
        """Acknowledge one notification (missing sheets, absent students)."""
        response = await self._send("PATCH", self._item_path(notification_id, "acknowledge"))
        self._raise_for_status(response, "Acknowledge")

    async def dismiss(self, notification_id: str) -> None:
        """Dismiss one notification."""
        response = await self._send("PATCH", self._item_path(notification_id, "dismiss"))
        self._raise_for_status(response, "Dismiss")

    async def delete(self, notification_id: str) -> None:
        """Permanently delete one notification."""
        response = await self._send("DELETE", self._item_path(notification_id))
        self._raise_for_status(response, "Delete")

    async def clear_all(self) -> None:
        """Dismiss every notification of the current user."""
        response = await self._send("POST", f"{NOTIFICATIONS_PATH}/clear-all")
        self._raise_for_status(response, "Clear all")

    async def mark_all_as_read(self) -> None:
        """Mark every notification of the current user as read."""
        response = await self._send("PATCH", f"{NOTIFICATIONS_PATH}/mark-all-read")
        self._raise_for_status(response, "Mark all as read")

    # -------------------------------------------------------------------------
    # Creation
    # -------------------------------------------------------------------------

    async def create_notification(self, payload: NotificationCreate) -> dict[str, Any]:
        """
        Create a notification.

        Args:
            payload: Typed creation payload

        Returns:
            Server response body (empty dict when the server sends none)

        Raises:
            AuthenticationError: If the token is rejected
            ConnectionError: If connection to server fails
            ApiError: If the request fails
        """
        response = await self._send("POST", NOTIFICATIONS_PATH, json=payload.to_wire())
        self._raise_for_status(response, "Notification create")

        if not response.content:
            return {}
        body = self._json(response)
        return body if isinstance(body, dict) else {"data": body}

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "NotificationApiClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
