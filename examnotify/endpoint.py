"""
Server endpoint resolution.

The API base URL comes from an explicit setting when there is one. Otherwise
it is inferred from the location the dashboard is served from: the frontend
dev-server ports map to the backend port, any other port is reused.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger("examnotify.endpoint")

DEFAULT_API_BASE_URL = "http://localhost:4000/api"
BACKEND_PORT = "4000"
FRONTEND_DEV_PORTS = frozenset(["8080", "5173", "3000"])
API_PATH = "/api"


def resolve_api_base_url(
    env_url: Optional[str] = None,
    page_url: Optional[str] = None,
) -> str:
    """
    Resolve the REST API base URL.

    Args:
        env_url: Explicitly configured base URL (scheme optional)
        page_url: Location of the page the client runs behind

    Returns:
        Base URL without trailing slash, e.g. "http://host:4000/api"
    """
    if env_url:
        url = env_url if env_url.startswith("http") else f"http://{env_url}"
        return url.rstrip("/")

    if page_url:
        parts = urlsplit(page_url)
        if parts.hostname:
            try:
                page_port = parts.port
            except ValueError:
                logger.warning(f"Ignoring page URL with invalid port: {page_url}")
                return DEFAULT_API_BASE_URL
            port = str(page_port) if page_port else ""
            if port in FRONTEND_DEV_PORTS or not port:
                api_port = BACKEND_PORT
            else:
                api_port = port
            host = parts.hostname
            # IPv6 literals lose their brackets in SplitResult.hostname
            if ":" in host:
                host = f"[{host}]"
            scheme = parts.scheme or "http"
            return f"{scheme}://{host}:{api_port}{API_PATH}"

    return DEFAULT_API_BASE_URL


def socket_url_from_api_base(api_base_url: str) -> str:
    """
    Derive the real-time endpoint from the API base URL.

    Socket.IO is served at the server origin, so the path is dropped.
    """
    parts = urlsplit(api_base_url)
    return urlunsplit((parts.scheme, parts.netloc, "", "", ""))
