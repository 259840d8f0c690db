"""
Client configuration module.

Manages client configuration: the API base URL, the page location used to
infer it, reconnection and deduplication bounds, and logging. Values come
from environment variables, a YAML file, or defaults (in that order).
"""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from platformdirs import user_config_dir


# ============================================================================
# Constants
# ============================================================================

APP_NAME = "examnotify"
APP_AUTHOR = "ExamNotify"
CONFIG_FILENAME = "client-config.yaml"

# Environment variable names
ENV_API_URL = "EXAMNOTIFY_API_URL"
ENV_PAGE_URL = "EXAMNOTIFY_PAGE_URL"
ENV_LOG_LEVEL = "EXAMNOTIFY_LOG_LEVEL"
ENV_CONFIG_PATH = "EXAMNOTIFY_CONFIG_PATH"

# Default values
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_RECONNECTION_ATTEMPTS = 5
DEFAULT_RECONNECTION_DELAY = 1.0  # seconds
DEFAULT_DEDUP_MAX_ENTRIES = 100
DEFAULT_DEDUP_KEEP_ENTRIES = 50
DEFAULT_COUNTS_REFRESH_INTERVAL = 60  # seconds

# Keys accepted by `set_value` and their types
SETTABLE_KEYS = {
    "api_url": str,
    "page_url": str,
    "log_level": str,
    "request_timeout_seconds": float,
    "reconnection_attempts": int,
    "reconnection_delay_seconds": float,
    "dedup_max_entries": int,
    "dedup_keep_entries": int,
    "counts_refresh_interval_seconds": int,
    "desktop_notifications": bool,
    "fail_closed_on_undecodable_token": bool,
}

# URL validation regex
URL_PATTERN = re.compile(
    r"^https?://"  # http:// or https://
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|"  # domain
    r"localhost|"  # localhost
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"  # ...or ip
    r"(?::\d+)?"  # optional port
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    pass


# ============================================================================
# Helper Functions
# ============================================================================


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory for the current platform.

    Returns:
        Path to the platform-appropriate config directory
    """
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_default_config_dir() / CONFIG_FILENAME


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ConfigValidationError(f"Expected a boolean, got: {value}")


# ============================================================================
# ClientConfig Class
# ============================================================================


class ClientConfig:
    """
    Notification client configuration manager.

    Configuration sources (in priority order):
    1. Environment variables
    2. Configuration file
    3. Default values

    Attributes:
        api_url: Explicit API base URL (empty means infer it)
        page_url: Location of the dashboard page, used to infer the API URL
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        request_timeout_seconds: Timeout for REST calls
        reconnection_attempts: Bound on automatic socket reconnection attempts
        reconnection_delay_seconds: Fixed delay between reconnection attempts
        dedup_max_entries: Size at which the delivered-ID set is trimmed
        dedup_keep_entries: Number of most recent IDs kept after a trim
        counts_refresh_interval_seconds: Listener's REST counts refresh interval
        desktop_notifications: Whether to raise desktop notifications
        fail_closed_on_undecodable_token: Drop notifications when the local
            token cannot be decoded
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config_dir: Optional[Path] = None,
    ):
        """
        Initialize client configuration.

        Args:
            config_path: Explicit path to config file (takes precedence)
            config_dir: Directory containing config file
        """
        if config_path:
            self._config_path = Path(config_path)
            self._config_dir = self._config_path.parent
        elif config_dir:
            self._config_dir = Path(config_dir)
            self._config_path = self._config_dir / CONFIG_FILENAME
        else:
            env_path = os.environ.get(ENV_CONFIG_PATH)
            if env_path:
                self._config_path = Path(env_path)
                self._config_dir = self._config_path.parent
            else:
                self._config_dir = get_default_config_dir()
                self._config_path = self._config_dir / CONFIG_FILENAME

        self._api_url: str = ""
        self._page_url: str = ""
        self._log_level: str = DEFAULT_LOG_LEVEL
        self.request_timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT
        self.reconnection_attempts: int = DEFAULT_RECONNECTION_ATTEMPTS
        self.reconnection_delay_seconds: float = DEFAULT_RECONNECTION_DELAY
        self.dedup_max_entries: int = DEFAULT_DEDUP_MAX_ENTRIES
        self.dedup_keep_entries: int = DEFAULT_DEDUP_KEEP_ENTRIES
        self.counts_refresh_interval_seconds: int = DEFAULT_COUNTS_REFRESH_INTERVAL
        self.desktop_notifications: bool = True
        self.fail_closed_on_undecodable_token: bool = False

        self._load()

    @property
    def config_path(self) -> Path:
        """Get the configuration file path."""
        return self._config_path

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory."""
        return self._config_dir

    # -------------------------------------------------------------------------
    # Environment-overridable Properties
    # -------------------------------------------------------------------------

    @property
    def api_url(self) -> str:
        """Get the explicit API base URL."""
        return os.environ.get(ENV_API_URL, self._api_url)

    @api_url.setter
    def api_url(self, value: str) -> None:
        self._api_url = value

    @property
    def page_url(self) -> str:
        """Get the dashboard page location."""
        return os.environ.get(ENV_PAGE_URL, self._page_url)

    @page_url.setter
    def page_url(self, value: str) -> None:
        self._page_url = value

    @property
    def log_level(self) -> str:
        """Get the log level."""
        return os.environ.get(ENV_LOG_LEVEL, self._log_level)

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._log_level = value

    # -------------------------------------------------------------------------
    # Configuration Management
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        """Load configuration from file."""
        if not self._config_path.exists():
            return

        try:
            with open(self._config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {self._config_path}")

        self._api_url = data.get("api_url", "")
        self._page_url = data.get("page_url", "")
        self._log_level = data.get("log_level", DEFAULT_LOG_LEVEL)
        self.request_timeout_seconds = data.get(
            "request_timeout_seconds", DEFAULT_REQUEST_TIMEOUT
        )
        self.reconnection_attempts = data.get(
            "reconnection_attempts", DEFAULT_RECONNECTION_ATTEMPTS
        )
        self.reconnection_delay_seconds = data.get(
            "reconnection_delay_seconds", DEFAULT_RECONNECTION_DELAY
        )
        self.dedup_max_entries = data.get("dedup_max_entries", DEFAULT_DEDUP_MAX_ENTRIES)
        self.dedup_keep_entries = data.get("dedup_keep_entries", DEFAULT_DEDUP_KEEP_ENTRIES)
        self.counts_refresh_interval_seconds = data.get(
            "counts_refresh_interval_seconds", DEFAULT_COUNTS_REFRESH_INTERVAL
        )
        self.desktop_notifications = data.get("desktop_notifications", True)
        self.fail_closed_on_undecodable_token = data.get(
            "fail_closed_on_undecodable_token", False
        )

    def to_dict(self) -> dict:
        """Return the file-backed configuration values."""
        return {
            "api_url": self._api_url,
            "page_url": self._page_url,
            "log_level": self._log_level,
            "request_timeout_seconds": self.request_timeout_seconds,
            "reconnection_attempts": self.reconnection_attempts,
            "reconnection_delay_seconds": self.reconnection_delay_seconds,
            "dedup_max_entries": self.dedup_max_entries,
            "dedup_keep_entries": self.dedup_keep_entries,
            "counts_refresh_interval_seconds": self.counts_refresh_interval_seconds,
            "desktop_notifications": self.desktop_notifications,
            "fail_closed_on_undecodable_token": self.fail_closed_on_undecodable_token,
        }

    def save(self) -> None:
        """Save configuration to file."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def set_value(self, key: str, raw_value: str) -> None:
        """
        Set a configuration value from its string form.

        Args:
            key: Configuration key (see SETTABLE_KEYS)
            raw_value: Value as typed on the command line

        Raises:
            ConfigValidationError: If the key is unknown or the value invalid
        """
        if key not in SETTABLE_KEYS:
            raise ConfigValidationError(
                f"Unknown config key '{key}'. Valid keys: {', '.join(sorted(SETTABLE_KEYS))}"
            )

        value_type = SETTABLE_KEYS[key]
        try:
            if value_type is bool:
                value = _parse_bool(raw_value)
            else:
                value = value_type(raw_value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid value for {key}: {raw_value!r} (expected {value_type.__name__})"
            )

        # Environment-backed keys are stored on their private attribute
        if key in ("api_url", "page_url", "log_level"):
            setattr(self, f"_{key}", value)
        else:
            setattr(self, key, value)

    def validate(self) -> None:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        if self.api_url and "://" in self.api_url and not URL_PATTERN.match(self.api_url):
            raise ConfigValidationError(f"Invalid api_url format: {self.api_url}")

        if self.page_url and not URL_PATTERN.match(self.page_url):
            raise ConfigValidationError(f"Invalid page_url format: {self.page_url}")

        if self.request_timeout_seconds <= 0:
            raise ConfigValidationError(
                f"request_timeout_seconds must be positive, got: {self.request_timeout_seconds}"
            )

        # python-socketio treats 0 as unlimited retries
        if self.reconnection_attempts < 1:
            raise ConfigValidationError(
                f"reconnection_attempts must be at least 1, got: {self.reconnection_attempts}"
            )

        if self.reconnection_delay_seconds <= 0:
            raise ConfigValidationError(
                f"reconnection_delay_seconds must be positive, got: {self.reconnection_delay_seconds}"
            )

        if self.dedup_max_entries <= 0:
            raise ConfigValidationError(
                f"dedup_max_entries must be positive, got: {self.dedup_max_entries}"
            )

        if not 0 <= self.dedup_keep_entries <= self.dedup_max_entries:
            raise ConfigValidationError(
                "dedup_keep_entries must be between 0 and dedup_max_entries, "
                f"got: {self.dedup_keep_entries}"
            )

        if self.counts_refresh_interval_seconds <= 0:
            raise ConfigValidationError(
                "counts_refresh_interval_seconds must be positive, "
                f"got: {self.counts_refresh_interval_seconds}"
            )
