"""
Local token store for the bearer token and user record.

Provides persistent key/value storage encrypted with Fernet. The master key
is auto-generated on first use and stored next to the entries.

Design:
- Each key is stored in its own encrypted file
- Master key is generated automatically when the first entry is written
- Unreadable or corrupted entries read as missing
"""

import json
import os
from pathlib import Path
from typing import Any, List, Optional

from cryptography.fernet import Fernet, InvalidToken

from examnotify.tokens import is_token_expired

AUTH_TOKEN_KEY = "auth-token"
USER_KEY = "user"


class TokenStore:
    """
    Encrypted local storage for authentication data.

    Directory structure:
        ~/.examnotify/
            master.key          # Fernet encryption key (auto-generated)
            storage/
                auth-token.enc  # Encrypted bearer token
                user.enc        # Encrypted user record

    Usage:
        >>> store = TokenStore()
        >>> store.set_token("eyJhbGciOi...")
        >>> store.get_token()
        'eyJhbGciOi...'
    """

    DEFAULT_BASE_DIR = Path.home() / ".examnotify"
    MASTER_KEY_FILE = "master.key"
    STORAGE_DIR = "storage"

    def __init__(self, base_dir: Optional[Path] = None):
        """
        Initialize token store.

        Args:
            base_dir: Base directory for storage (defaults to ~/.examnotify)
        """
        self.base_dir = Path(base_dir) if base_dir else self.DEFAULT_BASE_DIR
        self.storage_dir = self.base_dir / self.STORAGE_DIR
        self._fernet: Optional[Fernet] = None

    def _ensure_directories(self) -> None:
        """Create necessary directories if they don't exist."""
        self.storage_dir.mkdir(parents=True, exist_ok=True)

        # Owner only
        os.chmod(self.base_dir, 0o700)
        os.chmod(self.storage_dir, 0o700)

    @property
    def master_key_path(self) -> Path:
        """Path to master key file."""
        return self.base_dir / self.MASTER_KEY_FILE

    def _load_or_create_master_key(self) -> bytes:
        self._ensure_directories()

        if self.master_key_path.exists():
            with open(self.master_key_path, "rb") as f:
                return f.read()

        key = Fernet.generate_key()
        with open(self.master_key_path, "wb") as f:
            f.write(key)
        os.chmod(self.master_key_path, 0o600)

        return key

    def _get_fernet(self) -> Fernet:
        """Get or create Fernet cipher."""
        if self._fernet is None:
            self._fernet = Fernet(self._load_or_create_master_key())
        return self._fernet

    def _item_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self.storage_dir / f"{safe_key}.enc"

    # -------------------------------------------------------------------------
    # Key/value operations
    # -------------------------------------------------------------------------

    def set_item(self, key: str, value: Any) -> None:
        """
        Store a JSON-serializable value under a key.

        Raises:
            ValueError: If key is empty
        """
        if not key:
            raise ValueError("key is required")

        self._ensure_directories()
        encrypted = self._get_fernet().encrypt(json.dumps(value).encode("utf-8"))

        file_path = self._item_path(key)
        with open(file_path, "wb") as f:
            f.write(encrypted)
        os.chmod(file_path, 0o600)

    def get_item(self, key: str) -> Optional[Any]:
        """Return the value stored under a key, or None."""
        file_path = self._item_path(key)
        if not file_path.exists():
            return None

        with open(file_path, "rb") as f:
            encrypted = f.read()

        try:
            decrypted = self._get_fernet().decrypt(encrypted)
            return json.loads(decrypted.decode("utf-8"))
        except (InvalidToken, ValueError):
            return None

    def remove_item(self, key: str) -> bool:
        """
        Remove a key.

        Returns:
            True if the key existed
        """
        file_path = self._item_path(key)
        if file_path.exists():
            file_path.unlink()
            return True
        return False

    def keys(self) -> List[str]:
        """List stored keys."""
        if not self.storage_dir.exists():
            return []
        return sorted(p.stem for p in self.storage_dir.glob("*.enc"))

    def clear(self) -> None:
        """Remove every stored key."""
        for key in self.keys():
            self.remove_item(key)

    # -------------------------------------------------------------------------
    # Authentication helpers
    # -------------------------------------------------------------------------

    def get_token(self) -> Optional[str]:
        """Return the stored bearer token, or None."""
        token = self.get_item(AUTH_TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def set_token(self, token: str, user: Optional[dict] = None) -> None:
        """Store a bearer token, and optionally the user record that came with it."""
        self.set_item(AUTH_TOKEN_KEY, token)
        if user is not None:
            self.set_item(USER_KEY, user)

    def get_user(self) -> Optional[dict]:
        """Return the stored user record, or None."""
        user = self.get_item(USER_KEY)
        return user if isinstance(user, dict) else None

    def clear_auth(self) -> None:
        """Remove the token and the user record."""
        self.remove_item(AUTH_TOKEN_KEY)
        self.remove_item(USER_KEY)

    def validate_and_clean(self) -> bool:
        """
        Check the stored token and drop it when expired.

        Returns:
            True if a non-expired token is stored
        """
        token = self.get_token()
        if not token:
            return False

        if is_token_expired(token):
            self.clear_auth()
            return False

        return True
