"""
Browser-bound Session Backend for LinkMap.

Stores the session in NiceGUI's app.storage.user, which is persisted per
browser (identified by a cookie) and survives page reloads and server
restarts. This is the default backend of the app.
"""

import logging
from typing import Any, MutableMapping, Optional

from linkmap.storage.protocol import StorageError, check_quota

logger = logging.getLogger(__name__)


class UserStorageBackend:
    """Key-value store over NiceGUI's per-user storage."""

    def __init__(self, storage: Optional[MutableMapping[str, Any]] = None, quota_bytes: int = 0):
        """
        Args:
            storage: Mapping to use instead of app.storage.user (tests)
            quota_bytes: Maximum record size; 0 disables the check
        """
        self._storage = storage
        self.quota_bytes = quota_bytes

    @property
    def backend_type(self) -> str:
        return "user"

    def _get_storage(self) -> MutableMapping[str, Any]:
        """Get NiceGUI storage for the current user."""
        if self._storage is not None:
            return self._storage
        try:
            from nicegui import app
            return app.storage.user
        except (ImportError, RuntimeError) as e:
            raise StorageError(f"User storage unavailable: {e}") from e

    def read(self, key: str) -> Optional[str]:
        value = self._get_storage().get(key)
        return value if isinstance(value, str) else None

    def write(self, key: str, value: str) -> None:
        check_quota(value, self.quota_bytes)
        self._get_storage()[key] = value

    def delete(self, key: str) -> None:
        self._get_storage().pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self._get_storage()
