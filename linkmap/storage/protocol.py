"""
SessionBackend Protocol Definition.

This module defines the key-value interface that all session backends must implement.
UserStorageBackend (browser-bound NiceGUI storage), FileBackend (local JSON files)
and MemoryBackend (tests) conform to this protocol.

Values are whole serialized records; there are no partial-field updates.
"""

from typing import Optional, Protocol, runtime_checkable


class StorageError(Exception):
    """Raised when a backend cannot persist or read a value."""


class StorageQuotaError(StorageError):
    """Raised when a value exceeds the backend's size quota."""


@runtime_checkable
class SessionBackend(Protocol):
    """
    Abstract protocol for session backends.

    All backends must implement these methods to provide
    read/write/delete/exists over string values.
    """

    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('user', 'file' or 'memory')."""
        ...

    def read(self, key: str) -> Optional[str]:
        """
        Read a stored value.

        Returns:
            The stored string, or None if the key is absent
        """
        ...

    def write(self, key: str, value: str) -> None:
        """
        Replace the value stored under key.

        Raises:
            StorageQuotaError: If the value exceeds the quota
            StorageError: If the value cannot be persisted
        """
        ...

    def delete(self, key: str) -> None:
        """Delete a key. Deleting an absent key is not an error."""
        ...

    def exists(self, key: str) -> bool:
        """Return True if a value is stored under key."""
        ...


def check_quota(value: str, quota_bytes: int) -> None:
    """
    Enforce a size quota on a value about to be written.

    Args:
        value: Serialized value
        quota_bytes: Maximum encoded size; 0 disables the check
    """
    if quota_bytes and len(value.encode("utf-8")) > quota_bytes:
        raise StorageQuotaError(
            f"Session of {len(value.encode('utf-8'))} bytes exceeds the {quota_bytes} byte quota"
        )
