"""
In-memory session backend.

Used in tests and for sessions that should not outlive the process.
"""

from typing import Dict, Optional

from linkmap.storage.protocol import check_quota


class MemoryBackend:
    """Dict-backed key-value store."""

    def __init__(self, quota_bytes: int = 0):
        self.quota_bytes = quota_bytes
        self.values: Dict[str, str] = {}

    @property
    def backend_type(self) -> str:
        return "memory"

    def read(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def write(self, key: str, value: str) -> None:
        check_quota(value, self.quota_bytes)
        self.values[key] = value

    def delete(self, key: str) -> None:
        self.values.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self.values
