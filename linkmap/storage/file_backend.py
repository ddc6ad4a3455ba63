"""
File-based Session Backend for LinkMap.

Implements the SessionBackend protocol using local files:
- {data_dir}/{key}.json: one file per key holding the serialized record

Writes go to a temporary file first and are then renamed over the target,
so a failed write never leaves a truncated record behind.
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Union

from linkmap.paths import ensure_dir
from linkmap.storage.protocol import StorageError, check_quota

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class FileBackend:
    """Local file storage, one JSON file per key."""

    def __init__(self, data_dir: Union[str, Path], quota_bytes: int = 0):
        """
        Initialize FileBackend.

        Args:
            data_dir: Directory holding the record files (created if missing)
            quota_bytes: Maximum record size; 0 disables the check
        """
        self.data_dir = ensure_dir(data_dir)
        self.quota_bytes = quota_bytes

    @property
    def backend_type(self) -> str:
        return "file"

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{_UNSAFE_CHARS.sub('_', key)}.json"

    def read(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e

    def write(self, key: str, value: str) -> None:
        check_quota(value, self.quota_bytes)
        path = self.path_for(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        if not path.exists():
            return
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {path}: {e}") from e
        logger.info(f"Deleted session file {path}")

    def exists(self, key: str) -> bool:
        return self.path_for(key).exists()
