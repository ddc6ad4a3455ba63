"""
Backend Factory for LinkMap.

Creates the configured session backend.
"""

import logging
from typing import Optional

from linkmap.config import AppConfig
from linkmap.storage.file_backend import FileBackend
from linkmap.storage.memory_backend import MemoryBackend
from linkmap.storage.protocol import SessionBackend
from linkmap.storage.user_backend import UserStorageBackend

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "user"


def create_backend(config: AppConfig, force_backend: Optional[str] = None) -> SessionBackend:
    """
    Create a session backend instance.

    Args:
        config: Resolved application config
        force_backend: Override the configured backend type

    Returns:
        SessionBackend instance (UserStorageBackend, FileBackend or MemoryBackend)
    """
    backend_type = force_backend or config.storage_backend or DEFAULT_BACKEND

    if backend_type == "file":
        return FileBackend(config.data_dir, quota_bytes=config.storage_quota_bytes)
    if backend_type == "memory":
        return MemoryBackend(quota_bytes=config.storage_quota_bytes)
    if backend_type != DEFAULT_BACKEND:
        logger.warning(f"Unknown backend type {backend_type!r}, using {DEFAULT_BACKEND!r}")
    return UserStorageBackend(quota_bytes=config.storage_quota_bytes)
