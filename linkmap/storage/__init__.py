"""
Session storage abstraction for LinkMap.

Supports multiple backends behind one key-value protocol:
- UserStorageBackend: NiceGUI per-browser storage (default)
- FileBackend: Local JSON files
- MemoryBackend: In-process dict, for tests
"""

from linkmap.storage.protocol import SessionBackend, StorageError, StorageQuotaError
from linkmap.storage.memory_backend import MemoryBackend
from linkmap.storage.file_backend import FileBackend
from linkmap.storage.user_backend import UserStorageBackend
from linkmap.storage.factory import create_backend

__all__ = [
    'SessionBackend',
    'StorageError',
    'StorageQuotaError',
    'MemoryBackend',
    'FileBackend',
    'UserStorageBackend',
    'create_backend',
]
