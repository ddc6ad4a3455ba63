"""
Path utilities for LinkMap.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

External data (data/, config.json, .env) lives NEXT TO the executable, not bundled inside.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.
    
    - In development: the project root (parent of linkmap/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent.parent


def get_data_dir() -> Path:
    """Get the default directory used by the file session backend."""
    return get_app_dir() / "data"


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_app_dir() / "config.json"


def ensure_dir(path: Path) -> Path:
    """
    Ensure a directory exists, creating it if necessary.
    Returns the path.
    """
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path
