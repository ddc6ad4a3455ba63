"""
Configuration management for LinkMap.

Handles persistent configuration including:
- Which storage backend holds the saved session
- The optional default image fetched on first run
- Canvas size, autosave window and logging level

Config is stored in config.json next to the executable/project root.
Environment variables (LINKMAP_*, optionally loaded from .env) take priority.
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

from linkmap.constants import AUTOSAVE_DELAY_MS
from linkmap.paths import get_config_path, get_data_dir

logger = logging.getLogger(__name__)

ENV_PREFIX = "LINKMAP_"

STORAGE_BACKENDS = ("user", "file", "memory")


@dataclass
class AppConfig:
    """Resolved application configuration."""
    storage_backend: str = "user"
    data_dir: Path = field(default_factory=get_data_dir)
    storage_quota_bytes: int = 8 * 1024 * 1024
    default_image_url: str = ""
    fetch_timeout: float = 10.0
    autosave_delay_ms: int = AUTOSAVE_DELAY_MS
    canvas_width: int = 1024
    canvas_height: int = 680
    log_level: str = "INFO"
    port: int = 8081
    storage_secret: str = "linkmap_secret_key"


def load_config(config_path: Optional[Path] = None) -> dict:
    """Load configuration from config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
                return data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def _lookup(name: str, config: Mapping[str, Any], environ: Mapping[str, str]) -> Any:
    """
    Get a raw config value.

    Priority:
    1. Environment variable LINKMAP_<NAME>
    2. Stored in config.json
    """
    env_value = environ.get(ENV_PREFIX + name.upper())
    if env_value not in (None, ""):
        return env_value
    return config.get(name)


def _coerce(name: str, raw: Any, cast: Callable[[Any], Any], default: Any) -> Any:
    if raw is None:
        return default
    try:
        return cast(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed config value {name}={raw!r}, using {default!r}")
        return default


def get_app_config(config: Optional[Dict[str, Any]] = None,
                   environ: Optional[Mapping[str, str]] = None) -> AppConfig:
    """
    Resolve the application configuration.

    Args:
        config: Parsed config.json contents (loaded from disk when None)
        environ: Environment mapping (os.environ when None)

    Returns:
        AppConfig with every field populated
    """
    if config is None:
        config = load_config()
    if environ is None:
        environ = os.environ
    defaults = AppConfig()

    def get(name: str, cast: Callable[[Any], Any] = str) -> Any:
        return _coerce(name, _lookup(name, config, environ), cast, getattr(defaults, name))

    backend = get("storage_backend").strip().lower()
    if backend not in STORAGE_BACKENDS:
        logger.warning(f"Unknown storage backend {backend!r}, using {defaults.storage_backend!r}")
        backend = defaults.storage_backend

    return AppConfig(
        storage_backend=backend,
        data_dir=get("data_dir", Path),
        storage_quota_bytes=max(0, get("storage_quota_bytes", int)),
        default_image_url=get("default_image_url").strip(),
        fetch_timeout=get("fetch_timeout", float),
        autosave_delay_ms=max(0, get("autosave_delay_ms", int)),
        canvas_width=max(1, get("canvas_width", int)),
        canvas_height=max(1, get("canvas_height", int)),
        log_level=get("log_level").upper(),
        port=get("port", int),
        storage_secret=get("storage_secret"),
    )
