"""
Configuration management for mindcanvas.

Settings come from three layers, later ones winning:
- built-in defaults
- config.json next to the executable/project root
- MINDCANVAS_* environment variables (app.py loads .env first)
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from mindcanvas.paths import get_config_path, get_documents_dir

logger = logging.getLogger(__name__)

ENV_PREFIX = "MINDCANVAS_"

DEFAULT_CONFIG = {
    "storage_backend": "file",
    "api_base_url": "http://localhost:3000/api",
    "document_id": "default",
    "documents_dir": None,
    "snap_threshold": 5.0,
    "undo_limit": None,
    "autosave_debounce_ms": 1000,
    "request_timeout": 10.0,
    "log_level": "INFO",
}


@dataclass
class EditorSettings:
    storage_backend: str = "file"
    api_base_url: str = "http://localhost:3000/api"
    document_id: str = "default"
    documents_dir: Optional[str] = None
    snap_threshold: float = 5.0
    undo_limit: Optional[int] = None
    autosave_debounce_ms: int = 1000
    request_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def resolved_documents_dir(self) -> Path:
        return Path(self.documents_dir) if self.documents_dir else get_documents_dir()


def load_config(config_path: Union[str, Path, None] = None) -> dict:
    """Load configuration from config.json, or {} if missing or unreadable."""
    config_path = Path(config_path) if config_path else get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, config_path: Union[str, Path, None] = None) -> None:
    """Save configuration to config.json."""
    config_path = Path(config_path) if config_path else get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _coerce(key: str, raw: str):
    """Convert an environment string to the type of the default for `key`."""
    if raw.lower() in ("", "none", "null"):
        return None
    if key == "undo_limit":
        return int(raw)
    default = DEFAULT_CONFIG.get(key)
    if isinstance(default, bool):
        return raw.lower() in ("1", "true", "yes")
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return raw


def _env_overrides() -> dict:
    overrides = {}
    for key in DEFAULT_CONFIG:
        raw = os.environ.get(ENV_PREFIX + key.upper())
        if raw is None:
            continue
        try:
            overrides[key] = _coerce(key, raw)
        except ValueError:
            logger.warning(f"Ignoring invalid value for {ENV_PREFIX}{key.upper()}: {raw!r}")
    return overrides


def get_editor_settings(config_path: Union[str, Path, None] = None) -> EditorSettings:
    """Merge defaults, config.json and environment into EditorSettings."""
    merged = dict(DEFAULT_CONFIG)
    stored = load_config(config_path)
    merged.update({k: v for k, v in stored.items() if k in DEFAULT_CONFIG})
    merged.update(_env_overrides())

    undo_limit = merged.get("undo_limit")
    if undo_limit is not None and undo_limit < 1:
        logger.warning(f"undo_limit must be positive, got {undo_limit}; using unbounded history")
        merged["undo_limit"] = None

    return EditorSettings(**merged)
