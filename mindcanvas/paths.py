"""
Path utilities for mindcanvas.

Handles path resolution for both development mode and frozen (PyInstaller) executables.
- In development: paths are relative to the project root
- When frozen: paths are relative to the executable location

External data (documents/, config.json) lives NEXT TO the executable, not bundled inside.
"""

import sys
from pathlib import Path


def get_app_dir() -> Path:
    """
    Get the application directory.
    
    - In development: the project root (parent of mindcanvas/)
    - When frozen: the directory containing the executable
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent.parent


def get_documents_dir() -> Path:
    """Default directory for the file storage backend."""
    return get_app_dir() / "documents"


def get_config_path() -> Path:
    """Get the path to the config file."""
    return get_app_dir() / "config.json"


def ensure_documents_dir(documents_dir: Path = None) -> Path:
    """
    Ensure the documents directory exists, creating it if necessary.
    Returns the path to the documents directory.
    """
    documents_dir = Path(documents_dir) if documents_dir else get_documents_dir()
    documents_dir.mkdir(parents=True, exist_ok=True)
    return documents_dir
