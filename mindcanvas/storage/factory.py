"""
Backend Factory for mindcanvas.

Creates the storage backend named by the editor settings.
"""

import logging
from typing import Optional, TYPE_CHECKING

from mindcanvas.config import EditorSettings
from mindcanvas.storage.file_backend import FileBackend
from mindcanvas.storage.http_backend import HttpBackend

if TYPE_CHECKING:
    from mindcanvas.storage.protocol import DocumentBackend

logger = logging.getLogger(__name__)

# Default backend type
DEFAULT_BACKEND = "file"

BACKEND_TYPES = ("file", "http")


def get_backend_type(settings: EditorSettings) -> str:
    """
    Get the storage backend type from settings.
    
    Returns:
        'file' or 'http'
    """
    backend_type = (settings.storage_backend or DEFAULT_BACKEND).lower()
    if backend_type not in BACKEND_TYPES:
        logger.warning(f"Unknown storage backend '{backend_type}', using {DEFAULT_BACKEND}")
        return DEFAULT_BACKEND
    return backend_type


def create_backend(settings: EditorSettings, force_backend: Optional[str] = None,
                   session=None) -> "DocumentBackend":
    """
    Create a storage backend instance.
    
    Args:
        settings: Editor settings (backend type, URL, documents folder)
        force_backend: Override the configured backend type
        session: Optional requests.Session for the HTTP backend
        
    Returns:
        DocumentBackend instance (FileBackend or HttpBackend)
    """
    backend_type = force_backend or get_backend_type(settings)
    
    if backend_type == "http":
        logger.info(f"Using HTTP backend at {settings.api_base_url}")
        return HttpBackend(settings.api_base_url, session=session, timeout=settings.request_timeout)
    
    documents_dir = settings.resolved_documents_dir
    logger.info(f"Using file backend in {documents_dir}")
    return FileBackend(documents_dir)
