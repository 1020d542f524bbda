"""
Document storage for mindcanvas.

Supports multiple storage backends:
- FileBackend: Local JSON files (default)
- HttpBackend: REST document endpoint
"""

from mindcanvas.storage.protocol import DocumentBackend, StorageError
from mindcanvas.storage.file_backend import FileBackend
from mindcanvas.storage.http_backend import HttpBackend
from mindcanvas.storage.factory import create_backend, get_backend_type

__all__ = [
    'DocumentBackend',
    'StorageError',
    'FileBackend',
    'HttpBackend',
    'create_backend',
    'get_backend_type',
]
