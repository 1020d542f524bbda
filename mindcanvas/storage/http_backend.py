"""
HTTP Storage Backend for mindcanvas.

Implements the DocumentBackend protocol against the document REST endpoint:

    GET  {base_url}/documents/{id}   ->  {"id": ..., "content": "<json string>", ...}
    PUT  {base_url}/documents/{id}   <-  {"content": "<json string>"}
"""

import logging
from typing import Optional
from urllib.parse import quote

import requests

from mindcanvas.storage.protocol import StorageError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class HttpBackend:
    """Document storage behind a REST endpoint."""
    
    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize HttpBackend.
        
        Args:
            base_url: API root, e.g. http://localhost:3000/api
            session: Optional pre-configured requests.Session (auth headers etc.)
            timeout: Per-request timeout in seconds
        """
        if not base_url:
            raise ValueError("base_url is required for HttpBackend")
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self.timeout = timeout
    
    @property
    def backend_type(self) -> str:
        return "http"
    
    def _document_url(self, document_id: str) -> str:
        return f"{self.base_url}/documents/{quote(document_id, safe='')}"
    
    def load_document(self, document_id: str) -> str:
        url = self._document_url(document_id)
        try:
            response = self._session.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise StorageError(f"Failed to load document {document_id}: {e}") from e
        except ValueError as e:
            # body was not JSON
            raise StorageError(f"Invalid response loading document {document_id}: {e}") from e
        
        if not isinstance(payload, dict):
            logger.warning(f"Document {document_id} response is not an object")
            return ""
        content = payload.get("content") or ""
        return content if isinstance(content, str) else ""
    
    def save_document(self, document_id: str, content: str) -> None:
        url = self._document_url(document_id)
        try:
            response = self._session.put(url, json={"content": content}, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise StorageError(f"Failed to save document {document_id}: {e}") from e
    
    def close(self) -> None:
        self._session.close()
