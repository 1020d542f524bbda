"""
File-based Storage Backend for mindcanvas.

Implements the DocumentBackend protocol with one JSON file per document:

    {documents_dir}/{document_id}.json  ->  {"id": ..., "content": "<json string>"}

This is the default backend for local use.
"""

import json
import logging
import re
from pathlib import Path
from typing import Union

from mindcanvas.storage.protocol import StorageError

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"[^A-Za-z0-9_.-]")


class FileBackend:
    """Local JSON file storage for canvas documents."""
    
    def __init__(self, documents_dir: Union[str, Path]):
        """
        Initialize FileBackend.
        
        Args:
            documents_dir: Folder holding the document files (created if missing)
        """
        self.documents_dir = Path(documents_dir)
        self.documents_dir.mkdir(parents=True, exist_ok=True)
    
    @property
    def backend_type(self) -> str:
        return "file"
    
    def _document_path(self, document_id: str) -> Path:
        safe_id = _SAFE_ID.sub("_", document_id)
        if not safe_id.strip("."):
            raise StorageError(f"Invalid document id: {document_id!r}")
        return self.documents_dir / f"{safe_id}.json"
    
    def load_document(self, document_id: str) -> str:
        """Read a document's content; a missing file is an unsaved document."""
        path = self._document_path(document_id)
        if not path.exists():
            logger.info(f"No stored document {document_id}; starting fresh")
            return ""
        try:
            with open(path, "r", encoding="utf-8") as f:
                payload = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path}: {e}") from e
        if not isinstance(payload, dict):
            raise StorageError(f"Unexpected document format in {path}")
        content = payload.get("content", "")
        return content if isinstance(content, str) else ""
    
    def save_document(self, document_id: str, content: str) -> None:
        """Write the document atomically (temp file + rename)."""
        path = self._document_path(document_id)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump({"id": document_id, "content": content}, f, indent=2, ensure_ascii=False)
            tmp_path.replace(path)
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}") from e
    
    def list_documents(self) -> list:
        """Return stored document ids."""
        return sorted(p.stem for p in self.documents_dir.glob("*.json"))
