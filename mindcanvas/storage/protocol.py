"""
DocumentBackend Protocol Definition.

This module defines the interface a persistence backend must implement.
Both HttpBackend (REST endpoint) and FileBackend (local JSON files)
conform to this protocol.

A document is identified by id and carries one `content` string: the
JSON-serialised `{nodes, edges}` graph.
"""

from typing import Protocol, runtime_checkable


class StorageError(Exception):
    """Raised when a document cannot be loaded or saved."""


@runtime_checkable
class DocumentBackend(Protocol):
    """
    Abstract protocol for document backends.
    
    Failures (unreachable endpoint, non-success response, unreadable
    file) are raised as StorageError so callers handle one exception type.
    """
    
    @property
    def backend_type(self) -> str:
        """Return the backend type identifier ('http' or 'file')."""
        ...
    
    def load_document(self, document_id: str) -> str:
        """
        Fetch a document's `content` string.
        
        Args:
            document_id: Document identifier
            
        Returns:
            The stored content, or "" for a document that has never been saved
            
        Raises:
            StorageError: the backend could not be reached or answered with an error
        """
        ...
    
    def save_document(self, document_id: str, content: str) -> None:
        """
        Store a document's `content` string, replacing what was there.
        
        Args:
            document_id: Document identifier
            content: JSON string of {nodes, edges}
            
        Raises:
            StorageError: the write failed
        """
        ...
