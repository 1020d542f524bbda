"""
Document load and debounced autosave for an editor session.

Handles the persistence side of a canvas:
- initial load into the GraphStore, behind a load gate
- debounced save after every graph change
- a three-state save status for display (saved / saving / error)
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Callable, Dict, Any, List, Tuple

from mindcanvas.graph_store import GraphStore
from mindcanvas.storage.protocol import DocumentBackend, StorageError

logger = logging.getLogger(__name__)


class SaveStatus(Enum):
    SAVED = "saved"
    SAVING = "saving"
    ERROR = "error"


@dataclass
class AutosaveState:
    """Tracks load/save progress for one document."""
    status: SaveStatus = SaveStatus.SAVED
    initial_load_done: bool = False
    last_error: Optional[str] = None
    save_count: int = 0


def parse_document(content: str) -> Optional[Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]]:
    """
    Parse stored content into (nodes, edges).

    Returns None for an empty content (document never saved). Content that
    is not JSON, or lacks `nodes`/`edges` lists, parses as an empty graph.
    """
    if not content or not content.strip():
        return None
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        logger.warning(f"Stored document is not valid JSON, treating as empty: {e}")
        return [], []
    if not isinstance(payload, dict):
        logger.warning("Stored document is not an object, treating as empty")
        return [], []
    nodes, edges = payload.get("nodes"), payload.get("edges")
    if not isinstance(nodes, list) or not isinstance(edges, list):
        logger.warning("Stored document lacks nodes/edges, treating as empty")
        return [], []
    return nodes, edges


def serialize_document(store: GraphStore) -> str:
    return json.dumps(store.snapshot())


class AutosaveManager:
    """
    Loads a document into a GraphStore and keeps it saved.

    Saves are debounced: each graph change restarts a quiet-period timer
    and only the last change in a burst triggers a save. Nothing is saved
    until the initial load attempt has finished, successfully or not.
    """

    def __init__(self, store: GraphStore, backend: DocumentBackend,
                 document_id: str, debounce_ms: int = 1000):
        self._store = store
        self._backend = backend
        self.document_id = document_id
        self._debounce_ms = debounce_ms

        self._state = AutosaveState()
        self._loading = False
        self._debounce_task: Optional[asyncio.Task] = None
        self._callbacks: Dict[str, List[Callable]] = {
            'status_change': [],
            'loaded': [],
        }

        self._store.subscribe(self._on_graph_change)

    @property
    def status(self) -> SaveStatus:
        return self._state.status

    @property
    def initial_load_done(self) -> bool:
        return self._state.initial_load_done

    @property
    def state(self) -> AutosaveState:
        return self._state

    @property
    def has_pending_save(self) -> bool:
        return self._debounce_task is not None and not self._debounce_task.done()

    def on(self, event: str, callback: Callable) -> None:
        """
        Register a callback.

        Event types:
        - 'status_change': SaveStatus changed (callback gets the new status)
        - 'loaded': initial load finished (callback gets True on success)
        """
        if event in self._callbacks:
            self._callbacks[event].append(callback)

    def off(self, event: str, callback: Callable) -> None:
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _emit(self, event: str, data: Any = None) -> None:
        for callback in self._callbacks.get(event, []):
            try:
                callback(data)
            except Exception as e:
                logger.error(f"Error in callback for {event}: {e}")

    def _set_status(self, status: SaveStatus) -> None:
        if status != self._state.status:
            self._state.status = status
            self._emit('status_change', status)

    # --- Load ---

    async def load(self) -> bool:
        """
        Load the document into the store. Returns True on success.

        On failure the store keeps its initial content. Either way the load
        gate is released so later edits are saved.
        """
        self._loading = True
        success = False
        try:
            content = await asyncio.to_thread(self._backend.load_document, self.document_id)
            parsed = parse_document(content)
            if parsed is not None:
                nodes, edges = parsed
                self._store.replace_all(nodes, edges)
            logger.info(f"Loaded document {self.document_id}")
            success = True
        except StorageError as e:
            logger.error(f"Failed to load document {self.document_id}: {e}")
            self._state.last_error = str(e)
            self._set_status(SaveStatus.ERROR)
        finally:
            self._loading = False
            self._state.initial_load_done = True
        self._emit('loaded', success)
        return success

    # --- Save ---

    def _on_graph_change(self, change: str) -> None:
        if self._loading or not self._state.initial_load_done:
            return
        self.schedule_save()

    def schedule_save(self) -> None:
        """(Re)start the debounce timer; the save runs when it expires."""
        if not self._state.initial_load_done:
            return
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; autosave not scheduled")
            return

        async def flush():
            await asyncio.sleep(self._debounce_ms / 1000)
            await self.save_now()

        self._debounce_task = loop.create_task(flush())

    async def save_now(self) -> bool:
        """Save immediately. Returns True on success."""
        if not self._state.initial_load_done:
            logger.debug("Initial load not finished; save skipped")
            return False
        content = serialize_document(self._store)
        self._set_status(SaveStatus.SAVING)
        try:
            await asyncio.to_thread(self._backend.save_document, self.document_id, content)
        except StorageError as e:
            logger.error(f"Failed to save document {self.document_id}: {e}")
            self._state.last_error = str(e)
            self._set_status(SaveStatus.ERROR)
            return False
        self._state.save_count += 1
        self._state.last_error = None
        self._set_status(SaveStatus.SAVED)
        return True

    def cancel(self) -> None:
        """Drop any pending save and stop listening to the store."""
        if self._debounce_task and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = None
        self._store.unsubscribe(self._on_graph_change)
