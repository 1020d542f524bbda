"""
Editor session - one canvas being edited by one client.

The session owns all per-editor state that would otherwise be ambient:
the graph store, undo history, clipboard buffer, pointer position,
pending connect gesture, the node being text-edited and the current
alignment guides. Two sessions never share any of it.

Every mutating gesture handler records exactly one undo snapshot before
it touches the store, through UndoManager.gesture() or (for drags and
resizes, which span many events) at the start event.
"""

import logging
from typing import Dict, Any, List, Optional, Tuple, Callable, Iterable

from mindcanvas.alignment import GuideResult, compute_guides, apply_snap
from mindcanvas.clipboard import (
    Clipboard,
    ClipboardItem,
    PasteEvent,
    SystemClipboard,
    route_paste,
    decode_image,
    PASTE_ROUTE_NODES,
    PASTE_ROUTE_IMAGE,
)
from mindcanvas.config import EditorSettings
from mindcanvas.connect import ConnectionCreator
from mindcanvas.graph import (
    make_node,
    make_welcome_node,
    node_position,
    MIN_NODE_WIDTH,
    MIN_NODE_HEIGHT,
)
from mindcanvas.graph_store import GraphStore
from mindcanvas.history import UndoManager
from mindcanvas.viewport import Viewport, PointerTracker

logger = logging.getLogger(__name__)

IGNORED_KEY_TARGETS = ("INPUT", "TEXTAREA")


class EditorSession:
    """Gesture handlers for one canvas, plus the state they share."""

    def __init__(self, settings: Optional[EditorSettings] = None,
                 store: Optional[GraphStore] = None,
                 system_clipboard: Optional[SystemClipboard] = None,
                 seed: bool = True):
        self.settings = settings or EditorSettings()
        if store is None:
            store = GraphStore([make_welcome_node()] if seed else [])
        self.store = store
        self.viewport = Viewport()
        self.pointer = PointerTracker(self.viewport)
        self.history = UndoManager(self.store, max_depth=self.settings.undo_limit)
        self.clipboard = Clipboard(self.store, self.pointer, system_clipboard)
        self.connector = ConnectionCreator(self.store, self.viewport)

        self.guides = GuideResult()
        self.editing_node_id: Optional[str] = None
        self.dragging_node_id: Optional[str] = None
        self.resizing_node_id: Optional[str] = None
        self._close_callbacks: List[Callable[[], None]] = []
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    # --- Pointer & viewport ---

    def track_pointer(self, screen_x: float, screen_y: float) -> None:
        self.pointer.move(screen_x, screen_y)

    def set_viewport(self, x: float, y: float, zoom: float,
                     width: Optional[float] = None, height: Optional[float] = None) -> None:
        self.viewport.set_transform(x, y, zoom)
        if width is not None and height is not None:
            self.viewport.set_size(width, height)

    def _paste_anchor(self) -> Tuple[Tuple[float, float], bool]:
        """(world position, centered) for pastes: the pointer, else viewport center."""
        world = self.pointer.world_position()
        if world is not None:
            return world, False
        return self.viewport.center_world(), True

    # --- Drag with alignment guides ---

    def on_node_drag_start(self, node_id: str) -> bool:
        if not self.store.has_node(node_id):
            return False
        self.history.take_snapshot("Move node")
        self.dragging_node_id = node_id
        return True

    def on_node_drag(self, node_id: str, x: float, y: float) -> GuideResult:
        """
        Move the dragged node to its raw (pre-snap) position (x, y), snapping
        to sibling guides. Other selected nodes follow by the same delta.
        """
        node = self.store.get_node(node_id)
        if node is None:
            return GuideResult()
        if self.dragging_node_id != node_id:
            self.on_node_drag_start(node_id)

        followers = []
        if node.get("selected"):
            followers = [n for n in self.store.selected_nodes() if n["id"] != node_id]
        follower_ids = {n["id"] for n in followers}
        siblings = [n for n in self.store.nodes if n["id"] not in follower_ids]

        candidate = dict(node, position={"x": x, "y": y})
        result = compute_guides(candidate, siblings, self.settings.snap_threshold)
        target = apply_snap({"x": x, "y": y}, result)

        old_x, old_y = node_position(node)
        dx, dy = target["x"] - old_x, target["y"] - old_y
        self.store.set_position(node_id, target["x"], target["y"])
        for follower in followers:
            fx, fy = node_position(follower)
            self.store.set_position(follower["id"], fx + dx, fy + dy)

        self.guides = result
        return result

    def on_node_drag_stop(self) -> None:
        self.dragging_node_id = None
        self.guides = GuideResult()

    # --- Resize ---

    def on_resize_start(self, node_id: str) -> bool:
        if not self.store.has_node(node_id):
            return False
        self.history.take_snapshot("Resize node")
        self.resizing_node_id = node_id
        return True

    def on_resize(self, node_id: str, width: float, height: float,
                  x: Optional[float] = None, y: Optional[float] = None) -> bool:
        if not self.store.has_node(node_id):
            return False
        if self.resizing_node_id != node_id:
            self.on_resize_start(node_id)
        self.store.set_size(node_id, max(width, MIN_NODE_WIDTH), max(height, MIN_NODE_HEIGHT))
        if x is not None and y is not None:
            self.store.set_position(node_id, x, y)
        return True

    def on_resize_end(self) -> None:
        self.resizing_node_id = None

    # --- Creation ---

    def on_double_click(self, screen_x: float, screen_y: float,
                        on_node: bool = False) -> Optional[Dict[str, Any]]:
        """Create an empty card with its top-left at the clicked point."""
        if on_node:
            return None
        world = self.viewport.screen_to_world(screen_x, screen_y)
        with self.history.gesture("Create node"):
            return self.store.add_node(make_node(world, origin=(0, 0)))

    # --- Connections ---

    def on_connect_start(self, node_id: Optional[str], handle_id: Optional[str]) -> None:
        self.connector.start(node_id, handle_id)

    def on_connect(self, source: str, target: str,
                   source_handle: Optional[str] = None,
                   target_handle: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """A drag landed on a valid handle: link the two nodes."""
        if not (self.store.has_node(source) and self.store.has_node(target)):
            return None
        if self.store.edge_exists(source, target, source_handle, target_handle):
            return None
        with self.history.gesture("Connect nodes"):
            return self.connector.connect(source, target, source_handle, target_handle)

    def on_connect_end(self, screen_x: float, screen_y: float,
                       is_valid: bool = False) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
        """
        A handle drag ended. If it did not land on a valid target, create a
        new card at the release point linked from the drag origin.
        """
        origin_id = self.connector.origin_node_id
        if is_valid or origin_id is None or not self.store.has_node(origin_id):
            self.connector.reset()
            return None
        with self.history.gesture("Create linked node"):
            return self.connector.create_linked_node(screen_x, screen_y)

    # --- Text editing ---

    def begin_edit(self, node_id: str) -> Optional[str]:
        """Make `node_id` the one node being edited; returns its current text."""
        node = self.store.get_node(node_id)
        if node is None:
            return None
        self.editing_node_id = node_id
        data = node.get("data") or {}
        return data.get("content") or data.get("label") or ""

    def commit_edit(self, text: str) -> bool:
        node_id = self.editing_node_id
        self.editing_node_id = None
        if node_id is None or not self.store.has_node(node_id):
            return False
        node = self.store.get_node(node_id)
        data = node.get("data") or {}
        if data.get("content") == text and not data.get("label"):
            return False
        with self.history.gesture("Edit text"):
            return self.store.update_node(node_id, {"content": text, "label": ""})

    def cancel_edit(self) -> None:
        self.editing_node_id = None

    # --- Selection ---

    def select(self, node_ids: Iterable[str], additive: bool = False,
               edge_ids: Iterable[str] = ()) -> None:
        node_ids = set(node_ids)
        edge_ids = set(edge_ids)
        if additive:
            node_ids |= {n["id"] for n in self.store.selected_nodes()}
            edge_ids |= {e["id"] for e in self.store.selected_edges()}
        self.store.set_selection(node_ids, edge_ids)

    def select_all(self) -> None:
        self.store.set_selection(self.store.node_ids(), self.store.edge_ids())

    def clear_selection(self) -> None:
        self.store.set_selection([])

    # --- Delete ---

    def delete_selection(self) -> bool:
        """Remove selected nodes (with their edges) and selected edges."""
        node_ids = [n["id"] for n in self.store.selected_nodes()]
        edge_ids = [e["id"] for e in self.store.selected_edges()]
        if not node_ids and not edge_ids:
            return False
        with self.history.gesture("Delete"):
            self.store.remove_edges(edge_ids)
            self.store.remove_nodes(node_ids)
        if self.editing_node_id in node_ids:
            self.editing_node_id = None
        return True

    # --- Clipboard ---

    def copy(self) -> None:
        self.clipboard.copy()

    def cut(self) -> bool:
        if not self.store.selected_nodes():
            # still replaces the buffer with the (empty) selection
            self.clipboard.copy()
            return False
        with self.history.gesture("Cut"):
            removed = self.clipboard.cut()
        if self.editing_node_id and not self.store.has_node(self.editing_node_id):
            self.editing_node_id = None
        return not removed.is_empty

    def paste(self, position: Optional[Tuple[float, float]] = None) -> List[Dict[str, Any]]:
        """Paste the buffer at `position`, the pointer, or the viewport center."""
        if self.clipboard.buffer.is_empty:
            return []
        if position is None:
            position, _ = self._paste_anchor()
        with self.history.gesture("Paste"):
            nodes, _ = self.clipboard.paste(position)
        return nodes

    async def paste_image(self, item: ClipboardItem) -> Optional[Dict[str, Any]]:
        """
        Decode an image and add it as a card once decoding completes. The
        store is untouched until then, so edits made meanwhile are unaffected.
        """
        image_url = await decode_image(item)
        if self._closed:
            logger.info("Session closed before image decode finished; dropping image")
            return None
        position, centered = self._paste_anchor()
        with self.history.gesture("Paste image"):
            return self.clipboard.paste_image(image_url, position, centered=centered)

    async def handle_paste(self, event: PasteEvent) -> Optional[str]:
        """
        Route a system paste event. Returns the route taken ("nodes",
        "image") or None when the event was left to the default handler.
        """
        route = route_paste(event, self.clipboard.buffer)
        if route == PASTE_ROUTE_NODES:
            event.prevent_default()
            self.paste()
        elif route == PASTE_ROUTE_IMAGE:
            event.prevent_default()
            await self.paste_image(event.first_image())
        return route

    # --- Undo / redo ---

    def undo(self) -> bool:
        changed = self.history.undo()
        if changed:
            self._after_restore()
        return changed

    def redo(self) -> bool:
        changed = self.history.redo()
        if changed:
            self._after_restore()
        return changed

    def _after_restore(self) -> None:
        self.dragging_node_id = None
        self.resizing_node_id = None
        self.guides = GuideResult()
        if self.editing_node_id and not self.store.has_node(self.editing_node_id):
            self.editing_node_id = None

    # --- Keyboard ---

    def handle_keydown(self, key: str, ctrl: bool = False, meta: bool = False,
                       shift: bool = False, target_tag: str = "") -> bool:
        """
        Apply a keyboard shortcut. Returns True when the key was consumed and
        the host should suppress its default action.
        """
        if target_tag.upper() in IGNORED_KEY_TARGETS:
            return False
        key = (key or "").lower()
        command = ctrl or meta

        if command and key == "c":
            self.copy()
            return True
        if command and key == "x":
            self.cut()
            return True
        if command and key == "z":
            if shift:
                self.redo()
            else:
                self.undo()
            return True
        if command and key == "y":
            self.redo()
            return True
        if command and key == "a":
            self.select_all()
            return True
        if not command and key in ("delete", "backspace"):
            return self.delete_selection()
        return False

    # --- Lifecycle ---

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def close(self) -> None:
        """Tear down per-editor state when the page goes away."""
        if self._closed:
            return
        self._closed = True
        for callback in self._close_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Session close callback failed: {e}")
        self._close_callbacks.clear()
        self.clipboard.clear()
        self.history.on_state_changed = None
        self.history.clear()
        self.store.clear_listeners()
        self.pointer.reset()
        self.connector.reset()
        self.editing_node_id = None
