"""
Clipboard subsystem: copy, cut and paste of node/edge selections.

The buffer is session-local and distinct from the system clipboard. On
copy/cut a marker string is written to the system clipboard so a later
system paste event can tell "paste our nodes" apart from pasting
unrelated text or an image.

Paste keeps the buffer's relative layout, places its bounding-box origin
at the anchor, and gives every node and edge a fresh id derived from the
original id plus a per-paste nonce. The buffer survives paste, so the same
selection can be pasted repeatedly without id collisions.
"""

import asyncio
import base64
import itertools
import logging
import time
from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple, Union, Callable, Protocol, runtime_checkable

from mindcanvas.graph import make_node, node_position
from mindcanvas.graph_store import GraphStore
from mindcanvas.viewport import PointerTracker

logger = logging.getLogger(__name__)

CLIPBOARD_MARKER = "__MINDCANVAS_NODES__"

IGNORED_PASTE_TARGETS = ("INPUT", "TEXTAREA")

PASTE_ROUTE_NODES = "nodes"
PASTE_ROUTE_IMAGE = "image"


@runtime_checkable
class SystemClipboard(Protocol):
    """Write access to the OS/browser clipboard."""

    def write_text(self, text: str) -> None:
        ...


@dataclass
class ClipboardBuffer:
    nodes: List[Dict[str, Any]] = field(default_factory=list)
    edges: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes


@dataclass
class ClipboardItem:
    """One entry of a system paste event (MIME type + payload)."""
    mime_type: str
    data: Union[bytes, str] = b""

    @property
    def is_image(self) -> bool:
        return "image" in self.mime_type


@dataclass
class PasteEvent:
    """A system paste event as delivered by the host surface."""
    text: Optional[str] = None
    items: List[ClipboardItem] = field(default_factory=list)
    target_tag: str = ""
    default_prevented: bool = False

    def prevent_default(self) -> None:
        self.default_prevented = True

    def first_image(self) -> Optional[ClipboardItem]:
        for item in self.items:
            if item.is_image:
                return item
        return None


def route_paste(event: PasteEvent, buffer: ClipboardBuffer) -> Optional[str]:
    """
    Decide who owns a system paste event.

    Our marker text wins over image content; image content is only honoured
    when the marker is absent. A non-empty buffer without the marker still
    pastes nodes as a last resort. Events aimed at text inputs are left alone.
    """
    if event.target_tag.upper() in IGNORED_PASTE_TARGETS:
        return None
    if not buffer.is_empty and event.text == CLIPBOARD_MARKER:
        return PASTE_ROUTE_NODES
    if event.first_image() is not None:
        return PASTE_ROUTE_IMAGE
    if not buffer.is_empty:
        return PASTE_ROUTE_NODES
    return None


def encode_image(item: ClipboardItem) -> str:
    """Turn raw clipboard image bytes into a data URL the card can display."""
    if isinstance(item.data, str):
        if item.data.startswith("data:"):
            return item.data
        # already base64 text
        return f"data:{item.mime_type};base64,{item.data}"
    encoded = base64.b64encode(item.data).decode("ascii")
    return f"data:{item.mime_type};base64,{encoded}"


async def decode_image(item: ClipboardItem) -> str:
    """Encode off the event loop; the graph is not touched while this runs."""
    return await asyncio.to_thread(encode_image, item)


def image_label(captured_at: Optional[datetime] = None) -> str:
    """`Pasted image YYYYMMDDHHMMSS.png` for the capture time (UTC)."""
    captured_at = captured_at or datetime.now(timezone.utc)
    return f"Pasted image {captured_at.strftime('%Y%m%d%H%M%S')}.png"


class PasteIdFactory:
    """
    Derives ids for pasted copies: `{original_id}-{nonce}`.

    The nonce combines a millisecond timestamp with a per-factory
    monotonic counter, so two pastes inside one clock tick still differ.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._counter = itertools.count(1)

    def nonce(self) -> str:
        return f"{int(self._clock() * 1000)}-{next(self._counter)}"

    @staticmethod
    def derive(original_id: str, nonce: str) -> str:
        return f"{original_id}-{nonce}"


class Clipboard:
    """Copy/cut/paste against a GraphStore, with a private buffer."""

    def __init__(self, store: GraphStore,
                 pointer: Optional[PointerTracker] = None,
                 system_clipboard: Optional[SystemClipboard] = None,
                 id_factory: Optional[PasteIdFactory] = None):
        self.store = store
        self.pointer = pointer
        self.system_clipboard = system_clipboard
        self.id_factory = id_factory or PasteIdFactory()
        self.buffer = ClipboardBuffer()

    # --- Copy / cut ---

    def _capture_selection(self) -> ClipboardBuffer:
        selected = self.store.selected_nodes()
        selected_ids = {n["id"] for n in selected}
        # only edges fully inside the selection; half-selected edges would dangle on paste
        inner_edges = [
            e for e in self.store.edges
            if e["source"] in selected_ids and e["target"] in selected_ids
        ]
        return ClipboardBuffer(nodes=deepcopy(selected), edges=deepcopy(inner_edges))

    def _write_marker(self) -> None:
        if self.system_clipboard is None:
            return
        try:
            self.system_clipboard.write_text(CLIPBOARD_MARKER)
        except Exception as e:
            # the internal buffer is already filled; only the marker is lost
            logger.debug(f"Clipboard marker write failed: {e}")

    def copy(self) -> ClipboardBuffer:
        """Replace the buffer with the current selection."""
        self.buffer = self._capture_selection()
        if not self.buffer.is_empty:
            self._write_marker()
        logger.debug(f"Copied {len(self.buffer.nodes)} nodes, {len(self.buffer.edges)} edges")
        return self.buffer

    def cut(self) -> ClipboardBuffer:
        """
        Copy, then remove the selected nodes and the captured edges.

        Edges with only one selected endpoint stay in the store.
        """
        buffer = self.copy()
        if buffer.is_empty:
            return buffer
        self.store.remove_edges(e["id"] for e in buffer.edges)
        self.store.remove_nodes((n["id"] for n in buffer.nodes), cascade=False)
        return buffer

    # --- Paste ---

    def _anchor(self, position: Optional[Tuple[float, float]]) -> Tuple[float, float]:
        if position is not None:
            return position
        world = self.pointer.world_position() if self.pointer else None
        if world is None:
            raise ValueError("No paste position given and no pointer position known")
        return world

    def _fresh_nonce(self) -> str:
        node_ids = self.store.node_ids()
        edge_ids = self.store.edge_ids()
        while True:
            nonce = self.id_factory.nonce()
            derive = self.id_factory.derive
            if any(derive(n["id"], nonce) in node_ids for n in self.buffer.nodes):
                continue
            if any(derive(e["id"], nonce) in edge_ids for e in self.buffer.edges):
                continue
            return nonce

    def paste(self, position: Optional[Tuple[float, float]] = None
              ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """
        Paste the buffer with its bounding-box origin at `position` (world
        space; defaults to the tracked pointer). Returns the new nodes and
        edges, which become the whole selection. No-op on an empty buffer.
        """
        if self.buffer.is_empty:
            return [], []

        paste_x, paste_y = self._anchor(position)
        positions = [node_position(n) for n in self.buffer.nodes]
        min_x = min(x for x, _ in positions)
        min_y = min(y for _, y in positions)
        nonce = self._fresh_nonce()
        derive = self.id_factory.derive

        new_nodes = []
        for original, (x, y) in zip(self.buffer.nodes, positions):
            node = deepcopy(original)
            node["id"] = derive(original["id"], nonce)
            node["position"] = {"x": paste_x + (x - min_x), "y": paste_y + (y - min_y)}
            node["selected"] = True
            new_nodes.append(node)

        new_edges = []
        for original in self.buffer.edges:
            edge = deepcopy(original)
            edge["id"] = derive(original["id"], nonce)
            edge["source"] = derive(original["source"], nonce)
            edge["target"] = derive(original["target"], nonce)
            edge["selected"] = True
            new_edges.append(edge)

        self.store.set_selection([])
        self.store.add_nodes(new_nodes)
        self.store.add_edges(new_edges)
        logger.debug(f"Pasted {len(new_nodes)} nodes at ({paste_x}, {paste_y})")
        return new_nodes, new_edges

    def paste_image(self, image_url: str, position: Optional[Tuple[float, float]] = None,
                    centered: bool = False,
                    captured_at: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Create one image card. Independent of the node buffer.

        With `centered`, the card is centered on `position`; otherwise
        `position` is its top-left corner.
        """
        anchor = self._anchor(position)
        node = make_node(
            anchor,
            label=image_label(captured_at),
            content="",
            image_url=image_url,
            origin=(0.5, 0.5) if centered else (0, 0),
        )
        self.store.add_node(node)
        return node

    def clear(self) -> None:
        self.buffer = ClipboardBuffer()
