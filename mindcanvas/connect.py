"""
Connect gestures: linking two handles, and creating a linked node when a
handle drag is released over empty canvas.

The target handle of a created node is the opposite side of the handle the
drag started from (top <-> bottom, left <-> right). Node positions are
never consulted; the table is the whole heuristic.
"""

import logging
from typing import Dict, Any, Optional, Tuple

from mindcanvas.graph import make_node, make_edge
from mindcanvas.graph_store import GraphStore
from mindcanvas.viewport import Viewport

logger = logging.getLogger(__name__)

OPPOSITE_HANDLES = {
    "top": "bottom",
    "bottom": "top",
    "left": "right",
    "right": "left",
}


def opposite_handle(handle: Optional[str]) -> Optional[str]:
    """Opposite side of `handle`, or None for anything outside the table."""
    return OPPOSITE_HANDLES.get(handle) if isinstance(handle, str) else None


class ConnectionCreator:
    """Remembers where a handle drag started and finishes it on release."""

    def __init__(self, store: GraphStore, viewport: Viewport):
        self.store = store
        self.viewport = viewport
        self.origin_node_id: Optional[str] = None
        self.origin_handle: Optional[str] = None

    @property
    def is_connecting(self) -> bool:
        return self.origin_node_id is not None

    def start(self, node_id: Optional[str], handle_id: Optional[str]) -> None:
        self.origin_node_id = node_id
        self.origin_handle = handle_id

    def reset(self) -> None:
        self.origin_node_id = None
        self.origin_handle = None

    def connect(self, source: str, target: str,
                source_handle: Optional[str] = None,
                target_handle: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Add an edge between two existing handles. Duplicates are skipped."""
        if source == target and source_handle == target_handle:
            return None
        if not (self.store.has_node(source) and self.store.has_node(target)):
            logger.warning(f"Ignoring connection to unknown node: {source} -> {target}")
            return None
        if self.store.edge_exists(source, target, source_handle, target_handle):
            return None
        return self.store.add_edge(make_edge(source, target, source_handle, target_handle))

    def create_linked_node(self, screen_x: float, screen_y: float
                           ) -> Optional[Tuple[Dict[str, Any], Dict[str, Any]]]:
        """
        Finish an unconnected drag at the given screen point.

        Creates a card centered on the release point and an edge from the
        drag origin to it. Returns (node, edge), or None when no origin was
        recorded or the origin node has gone away.
        """
        origin_id, origin_handle = self.origin_node_id, self.origin_handle
        self.reset()
        if origin_id is None:
            return None
        if not self.store.has_node(origin_id):
            logger.warning(f"Connect origin {origin_id} no longer exists")
            return None

        world = self.viewport.screen_to_world(screen_x, screen_y)
        node = make_node(world, origin=(0.5, 0.5))
        edge = make_edge(origin_id, node["id"], origin_handle, opposite_handle(origin_handle))
        self.store.add_node(node)
        self.store.add_edge(edge)
        return node, edge
