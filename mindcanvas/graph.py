"""
Node and edge helpers for the canvas graph.

Nodes and edges are plain JSON-serialisable dicts so they can be stored,
snapshotted and persisted without conversion:

    node = {
        "id": "uuid",
        "type": "card",
        "position": {"x": 250, "y": 250},   # top-left, world space
        "size": {"width": 300, "height": 150},
        "data": {"label": "", "content": "", "imageUrl": "..."},
        "selected": False,
        "origin": [0.5, 0.5],               # optional creation anchor
    }

    edge = {
        "id": "uuid",
        "source": "node-id", "target": "node-id",
        "sourceHandle": "right", "targetHandle": "left",
        "type": "default",
        "style": {"strokeWidth": 3, "stroke": "#b1b1b7"},
        "selected": False,
    }
"""

import uuid
from typing import Dict, Any, Optional, Sequence, Tuple

NODE_TYPE_CARD = "card"
EDGE_TYPE_DEFAULT = "default"

DEFAULT_NODE_WIDTH = 300
DEFAULT_NODE_HEIGHT = 150
IMAGE_NODE_WIDTH = 300
IMAGE_NODE_HEIGHT = 250
MIN_NODE_WIDTH = 100
MIN_NODE_HEIGHT = 50

HANDLES = ("top", "bottom", "left", "right")

DEFAULT_EDGE_STYLE = {"strokeWidth": 3, "stroke": "#b1b1b7"}


def new_id() -> str:
    return str(uuid.uuid4())


def make_node(
    position: Tuple[float, float],
    label: str = "",
    content: str = "",
    image_url: Optional[str] = None,
    width: Optional[float] = None,
    height: Optional[float] = None,
    origin: Optional[Sequence[float]] = None,
    node_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create a card node.

    `position` is the point the node is created at. When an `origin`
    anchor fraction is given, the stored position is shifted so the node's
    (ox, oy) fraction lands on that point; (0.5, 0.5) centers the card,
    (0, 0) keeps the point as the top-left corner.
    """
    if width is None:
        width = IMAGE_NODE_WIDTH if image_url else DEFAULT_NODE_WIDTH
    if height is None:
        height = IMAGE_NODE_HEIGHT if image_url else DEFAULT_NODE_HEIGHT

    x, y = position
    node: Dict[str, Any] = {
        "id": node_id or new_id(),
        "type": NODE_TYPE_CARD,
        "position": {"x": x, "y": y},
        "size": {"width": width, "height": height},
        "data": {"label": label, "content": content},
        "selected": False,
    }
    if image_url is not None:
        node["data"]["imageUrl"] = image_url
    if origin is not None:
        ox, oy = origin
        node["origin"] = [ox, oy]
        node["position"] = {"x": x - ox * width, "y": y - oy * height}
    return node


def make_edge(
    source: str,
    target: str,
    source_handle: Optional[str] = None,
    target_handle: Optional[str] = None,
    edge_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "id": edge_id or new_id(),
        "source": source,
        "target": target,
        "sourceHandle": source_handle,
        "targetHandle": target_handle,
        "type": EDGE_TYPE_DEFAULT,
        "style": dict(DEFAULT_EDGE_STYLE),
        "selected": False,
    }


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    return None


def node_size(node: Dict[str, Any]) -> Tuple[float, float]:
    """
    Return (width, height) of a node.

    Looks at `size`, then `measured`, then top-level `width`/`height`, then
    `style`, per dimension. Missing dimensions count as 0.
    """
    sources = [
        node.get("size") or {},
        node.get("measured") or {},
        node,
        node.get("style") or {},
    ]

    def pick(key: str) -> float:
        for src in sources:
            value = _number(src.get(key))
            if value is not None:
                return value
        return 0

    return pick("width"), pick("height")


def node_position(node: Dict[str, Any]) -> Tuple[float, float]:
    pos = node.get("position") or {}
    return pos.get("x", 0), pos.get("y", 0)


def node_bounds(node: Dict[str, Any]) -> Tuple[float, float, float, float]:
    """Return (x, y, width, height) in world space."""
    x, y = node_position(node)
    width, height = node_size(node)
    return x, y, width, height


def make_welcome_node() -> Dict[str, Any]:
    """The placeholder card a fresh canvas starts with."""
    return make_node(
        (250, 250),
        label="Welcome",
        content="Double click background to add a node.",
        node_id="1",
    )
