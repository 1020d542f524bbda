"""
Graph Store - canonical node/edge collections for one canvas.

Every other component reads and mutates the graph through this class.
Mutations are synchronous and immediately visible; listeners registered
with subscribe() are called after each one (used by rendering and
autosave).

Invariant: no edge references a node id that is not in the store.
Removing nodes removes their incident edges, and edges with unknown
endpoints are rejected.
"""

import logging
from copy import deepcopy
from typing import Dict, Any, List, Optional, Callable, Iterable, Tuple

logger = logging.getLogger(__name__)

Node = Dict[str, Any]
Edge = Dict[str, Any]
ChangeListener = Callable[[str], None]


class GraphStore:
    """Ordered node and edge collections with mutation primitives."""

    def __init__(self, nodes: Optional[List[Node]] = None, edges: Optional[List[Edge]] = None):
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._listeners: List[ChangeListener] = []
        if nodes or edges:
            self._load(nodes or [], edges or [])

    # --- Read access ---

    @property
    def nodes(self) -> List[Node]:
        """Nodes in insertion order. The list is a copy; the dicts are live."""
        return list(self._nodes)

    @property
    def edges(self) -> List[Edge]:
        return list(self._edges)

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self._nodes:
            if node["id"] == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[Edge]:
        for edge in self._edges:
            if edge["id"] == edge_id:
                return edge
        return None

    def has_node(self, node_id: str) -> bool:
        return self.get_node(node_id) is not None

    def node_ids(self) -> set:
        return {n["id"] for n in self._nodes}

    def edge_ids(self) -> set:
        return {e["id"] for e in self._edges}

    def selected_nodes(self) -> List[Node]:
        return [n for n in self._nodes if n.get("selected")]

    def selected_edges(self) -> List[Edge]:
        return [e for e in self._edges if e.get("selected")]

    def connected_edges(self, node_ids: Iterable[str]) -> List[Edge]:
        """Edges with at least one endpoint in `node_ids`."""
        ids = set(node_ids)
        return [e for e in self._edges if e["source"] in ids or e["target"] in ids]

    def edge_exists(self, source: str, target: str,
                    source_handle: Optional[str] = None,
                    target_handle: Optional[str] = None) -> bool:
        return any(
            e["source"] == source and e["target"] == target
            and e.get("sourceHandle") == source_handle
            and e.get("targetHandle") == target_handle
            for e in self._edges
        )

    def snapshot(self) -> Dict[str, List[Dict[str, Any]]]:
        """Deep copy of the current graph, safe to keep after later mutations."""
        return {"nodes": deepcopy(self._nodes), "edges": deepcopy(self._edges)}

    # --- Listeners ---

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def _notify(self, change: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception as e:
                logger.error(f"Graph change listener failed on '{change}': {e}")

    # --- Mutations ---

    def add_node(self, node: Node) -> Node:
        if self.has_node(node["id"]):
            raise ValueError(f"Node id already exists: {node['id']}")
        self._nodes.append(node)
        self._notify("add_node")
        return node

    def add_nodes(self, nodes: Iterable[Node]) -> None:
        existing = self.node_ids()
        batch = list(nodes)
        for node in batch:
            if node["id"] in existing:
                raise ValueError(f"Node id already exists: {node['id']}")
            existing.add(node["id"])
        self._nodes.extend(batch)
        self._notify("add_nodes")

    def add_edge(self, edge: Edge) -> Edge:
        self._check_endpoints(edge, self.node_ids())
        if self.get_edge(edge["id"]) is not None:
            raise ValueError(f"Edge id already exists: {edge['id']}")
        self._edges.append(edge)
        self._notify("add_edge")
        return edge

    def add_edges(self, edges: Iterable[Edge]) -> None:
        node_ids = self.node_ids()
        existing = self.edge_ids()
        batch = list(edges)
        for edge in batch:
            self._check_endpoints(edge, node_ids)
            if edge["id"] in existing:
                raise ValueError(f"Edge id already exists: {edge['id']}")
            existing.add(edge["id"])
        self._edges.extend(batch)
        self._notify("add_edges")

    def update_node(self, node_id: str, partial_data: Dict[str, Any]) -> bool:
        """
        Merge `partial_data` into the node's `data`.

        Only the given keys change, so a content-only edit keeps the label
        and image. Returns False if the node does not exist.
        """
        node = self.get_node(node_id)
        if node is None:
            return False
        node.setdefault("data", {}).update(partial_data)
        self._notify("update_node")
        return True

    def set_position(self, node_id: str, x: float, y: float) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node["position"] = {"x": x, "y": y}
        self._notify("move_node")
        return True

    def set_size(self, node_id: str, width: float, height: float) -> bool:
        node = self.get_node(node_id)
        if node is None:
            return False
        node["size"] = {"width": width, "height": height}
        self._notify("resize_node")
        return True

    def remove_nodes(self, node_ids: Iterable[str],
                     cascade: bool = True) -> Tuple[List[Node], List[Edge]]:
        """
        Remove nodes and, with `cascade`, every edge touching them.
        Returns what was removed.

        Without `cascade` the caller is responsible for the incident edges;
        cut leaves half-selected edges in place this way.
        """
        ids = set(node_ids)
        removed_nodes = [n for n in self._nodes if n["id"] in ids]
        if not removed_nodes:
            return [], []
        removed_edges = self.connected_edges(ids) if cascade else []
        removed_edge_ids = {e["id"] for e in removed_edges}
        self._nodes = [n for n in self._nodes if n["id"] not in ids]
        self._edges = [e for e in self._edges if e["id"] not in removed_edge_ids]
        self._notify("remove_nodes")
        return removed_nodes, removed_edges

    def remove_edges(self, edge_ids: Iterable[str]) -> List[Edge]:
        ids = set(edge_ids)
        removed = [e for e in self._edges if e["id"] in ids]
        if not removed:
            return []
        self._edges = [e for e in self._edges if e["id"] not in ids]
        self._notify("remove_edges")
        return removed

    def set_selection(self, node_ids: Iterable[str], edge_ids: Iterable[str] = ()) -> None:
        """Select exactly the given nodes and edges; everything else is deselected."""
        selected_nodes = set(node_ids)
        selected_edges = set(edge_ids)
        for node in self._nodes:
            node["selected"] = node["id"] in selected_nodes
        for edge in self._edges:
            edge["selected"] = edge["id"] in selected_edges
        self._notify("selection")

    def replace_all(self, nodes: List[Node], edges: List[Edge],
                    drop_dangling: bool = True) -> None:
        """
        Replace the whole graph (document load, undo/redo restore).

        Undo/redo passes `drop_dangling=False` so a restored state keeps
        edges a cut left behind.
        """
        self._load(nodes, edges, drop_dangling)
        self._notify("replace_all")

    # --- Internals ---

    def _load(self, nodes: List[Node], edges: List[Edge], drop_dangling: bool = True) -> None:
        new_nodes: List[Node] = []
        seen = set()
        for node in deepcopy(nodes):
            node_id = node.get("id") if isinstance(node, dict) else None
            if not isinstance(node_id, str) or node_id in seen:
                logger.warning(f"Skipping node with missing, invalid or duplicate id: {node_id!r}")
                continue
            seen.add(node_id)
            new_nodes.append(node)

        new_edges: List[Edge] = []
        for edge in deepcopy(edges):
            if not isinstance(edge, dict):
                logger.warning(f"Skipping malformed edge entry: {edge!r}")
                continue
            edge_id, source, target = edge.get("id"), edge.get("source"), edge.get("target")
            if not all(isinstance(v, str) for v in (edge_id, source, target)):
                logger.warning(f"Skipping edge with invalid id or endpoints: "
                               f"{edge_id!r}: {source!r} -> {target!r}")
                continue
            if drop_dangling and (source not in seen or target not in seen):
                logger.warning(f"Dropping dangling edge {edge.get('id')}: "
                               f"{edge.get('source')} -> {edge.get('target')}")
                continue
            new_edges.append(edge)

        self._nodes = new_nodes
        self._edges = new_edges

    @staticmethod
    def _check_endpoints(edge: Edge, node_ids: set) -> None:
        for key in ("source", "target"):
            if edge.get(key) not in node_ids:
                raise ValueError(f"Edge {edge.get('id')} references unknown node: {edge.get(key)}")
