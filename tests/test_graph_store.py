"""
Tests for GraphStore mutations and the no-dangling-edge invariant.
"""

import pytest

from mindcanvas.graph import make_node, make_edge
from mindcanvas.graph_store import GraphStore


@pytest.fixture
def store():
    """Three nodes in a chain: a -> b -> c."""
    a = make_node((0, 0), node_id="a")
    b = make_node((400, 0), node_id="b")
    c = make_node((800, 0), node_id="c")
    return GraphStore(
        [a, b, c],
        [make_edge("a", "b", "right", "left", edge_id="ab"),
         make_edge("b", "c", "right", "left", edge_id="bc")],
    )


class TestGraphStoreMutations:
    """Test add/update/remove primitives."""

    def test_add_node_rejects_duplicate_id(self, store):
        with pytest.raises(ValueError):
            store.add_node(make_node((0, 0), node_id="a"))

    def test_add_edge_rejects_unknown_endpoint(self, store):
        with pytest.raises(ValueError):
            store.add_edge(make_edge("a", "missing"))

    def test_add_nodes_is_all_or_nothing(self, store):
        """A duplicate anywhere in the batch leaves the store untouched."""
        batch = [make_node((0, 0), node_id="d"), make_node((0, 0), node_id="a")]
        with pytest.raises(ValueError):
            store.add_nodes(batch)
        assert not store.has_node("d")

    def test_update_node_merges_data(self, store):
        """Only the given keys change; the rest of `data` is kept."""
        store.update_node("a", {"label": "Title"})
        store.update_node("a", {"content": "Body"})

        data = store.get_node("a")["data"]
        assert data["label"] == "Title"
        assert data["content"] == "Body"

    def test_update_missing_node_returns_false(self, store):
        assert store.update_node("nope", {"label": "x"}) is False

    def test_remove_nodes_cascades_to_edges(self, store):
        """Removing b removes both edges touching it."""
        nodes, edges = store.remove_nodes(["b"])

        assert [n["id"] for n in nodes] == ["b"]
        assert {e["id"] for e in edges} == {"ab", "bc"}
        assert store.edges == []
        assert store.node_ids() == {"a", "c"}

    def test_remove_nodes_without_cascade_keeps_edges(self, store):
        nodes, edges = store.remove_nodes(["b"], cascade=False)

        assert [n["id"] for n in nodes] == ["b"]
        assert edges == []
        assert store.edge_ids() == {"ab", "bc"}

    def test_remove_unknown_nodes_is_noop(self, store):
        assert store.remove_nodes(["zzz"]) == ([], [])
        assert len(store.edges) == 2

    def test_set_selection_is_exclusive(self, store):
        store.set_selection(["a"], ["ab"])
        store.set_selection(["c"])

        assert [n["id"] for n in store.selected_nodes()] == ["c"]
        assert store.selected_edges() == []

    def test_edge_exists_compares_handles(self, store):
        assert store.edge_exists("a", "b", "right", "left")
        assert not store.edge_exists("a", "b", "bottom", "top")


class TestGraphStoreSnapshots:
    """Test snapshot and wholesale replacement."""

    def test_snapshot_is_deep_copy(self, store):
        snap = store.snapshot()
        store.set_position("a", 999, 999)
        assert snap["nodes"][0]["position"] == {"x": 0, "y": 0}

    def test_replace_all_drops_dangling_edges(self, store):
        """Edges whose endpoints are missing are dropped on load."""
        nodes = [make_node((0, 0), node_id="x")]
        edges = [make_edge("x", "ghost", edge_id="bad")]

        store.replace_all(nodes, edges)

        assert store.node_ids() == {"x"}
        assert store.edges == []

    def test_replace_all_can_keep_dangling_edges(self, store):
        nodes = [make_node((0, 0), node_id="x")]
        edges = [make_edge("x", "ghost", edge_id="half")]

        store.replace_all(nodes, edges, drop_dangling=False)

        assert store.edge_ids() == {"half"}

    def test_replace_all_skips_non_string_ids(self, store):
        nodes = [{"id": ["x"]}, {"id": 7}, make_node((0, 0), node_id="y")]
        edges = [{"id": "e", "source": "y", "target": ["x"]}]

        store.replace_all(nodes, edges, drop_dangling=False)

        assert store.node_ids() == {"y"}
        assert store.edges == []

    def test_replace_all_skips_duplicate_nodes(self, store):
        nodes = [make_node((0, 0), node_id="x"), make_node((5, 5), node_id="x")]
        store.replace_all(nodes, [])
        assert len(store.nodes) == 1
        assert store.get_node("x")["position"] == {"x": 0, "y": 0}

    def test_replace_all_copies_input(self, store):
        """The store never aliases the caller's dicts."""
        nodes = [make_node((0, 0), node_id="x")]
        store.replace_all(nodes, [])
        nodes[0]["position"]["x"] = 50
        assert store.get_node("x")["position"]["x"] == 0


class TestGraphStoreListeners:
    """Test change notification."""

    def test_listener_receives_change_names(self, store):
        changes = []
        store.subscribe(changes.append)

        store.set_position("a", 1, 2)
        store.remove_edges(["ab"])

        assert changes == ["move_node", "remove_edges"]

    def test_failing_listener_does_not_break_mutation(self, store):
        def boom(change):
            raise RuntimeError("listener failure")

        store.subscribe(boom)
        assert store.set_position("a", 5, 5) is True
        assert store.get_node("a")["position"] == {"x": 5, "y": 5}

    def test_unsubscribe(self, store):
        changes = []
        store.subscribe(changes.append)
        store.unsubscribe(changes.append)
        store.set_position("a", 1, 1)
        assert changes == []
