"""
Tests for the connection-creation heuristic.
"""

import pytest

from mindcanvas.connect import ConnectionCreator, opposite_handle
from mindcanvas.graph import make_node
from mindcanvas.graph_store import GraphStore
from mindcanvas.viewport import Viewport


@pytest.fixture
def store():
    return GraphStore([make_node((0, 0), node_id="a"), make_node((600, 0), node_id="b")])


@pytest.fixture
def viewport():
    return Viewport()


@pytest.fixture
def creator(store, viewport):
    return ConnectionCreator(store, viewport)


class TestOppositeHandle:

    @pytest.mark.parametrize("handle,expected", [
        ("top", "bottom"),
        ("bottom", "top"),
        ("left", "right"),
        ("right", "left"),
        ("diagonal", None),
        (None, None),
    ])
    def test_table(self, handle, expected):
        assert opposite_handle(handle) == expected


class TestCreateLinkedNode:
    """Test connect-end over empty canvas."""

    def test_left_origin_targets_right_handle(self, store, creator):
        creator.start("a", "left")

        node, edge = creator.create_linked_node(-400, 300)

        assert edge["source"] == "a"
        assert edge["sourceHandle"] == "left"
        assert edge["target"] == node["id"]
        assert edge["targetHandle"] == "right"
        assert store.has_node(node["id"])
        assert store.get_edge(edge["id"]) is not None

    def test_unknown_handle_gives_null_target_handle(self, creator):
        creator.start("a", "weird")
        _, edge = creator.create_linked_node(100, 100)
        assert edge["targetHandle"] is None

    def test_new_node_is_centered_on_release_point(self, creator, viewport):
        viewport.set_transform(100, 100, 2)
        creator.start("a", "bottom")

        node, _ = creator.create_linked_node(500, 500)

        # world point (200, 200); 300x150 card centered on it
        assert node["position"] == {"x": 50, "y": 125}
        assert node["origin"] == [0.5, 0.5]

    def test_no_origin_is_noop(self, store, creator):
        assert creator.create_linked_node(10, 10) is None
        assert len(store.nodes) == 2

    def test_origin_is_consumed(self, creator):
        creator.start("a", "top")
        creator.create_linked_node(10, 10)
        assert not creator.is_connecting
        assert creator.create_linked_node(10, 10) is None

    def test_deleted_origin_is_noop(self, store, creator):
        creator.start("a", "top")
        store.remove_nodes(["a"])
        assert creator.create_linked_node(10, 10) is None


class TestConnect:
    """Test connecting two existing handles."""

    def test_connect_adds_styled_edge(self, store, creator):
        edge = creator.connect("a", "b", "right", "left")
        assert edge["style"] == {"strokeWidth": 3, "stroke": "#b1b1b7"}
        assert store.edge_exists("a", "b", "right", "left")

    def test_duplicate_connection_is_skipped(self, store, creator):
        creator.connect("a", "b", "right", "left")
        assert creator.connect("a", "b", "right", "left") is None
        assert len(store.edges) == 1

    def test_unknown_node_is_skipped(self, store, creator):
        assert creator.connect("a", "ghost", "right", "left") is None
        assert store.edges == []
