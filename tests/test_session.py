"""
Tests for EditorSession gesture handlers.

The session is the integration point of store, history, clipboard and
connection state; these tests drive it the way the canvas handlers do.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from mindcanvas.clipboard import CLIPBOARD_MARKER, ClipboardItem, PasteEvent
from mindcanvas.config import EditorSettings
from mindcanvas.graph import make_node, make_edge
from mindcanvas.graph_store import GraphStore
from mindcanvas.session import EditorSession


@pytest.fixture
def session():
    """Two 100x100 cards side by side; the welcome card is not seeded."""
    store = GraphStore([
        make_node((0, 0), width=100, height=100, node_id="a"),
        make_node((300, 300), width=100, height=100, node_id="b"),
    ])
    return EditorSession(store=store, system_clipboard=MagicMock())


class TestSessionSetup:

    def test_fresh_session_is_seeded(self):
        session = EditorSession()
        nodes = session.store.nodes
        assert len(nodes) == 1
        assert nodes[0]["data"]["label"] == "Welcome"
        assert nodes[0]["position"] == {"x": 250, "y": 250}

    def test_sessions_do_not_share_state(self):
        first, second = EditorSession(), EditorSession()
        first.select_all()
        first.copy()
        assert second.clipboard.buffer.is_empty

    def test_undo_limit_from_settings(self):
        session = EditorSession(settings=EditorSettings(undo_limit=2))
        assert session.history.max_depth == 2


class TestDrag:
    """Test dragging with snapping and group moves."""

    def test_drag_snaps_to_sibling(self, session):
        session.on_node_drag_start("b")
        result = session.on_node_drag("b", 98, 502)

        assert result.vertical.x == 100
        assert session.store.get_node("b")["position"] == {"x": 100, "y": 502}
        assert session.guides is result

    def test_drag_stop_clears_guides(self, session):
        session.on_node_drag_start("b")
        session.on_node_drag("b", 98, 502)
        session.on_node_drag_stop()
        assert not session.guides.has_snap

    def test_drag_is_one_undo_step(self, session):
        session.on_node_drag_start("b")
        for x in (310, 320, 330):
            session.on_node_drag("b", x, 600)
        session.on_node_drag_stop()

        assert session.undo() is True
        assert session.store.get_node("b")["position"] == {"x": 300, "y": 300}
        assert not session.history.can_undo

    def test_selected_nodes_move_together(self, session):
        session.select(["a", "b"])
        session.on_node_drag_start("a")
        session.on_node_drag("a", 1000, 1000)

        assert session.store.get_node("a")["position"] == {"x": 1000, "y": 1000}
        assert session.store.get_node("b")["position"] == {"x": 1300, "y": 1300}


class TestCreation:
    """Test double-click and connect gestures."""

    def test_double_click_creates_card_at_world_point(self, session):
        session.set_viewport(50, 50, 2)
        node = session.on_double_click(250, 450)

        assert node["position"] == {"x": 100, "y": 200}
        assert node["size"] == {"width": 300, "height": 150}
        assert node["data"] == {"label": "", "content": ""}
        assert node["origin"] == [0, 0]
        assert session.history.undo_description == "Create node"

    def test_double_click_on_node_is_ignored(self, session):
        assert session.on_double_click(10, 10, on_node=True) is None
        assert len(session.store.nodes) == 2

    def test_connect_end_creates_linked_node(self, session):
        session.on_connect_start("a", "left")
        created = session.on_connect_end(500, 500, is_valid=False)

        node, edge = created
        assert edge["targetHandle"] == "right"
        assert session.store.has_node(node["id"])
        assert session.undo() is True
        assert not session.store.has_node(node["id"])

    def test_connect_end_after_valid_drop_does_nothing(self, session):
        session.on_connect_start("a", "right")
        session.on_connect("a", "b", "right", "left")
        assert session.on_connect_end(500, 500, is_valid=True) is None
        assert len(session.store.nodes) == 2
        assert len(session.store.edges) == 1

    def test_connect_end_without_start_is_noop(self, session):
        assert session.on_connect_end(1, 1) is None
        assert not session.history.can_undo

    def test_duplicate_connect_takes_no_snapshot(self, session):
        session.on_connect("a", "b", "right", "left")
        session.on_connect("a", "b", "right", "left")
        assert len(session.history._undo_stack) == 1


class TestEditAndResize:

    def test_commit_edit_merges_content_and_clears_label(self, session):
        session.store.update_node("a", {"label": "Old title"})

        assert session.begin_edit("a") == "Old title"
        assert session.commit_edit("New body") is True

        data = session.store.get_node("a")["data"]
        assert data["content"] == "New body"
        assert data["label"] == ""
        assert session.editing_node_id is None

    def test_unchanged_commit_takes_no_snapshot(self, session):
        session.begin_edit("a")
        assert session.commit_edit("") is False
        assert not session.history.can_undo

    def test_switching_edit_target(self, session):
        session.begin_edit("a")
        session.begin_edit("b")
        assert session.editing_node_id == "b"

    def test_resize_clamps_to_minimum(self, session):
        session.on_resize_start("a")
        session.on_resize("a", 20, 10)
        session.on_resize_end()
        assert session.store.get_node("a")["size"] == {"width": 100, "height": 50}


class TestKeyboard:
    """Test keyboard shortcuts."""

    def test_copy_paste_shortcuts(self, session):
        session.select(["a"])
        assert session.handle_keydown("c", ctrl=True) is True
        session.track_pointer(700, 700)
        session.paste()
        assert len(session.store.nodes) == 3

    def test_cut_and_undo(self, session):
        session.select(["a"])
        session.handle_keydown("x", meta=True)
        assert not session.store.has_node("a")

        session.handle_keydown("z", ctrl=True)
        assert session.store.has_node("a")

        session.handle_keydown("z", ctrl=True, shift=True)
        assert not session.store.has_node("a")

    def test_delete_removes_incident_edges(self, session):
        session.store.add_edge(make_edge("a", "b", edge_id="ab"))
        session.select(["a"])

        assert session.handle_keydown("Delete") is True

        assert session.store.node_ids() == {"b"}
        assert session.store.edges == []

    def test_delete_with_nothing_selected(self, session):
        assert session.handle_keydown("Backspace") is False

    def test_select_all(self, session):
        session.handle_keydown("a", ctrl=True)
        assert len(session.store.selected_nodes()) == 2

    def test_keys_in_text_inputs_are_ignored(self, session):
        session.select(["a"])
        assert session.handle_keydown("Delete", target_tag="TEXTAREA") is False
        assert session.store.has_node("a")

    def test_undo_with_empty_history(self, session):
        assert session.handle_keydown("z", ctrl=True) is True
        assert len(session.store.nodes) == 2


class TestPasteRouting:
    """Test system paste events end to end."""

    def test_marker_paste_at_pointer(self, session):
        session.select(["a"])
        session.copy()
        session.track_pointer(500, 600)
        event = PasteEvent(text=CLIPBOARD_MARKER)

        route = asyncio.run(session.handle_paste(event))

        assert route == "nodes"
        assert event.default_prevented
        pasted = session.store.selected_nodes()
        assert len(pasted) == 1
        assert pasted[0]["position"] == {"x": 500, "y": 600}

    def test_paste_without_pointer_uses_viewport_center(self, session):
        session.set_viewport(0, 0, 1, width=1000, height=800)
        session.select(["a"])
        session.copy()

        nodes = session.paste()

        assert nodes[0]["position"] == {"x": 500, "y": 400}

    def test_image_paste_at_pointer(self, session):
        session.track_pointer(40, 60)
        event = PasteEvent(text="", items=[ClipboardItem("image/png", b"img")])

        route = asyncio.run(session.handle_paste(event))

        assert route == "image"
        assert event.default_prevented
        image_nodes = [n for n in session.store.nodes if n["data"].get("imageUrl")]
        assert len(image_nodes) == 1
        assert image_nodes[0]["position"] == {"x": 40, "y": 60}
        assert image_nodes[0]["data"]["imageUrl"] == "data:image/png;base64,aW1n"
        assert session.history.undo_description == "Paste image"

    def test_image_paste_without_pointer_is_centered(self, session):
        session.set_viewport(0, 0, 1, width=1000, height=800)
        event = PasteEvent(items=[ClipboardItem("image/png", b"img")])

        asyncio.run(session.handle_paste(event))

        image_node = [n for n in session.store.nodes if n["data"].get("imageUrl")][0]
        assert image_node["position"] == {"x": 350, "y": 275}

    def test_unowned_paste_is_left_alone(self, session):
        event = PasteEvent(text="hello")
        assert asyncio.run(session.handle_paste(event)) is None
        assert not event.default_prevented

    def test_paste_into_textarea_is_ignored(self, session):
        session.select(["a"])
        session.copy()
        event = PasteEvent(text=CLIPBOARD_MARKER, target_tag="TEXTAREA")
        assert asyncio.run(session.handle_paste(event)) is None
        assert len(session.store.nodes) == 2


class TestLifecycle:

    def test_close_clears_state_and_runs_callbacks(self, session):
        closed = MagicMock()
        session.on_close(closed)
        session.select(["a"])
        session.copy()
        session.delete_selection()

        session.close()

        closed.assert_called_once()
        assert session.is_closed
        assert session.clipboard.buffer.is_empty
        assert not session.history.can_undo

    def test_close_is_idempotent(self, session):
        closed = MagicMock()
        session.on_close(closed)
        session.close()
        session.close()
        closed.assert_called_once()
