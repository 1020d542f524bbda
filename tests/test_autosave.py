"""
Tests for document loading and debounced autosave.

Async behaviour is driven with asyncio.run() inside plain tests.
"""

import asyncio
import json
from unittest.mock import MagicMock

import pytest

from mindcanvas.autosave import AutosaveManager, SaveStatus, parse_document, serialize_document
from mindcanvas.graph import make_node, make_edge, make_welcome_node
from mindcanvas.graph_store import GraphStore
from mindcanvas.storage import StorageError


@pytest.fixture
def store():
    return GraphStore([make_welcome_node()])


@pytest.fixture
def backend():
    backend = MagicMock()
    backend.load_document.return_value = ""
    return backend


@pytest.fixture
def autosave(store, backend):
    return AutosaveManager(store, backend, "doc", debounce_ms=10)


def stored_graph():
    nodes = [make_node((0, 0), node_id="x"), make_node((400, 0), node_id="y")]
    edges = [make_edge("x", "y", "right", "left", edge_id="xy")]
    return json.dumps({"nodes": nodes, "edges": edges})


class TestParseDocument:

    def test_empty_content_means_never_saved(self):
        assert parse_document("") is None
        assert parse_document("   ") is None

    def test_invalid_json_is_empty_graph(self):
        assert parse_document("{not json") == ([], [])

    def test_missing_lists_is_empty_graph(self):
        assert parse_document(json.dumps({"nodes": []})) == ([], [])
        assert parse_document(json.dumps([1, 2])) == ([], [])

    def test_serialize_round_trip(self, store):
        nodes, edges = parse_document(serialize_document(store))
        assert nodes == store.nodes
        assert edges == []


class TestLoad:
    """Test the initial load and its gate."""

    def test_load_replaces_graph(self, store, backend, autosave):
        backend.load_document.return_value = stored_graph()

        assert asyncio.run(autosave.load()) is True

        assert store.node_ids() == {"x", "y"}
        assert store.edge_ids() == {"xy"}
        assert autosave.initial_load_done

    def test_never_saved_keeps_initial_state(self, store, autosave):
        asyncio.run(autosave.load())
        assert store.node_ids() == {"1"}

    def test_malformed_content_loads_empty_graph(self, store, backend, autosave):
        backend.load_document.return_value = "garbage"
        assert asyncio.run(autosave.load()) is True
        assert store.nodes == []
        assert autosave.initial_load_done

    def test_unhashable_ids_are_skipped(self, store, backend, autosave):
        """List or dict ids and endpoints are dropped, never raised."""
        backend.load_document.return_value = json.dumps({
            "nodes": [{"id": ["x"]}, {"id": {"k": 1}}, make_node((0, 0), node_id="ok")],
            "edges": [{"id": "e1", "source": ["x"], "target": "ok"},
                      {"id": "e2", "source": "ok", "target": {"k": 1}}],
        })
        loaded = MagicMock()
        autosave.on('loaded', loaded)

        assert asyncio.run(autosave.load()) is True

        assert store.node_ids() == {"ok"}
        assert store.edges == []
        loaded.assert_called_once_with(True)

    def test_load_failure_keeps_state_and_releases_gate(self, store, backend, autosave):
        backend.load_document.side_effect = StorageError("unreachable")
        loaded = MagicMock()
        autosave.on('loaded', loaded)

        assert asyncio.run(autosave.load()) is False

        assert store.node_ids() == {"1"}
        assert autosave.initial_load_done
        assert autosave.status == SaveStatus.ERROR
        loaded.assert_called_once_with(False)

    def test_loading_does_not_trigger_save(self, backend, autosave):
        backend.load_document.return_value = stored_graph()

        async def scenario():
            await autosave.load()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        backend.save_document.assert_not_called()


class TestSaveGate:
    """No save may happen before the initial load attempt finishes."""

    def test_mutation_before_load_is_not_saved(self, store, backend, autosave):
        async def scenario():
            store.set_position("1", 5, 5)
            assert not autosave.has_pending_save
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        backend.save_document.assert_not_called()

    def test_mutation_during_load_is_not_saved(self, store, backend, autosave):
        def slow_load(document_id):
            # a gesture lands while the request is in flight
            store.set_position("1", 9, 9)
            return ""

        backend.load_document.side_effect = slow_load

        async def scenario():
            await autosave.load()
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        backend.save_document.assert_not_called()

    def test_save_now_before_load_is_skipped(self, backend, autosave):
        assert asyncio.run(autosave.save_now()) is False
        backend.save_document.assert_not_called()


class TestDebouncedSave:
    """Test debounce and status reporting."""

    def test_burst_of_changes_saves_once(self, store, backend, autosave):
        async def scenario():
            await autosave.load()
            for x in range(5):
                store.set_position("1", x, x)
            assert autosave.has_pending_save
            await asyncio.sleep(0.1)

        asyncio.run(scenario())

        backend.save_document.assert_called_once()
        document_id, content = backend.save_document.call_args[0]
        assert document_id == "doc"
        assert json.loads(content)["nodes"][0]["position"] == {"x": 4, "y": 4}

    def test_status_sequence(self, store, autosave):
        statuses = []
        autosave.on('status_change', statuses.append)

        async def scenario():
            await autosave.load()
            store.set_position("1", 1, 1)
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert statuses == [SaveStatus.SAVING, SaveStatus.SAVED]
        assert autosave.state.save_count == 1

    def test_failed_save_sets_error_then_recovers(self, store, backend, autosave):
        backend.save_document.side_effect = [StorageError("down"), None]

        async def scenario():
            await autosave.load()
            store.set_position("1", 1, 1)
            await asyncio.sleep(0.1)
            assert autosave.status == SaveStatus.ERROR
            assert autosave.state.last_error == "down"
            store.set_position("1", 2, 2)
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert autosave.status == SaveStatus.SAVED
        assert store.get_node("1")["position"] == {"x": 2, "y": 2}

    def test_cancel_drops_pending_save(self, store, backend, autosave):
        async def scenario():
            await autosave.load()
            store.set_position("1", 1, 1)
            autosave.cancel()
            store.set_position("1", 2, 2)
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        backend.save_document.assert_not_called()

    def test_no_event_loop_does_not_raise(self, store, autosave):
        asyncio.run(autosave.load())
        store.set_position("1", 3, 3)
        assert not autosave.has_pending_save
