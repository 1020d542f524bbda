"""Undo/redo history for the canvas."""

from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, field
from typing import Optional, List, Callable, Dict, Any, Iterator

from mindcanvas.graph_store import GraphStore


@dataclass
class Snapshot:
    """Point-in-time copy of the graph, taken before a mutating gesture."""
    nodes: List[Dict[str, Any]] = field(default_factory=list)
    edges: List[Dict[str, Any]] = field(default_factory=list)
    description: str = ""


class UndoManager:
    """
    Linear snapshot history over a GraphStore.

    Gesture handlers call take_snapshot() (or enter gesture()) right before
    they mutate the store. Taking a snapshot clears the redo stack.
    `max_depth` caps both stacks; None keeps them unbounded.
    """

    def __init__(self, store: GraphStore, max_depth: Optional[int] = None):
        if max_depth is not None and max_depth < 1:
            raise ValueError("max_depth must be a positive integer or None")
        self.store = store
        self.max_depth = max_depth
        self._undo_stack: List[Snapshot] = []
        self._redo_stack: List[Snapshot] = []
        self._gesture_depth = 0

        # Callbacks
        self.on_state_changed: Optional[Callable[[], None]] = None

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def undo_description(self) -> str:
        """Description of the gesture the next undo reverts."""
        if self._undo_stack:
            return self._undo_stack[-1].description
        return ""

    @property
    def redo_description(self) -> str:
        if self._redo_stack:
            return self._redo_stack[-1].description
        return ""

    def _capture(self, description: str) -> Snapshot:
        state = self.store.snapshot()
        return Snapshot(nodes=state["nodes"], edges=state["edges"], description=description)

    def _trim(self, stack: List[Snapshot]) -> None:
        if self.max_depth is None:
            return
        while len(stack) > self.max_depth:
            stack.pop(0)

    def take_snapshot(self, description: str = "") -> None:
        """Record the current graph on the undo stack and drop the redo branch."""
        self._undo_stack.append(self._capture(description))
        self._redo_stack.clear()
        self._trim(self._undo_stack)
        self._notify_changed()

    @contextmanager
    def gesture(self, description: str = "") -> Iterator[None]:
        """
        Wrap one mutating gesture.

        Exactly one snapshot is taken, at the outermost entry; nested
        gestures (a cut inside a keyboard handler, say) add none.
        """
        if self._gesture_depth == 0:
            self.take_snapshot(description)
        self._gesture_depth += 1
        try:
            yield
        finally:
            self._gesture_depth -= 1

    def _restore(self, snapshot: Snapshot) -> None:
        self.store.replace_all(deepcopy(snapshot.nodes), deepcopy(snapshot.edges),
                               drop_dangling=False)

    def undo(self) -> bool:
        """Restore the last snapshot. Returns False when there is nothing to undo."""
        if not self._undo_stack:
            return False
        target = self._undo_stack.pop()
        self._redo_stack.append(self._capture(target.description))
        self._trim(self._redo_stack)
        self._restore(target)
        self._notify_changed()
        return True

    def redo(self) -> bool:
        if not self._redo_stack:
            return False
        target = self._redo_stack.pop()
        self._undo_stack.append(self._capture(target.description))
        self._trim(self._undo_stack)
        self._restore(target)
        self._notify_changed()
        return True

    def clear(self):
        """Clear all history."""
        self._undo_stack.clear()
        self._redo_stack.clear()
        self._notify_changed()

    def _notify_changed(self):
        if self.on_state_changed:
            self.on_state_changed()
