"""
Alignment guides for dragged nodes.

compute_guides() is a pure function: given the node being dragged (at its
pre-snap position) and every node on the canvas, it returns at most one
vertical and one horizontal guide line plus the corrected coordinates
that put the dragged node exactly on them.

Matching is first-match, not best-match. Candidates are scanned in the
order sibling nodes are iterated (left, right, center per sibling) and the
first one closer than `threshold` to any of the dragged node's own
reference points wins that axis.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Iterable, List, Optional, Tuple

from mindcanvas.graph import node_bounds

DEFAULT_SNAP_THRESHOLD = 5


@dataclass(frozen=True)
class GuideLine:
    """A world-space line the dragged node snapped to. Exactly one of x/y is set."""
    x: Optional[float] = None
    y: Optional[float] = None


@dataclass
class GuideResult:
    horizontal: Optional[GuideLine] = None
    vertical: Optional[GuideLine] = None
    snapped_position: Dict[str, Optional[float]] = field(
        default_factory=lambda: {"x": None, "y": None}
    )

    @property
    def has_snap(self) -> bool:
        return self.snapped_position["x"] is not None or self.snapped_position["y"] is not None


def _collect_candidates(dragged_id: Any, nodes: Iterable[Dict[str, Any]]) -> Tuple[List[float], List[float]]:
    vertical: List[float] = []
    horizontal: List[float] = []
    for other in nodes:
        if other.get("id") == dragged_id:
            continue
        x, y, width, height = node_bounds(other)
        vertical.extend((x, x + width, x + width / 2))
        horizontal.extend((y, y + height, y + height / 2))
    return vertical, horizontal


def _snap_axis(candidates: List[float], start: float, extent: float,
               threshold: float) -> Optional[Tuple[float, float]]:
    """
    Return (candidate, snapped_start) for the first candidate within
    threshold of the start, end or center reference point, else None.
    """
    offsets = (0, extent, extent / 2)
    for candidate in candidates:
        for offset in offsets:
            if abs(candidate - (start + offset)) < threshold:
                return candidate, candidate - offset
    return None


def compute_guides(dragged: Dict[str, Any], nodes: Iterable[Dict[str, Any]],
                   threshold: float = DEFAULT_SNAP_THRESHOLD) -> GuideResult:
    """
    Compute snap guides for `dragged` against every other node in `nodes`.

    Axes are independent: the result may snap on neither, one or both.
    Nodes without a size are treated as 0x0.
    """
    x, y, width, height = node_bounds(dragged)
    vertical_candidates, horizontal_candidates = _collect_candidates(dragged.get("id"), nodes)

    result = GuideResult()

    vertical_hit = _snap_axis(vertical_candidates, x, width, threshold)
    if vertical_hit is not None:
        candidate, snapped_x = vertical_hit
        result.vertical = GuideLine(x=candidate)
        result.snapped_position["x"] = snapped_x

    horizontal_hit = _snap_axis(horizontal_candidates, y, height, threshold)
    if horizontal_hit is not None:
        candidate, snapped_y = horizontal_hit
        result.horizontal = GuideLine(y=candidate)
        result.snapped_position["y"] = snapped_y

    return result


def apply_snap(position: Dict[str, float], result: GuideResult) -> Dict[str, float]:
    """Return `position` with any snapped axis replaced."""
    snapped_x = result.snapped_position.get("x")
    snapped_y = result.snapped_position.get("y")
    return {
        "x": position["x"] if snapped_x is None else snapped_x,
        "y": position["y"] if snapped_y is None else snapped_y,
    }
