"""
Guide line projection.

Turns the alignment engine's world-space guides into screen-space line
segments spanning the visible canvas. Pure; the overlay draws the result.
"""

from typing import Dict, List, Optional

from mindcanvas.alignment import GuideLine, GuideResult
from mindcanvas.viewport import Viewport


def project_guides(vertical: Optional[GuideLine], horizontal: Optional[GuideLine],
                   viewport: Viewport) -> List[Dict[str, float]]:
    """Return [{x1, y1, x2, y2}] segments in screen pixels."""
    tx, ty, zoom = viewport.transform
    lines = []
    if vertical is not None and vertical.x is not None:
        x = vertical.x * zoom + tx
        lines.append({"x1": x, "y1": 0, "x2": x, "y2": viewport.height})
    if horizontal is not None and horizontal.y is not None:
        y = horizontal.y * zoom + ty
        lines.append({"x1": 0, "y1": y, "x2": viewport.width, "y2": y})
    return lines


def project_result(result: GuideResult, viewport: Viewport) -> List[Dict[str, float]]:
    return project_guides(result.vertical, result.horizontal, viewport)
