"""
Viewport transform and pointer tracking.

The host surface reports pan/zoom as a transform (tx, ty, zoom), the
same convention the browser layer uses: screen = world * zoom + t.
"""

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass
class Viewport:
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    width: float = 1280.0
    height: float = 720.0

    @property
    def transform(self) -> Tuple[float, float, float]:
        return self.x, self.y, self.zoom

    def set_transform(self, x: float, y: float, zoom: float) -> None:
        if zoom <= 0:
            raise ValueError(f"zoom must be positive, got {zoom}")
        self.x, self.y, self.zoom = x, y, zoom

    def set_size(self, width: float, height: float) -> None:
        self.width, self.height = width, height

    def screen_to_world(self, screen_x: float, screen_y: float) -> Tuple[float, float]:
        return (screen_x - self.x) / self.zoom, (screen_y - self.y) / self.zoom

    def world_to_screen(self, world_x: float, world_y: float) -> Tuple[float, float]:
        return world_x * self.zoom + self.x, world_y * self.zoom + self.y

    def center_world(self) -> Tuple[float, float]:
        return self.screen_to_world(self.width / 2, self.height / 2)


class PointerTracker:
    """Last known pointer position over the canvas, in screen coordinates."""

    def __init__(self, viewport: Viewport):
        self.viewport = viewport
        self._screen: Optional[Tuple[float, float]] = None

    @property
    def has_position(self) -> bool:
        return self._screen is not None

    @property
    def screen_position(self) -> Optional[Tuple[float, float]]:
        return self._screen

    def move(self, screen_x: float, screen_y: float) -> None:
        self._screen = (screen_x, screen_y)

    def reset(self) -> None:
        self._screen = None

    def world_position(self) -> Optional[Tuple[float, float]]:
        """Pointer in world space under the current viewport, or None if never seen."""
        if self._screen is None:
            return None
        return self.viewport.screen_to_world(*self._screen)
