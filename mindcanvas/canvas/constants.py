"""
Shared constants for the canvas surface.

These values are used by both Python (handlers, guides) and the
browser script injected by CanvasOverlay. Keep them in sync!
"""

from mindcanvas.graph import MIN_NODE_WIDTH, MIN_NODE_HEIGHT, DEFAULT_EDGE_STYLE

# Guide lines and selection outline
GUIDE_COLOR = "#b4c46c"
GUIDE_WIDTH = 1
SELECTED_COLOR = "#b4c46c"

# Edges
EDGE_COLOR = DEFAULT_EDGE_STYLE["stroke"]
EDGE_WIDTH = DEFAULT_EDGE_STYLE["strokeWidth"]

# Handles: diameter in pixels, drawn centered on the card border
HANDLE_SIZE = 12

# Cards
CARD_RADIUS = 28
CARD_BACKGROUND = "#f9f9f9"
CARD_MIN_WIDTH = MIN_NODE_WIDTH
CARD_MIN_HEIGHT = MIN_NODE_HEIGHT

# Background dots
CANVAS_BACKGROUND = "#fbfbfb"
DOT_COLOR = "#d1d1d1"
DOT_GAP = 20

# Zoom limits for wheel zoom
MIN_ZOOM = 0.2
MAX_ZOOM = 4.0

# Browser events forwarded to Python
EVENT_NAMES = (
    "mc_pointer",
    "mc_viewport",
    "mc_select",
    "mc_drag_start",
    "mc_drag",
    "mc_drag_stop",
    "mc_resize_start",
    "mc_resize",
    "mc_resize_end",
    "mc_dblclick",
    "mc_edit_start",
    "mc_edit_commit",
    "mc_connect_start",
    "mc_connect",
    "mc_connect_end",
    "mc_keydown",
    "mc_paste",
)
