"""
Browser canvas for mindcanvas.

This package connects an EditorSession to a NiceGUI page:
- CanvasOverlay: HTML/SVG rendering and the browser event script
- setup_canvas_handlers: event handlers for app.py integration
- project_guides: world-space guides to screen-space lines

Usage:
    from mindcanvas.canvas import CanvasOverlay
    from mindcanvas.canvas.handlers import setup_canvas_handlers
"""

from mindcanvas.canvas.constants import (
    GUIDE_COLOR,
    EDGE_COLOR,
    EDGE_WIDTH,
    EVENT_NAMES,
)
from mindcanvas.canvas.guides import project_guides, project_result
from mindcanvas.canvas.overlay import CanvasOverlay
from mindcanvas.canvas.handlers import (
    setup_canvas_handlers,
    bind_save_status,
    bind_history_buttons,
    BrowserClipboard,
)

__all__ = [
    'CanvasOverlay',
    'setup_canvas_handlers',
    'bind_save_status',
    'bind_history_buttons',
    'BrowserClipboard',
    'project_guides',
    'project_result',
    'GUIDE_COLOR',
    'EDGE_COLOR',
    'EDGE_WIDTH',
    'EVENT_NAMES',
]
