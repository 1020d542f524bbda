"""
mindcanvas: node-and-edge canvas editor.

The graph-editing engine (store, alignment, clipboard, connection
heuristic, undo/redo) is UI-agnostic; `mindcanvas.canvas` adapts it to
a NiceGUI page.
"""

__version__ = "0.3.0"
