"""
Canvas Handlers - browser event handlers for app.py

Translates the events emitted by the CanvasOverlay script into
EditorSession calls and pushes the result back to the overlay. Keeps
app.py focused on page layout and lifecycle.
"""

import logging
from typing import Dict, Callable, Optional

from nicegui import ui

from mindcanvas.autosave import AutosaveManager, SaveStatus
from mindcanvas.canvas.events import (
    normalize_event_args,
    point_from_args,
    paste_event_from_args,
    keydown_from_args,
    resize_from_args,
)
from mindcanvas.canvas.guides import project_result
from mindcanvas.canvas.overlay import CanvasOverlay, node_positions
from mindcanvas.history import UndoManager
from mindcanvas.session import EditorSession

logger = logging.getLogger(__name__)

SAVE_STATUS_TEXT = {
    SaveStatus.SAVED: 'Saved',
    SaveStatus.SAVING: 'Saving...',
    SaveStatus.ERROR: 'Save failed',
}


class BrowserClipboard:
    """SystemClipboard backed by the page's navigator.clipboard."""

    def write_text(self, text: str) -> None:
        ui.clipboard.write(text)


def setup_canvas_handlers(
    session: EditorSession,
    overlay: CanvasOverlay,
) -> Dict[str, Callable]:
    """
    Set up all canvas event handlers.

    Args:
        session: EditorSession for this client
        overlay: CanvasOverlay already set up on the page

    Returns:
        Dict of event name -> handler, for binding with ui.on()
    """

    def refresh():
        overlay.render(session)

    def handle_pointer(e):
        point = point_from_args(normalize_event_args(e, ('x', 'y')))
        if point:
            session.track_pointer(*point)

    def handle_viewport(e):
        args = normalize_event_args(e, ('x', 'y', 'zoom', 'width', 'height'))
        try:
            session.set_viewport(
                float(args['x']), float(args['y']), float(args['zoom']),
                args.get('width'), args.get('height'),
            )
        except (KeyError, TypeError, ValueError) as err:
            logger.warning(f"Ignoring bad viewport payload {args}: {err}")

    def handle_select(e):
        args = normalize_event_args(e)
        session.select(
            args.get('nodes') or [],
            additive=bool(args.get('additive')),
            edge_ids=args.get('edges') or [],
        )
        refresh()

    def handle_drag_start(e):
        args = normalize_event_args(e, ('id',))
        session.on_node_drag_start(args.get('id'))

    def handle_drag(e):
        args = normalize_event_args(e, ('id', 'x', 'y'))
        node_id = args.get('id')
        point = point_from_args(args)
        if not node_id or point is None:
            return
        result = session.on_node_drag(node_id, *point)
        moved = [node_id] + [n['id'] for n in session.store.selected_nodes()]
        overlay.move_nodes(node_positions(session, moved))
        overlay.show_guides(project_result(result, session.viewport))

    def handle_drag_stop(e):
        session.on_node_drag_stop()
        overlay.hide_guides()
        refresh()

    def handle_resize_start(e):
        args = normalize_event_args(e, ('id',))
        session.on_resize_start(args.get('id'))

    def handle_resize(e):
        resize = resize_from_args(normalize_event_args(e, ('id', 'width', 'height')))
        if resize:
            session.on_resize(**resize)

    def handle_resize_end(e):
        session.on_resize_end()
        refresh()

    def handle_dblclick(e):
        args = normalize_event_args(e, ('x', 'y'))
        point = point_from_args(args)
        if point is None:
            return
        if session.on_double_click(*point, on_node=bool(args.get('onNode'))):
            refresh()

    def handle_edit_start(e):
        args = normalize_event_args(e, ('id',))
        if session.begin_edit(args.get('id')) is not None:
            refresh()

    def handle_edit_commit(e):
        args = normalize_event_args(e, ('id', 'text'))
        if args.get('id') != session.editing_node_id:
            # stale blur from a card that was redrawn or removed
            return
        session.commit_edit(str(args.get('text') or ''))
        refresh()

    def handle_connect_start(e):
        args = normalize_event_args(e, ('id', 'handle'))
        session.on_connect_start(args.get('id'), args.get('handle'))

    def handle_connect(e):
        args = normalize_event_args(e, ('source', 'target', 'sourceHandle', 'targetHandle'))
        if session.on_connect(
            args.get('source'), args.get('target'),
            args.get('sourceHandle'), args.get('targetHandle'),
        ):
            refresh()

    def handle_connect_end(e):
        args = normalize_event_args(e, ('x', 'y', 'valid'))
        point = point_from_args(args)
        if point is None:
            session.connector.reset()
            return
        if session.on_connect_end(*point, is_valid=bool(args.get('valid'))):
            refresh()

    def handle_keydown(e):
        args = normalize_event_args(e)
        if session.handle_keydown(**keydown_from_args(args)):
            refresh()

    async def handle_paste(e):
        event = paste_event_from_args(normalize_event_args(e))
        try:
            route = await session.handle_paste(event)
        except ValueError as err:
            ui.notify(f'Paste failed: {err}', type='negative', position='bottom')
            return
        if route:
            refresh()

    return {
        'mc_pointer': handle_pointer,
        'mc_viewport': handle_viewport,
        'mc_select': handle_select,
        'mc_drag_start': handle_drag_start,
        'mc_drag': handle_drag,
        'mc_drag_stop': handle_drag_stop,
        'mc_resize_start': handle_resize_start,
        'mc_resize': handle_resize,
        'mc_resize_end': handle_resize_end,
        'mc_dblclick': handle_dblclick,
        'mc_edit_start': handle_edit_start,
        'mc_edit_commit': handle_edit_commit,
        'mc_connect_start': handle_connect_start,
        'mc_connect': handle_connect,
        'mc_connect_end': handle_connect_end,
        'mc_keydown': handle_keydown,
        'mc_paste': handle_paste,
    }


def bind_save_status(autosave: AutosaveManager, label: ui.label,
                     on_error: Optional[Callable[[str], None]] = None) -> Callable:
    """Keep `label` showing the autosave status. Returns the registered callback."""

    def on_status(status: SaveStatus):
        label.set_text(SAVE_STATUS_TEXT.get(status, ''))
        if status == SaveStatus.ERROR and on_error:
            on_error(autosave.state.last_error or 'unknown error')

    autosave.on('status_change', on_status)
    on_status(autosave.status)
    return on_status


def bind_history_buttons(history: UndoManager, undo_button: ui.button,
                         redo_button: ui.button) -> Callable:
    """Enable the undo/redo buttons only while the matching stack has entries."""

    def on_changed():
        undo_button.set_enabled(history.can_undo)
        redo_button.set_enabled(history.can_redo)

    history.on_state_changed = on_changed
    on_changed()
    return on_changed
