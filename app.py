"""
Main NiceGUI application for mindcanvas.

Each browser tab gets its own EditorSession (graph, history, clipboard)
and AutosaveManager, rendered by a CanvasOverlay. The document is loaded
once the client connects and saved in the background after every edit.
"""

import logging
import sys

from dotenv import load_dotenv
load_dotenv()

from nicegui import ui, background_tasks

from mindcanvas.autosave import AutosaveManager
from mindcanvas.canvas import CanvasOverlay, BrowserClipboard, EVENT_NAMES
from mindcanvas.canvas.handlers import setup_canvas_handlers, bind_save_status, bind_history_buttons
from mindcanvas.config import get_editor_settings
from mindcanvas.paths import ensure_documents_dir
from mindcanvas.session import EditorSession
from mindcanvas.storage import create_backend

settings = get_editor_settings()

logging.basicConfig(
    level=getattr(logging, str(settings.log_level).upper(), logging.INFO),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger('mindcanvas')

if settings.storage_backend == 'file':
    ensure_documents_dir(settings.resolved_documents_dir)


@ui.page('/')
async def main_page():
    ui.query('body').style('margin: 0; padding: 0; overflow: hidden;')
    client = ui.context.client

    # --- Per-client state ---
    session = EditorSession(settings=settings, system_clipboard=BrowserClipboard())
    backend = create_backend(settings)
    autosave = AutosaveManager(
        session.store,
        backend,
        settings.document_id,
        debounce_ms=settings.autosave_debounce_ms,
    )
    session.on_close(autosave.cancel)
    if hasattr(backend, 'close'):
        session.on_close(backend.close)

    # --- Canvas ---
    overlay = CanvasOverlay()
    overlay.setup()

    handlers = setup_canvas_handlers(session, overlay)
    for event_name in EVENT_NAMES:
        ui.on(event_name, handlers[event_name])

    # --- Toolbar ---
    with ui.row().classes('fixed top-4 right-4 z-20 items-center gap-2 bg-white/90 rounded-lg shadow px-3 py-1'):
        def do_undo():
            if session.undo():
                overlay.render(session)

        def do_redo():
            if session.redo():
                overlay.render(session)

        undo_button = ui.button(icon='undo', on_click=do_undo).props('flat dense round').tooltip('Undo (Ctrl+Z)')
        redo_button = ui.button(icon='redo', on_click=do_redo).props('flat dense round').tooltip('Redo (Ctrl+Shift+Z)')
        status_label = ui.label('').classes('text-xs text-gray-500 min-w-[70px]')

    def on_save_error(message: str):
        with client:
            ui.notify(f'Save failed: {message}', type='negative', position='bottom')

    bind_save_status(autosave, status_label, on_error=on_save_error)
    bind_history_buttons(session.history, undo_button, redo_button)

    # --- Lifecycle ---
    def on_disconnect():
        if autosave.has_pending_save:
            # the debounce timer dies with the session; write the last state now
            background_tasks.create(autosave.save_now(), name='mindcanvas-final-save')
        session.close()
        logger.info(f"Session closed for client {client.id}")

    client.on_disconnect(on_disconnect)

    await client.connected()
    overlay.render(session)
    if await autosave.load():
        overlay.render(session)
    else:
        ui.notify('Could not load the document; edits will still be saved', type='warning', position='bottom')


if __name__ in {"__main__", "__mp_main__"}:
    ui.run(
        title='mindcanvas',
        port=8081,
        reload=not getattr(sys, 'frozen', False),
        favicon='🧠',
    )
