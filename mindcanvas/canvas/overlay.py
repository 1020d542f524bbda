"""
Canvas Overlay - HTML/SVG surface that draws the graph in the browser.

Cards are absolute-positioned divs inside a transformed "world" layer,
edges are SVG paths between handle points, and alignment guides are SVG
lines drawn in screen space on top. All pointer, keyboard and paste input
is forwarded to Python with `emitEvent`; Python owns the graph and pushes
the result back through render() / move_nodes() / show_guides().

IMPORTANT: the browser never mutates the graph on its own. Local moves
during a drag or resize are previews and are overwritten by the next
message from Python.
"""

import json
from typing import Dict, Any, List, Iterable

from nicegui import ui

from mindcanvas.canvas.constants import (
    GUIDE_COLOR,
    GUIDE_WIDTH,
    SELECTED_COLOR,
    EDGE_COLOR,
    EDGE_WIDTH,
    HANDLE_SIZE,
    CARD_RADIUS,
    CARD_BACKGROUND,
    CARD_MIN_WIDTH,
    CARD_MIN_HEIGHT,
    CANVAS_BACKGROUND,
    DOT_COLOR,
    DOT_GAP,
    MIN_ZOOM,
    MAX_ZOOM,
)
from mindcanvas.clipboard import CLIPBOARD_MARKER


def render_payload(session) -> Dict[str, Any]:
    """Everything the browser needs to redraw one session's canvas."""
    tx, ty, zoom = session.viewport.transform
    return {
        "nodes": session.store.nodes,
        "edges": session.store.edges,
        "editing": session.editing_node_id,
        "hasBuffer": not session.clipboard.buffer.is_empty,
        "transform": [tx, ty, zoom],
    }


def node_positions(session, node_ids: Iterable[str]) -> Dict[str, Dict[str, float]]:
    positions = {}
    for node_id in node_ids:
        node = session.store.get_node(node_id)
        if node is not None:
            positions[node_id] = dict(node["position"])
    return positions


_STYLE = '''
<style>
    #mc-root {
        position: fixed; inset: 0; overflow: hidden;
        background-color: __CANVAS_BACKGROUND__;
        background-image: radial-gradient(__DOT_COLOR__ 1px, transparent 1px);
        touch-action: none; user-select: none;
        font-family: system-ui, sans-serif;
    }
    #mc-world { position: absolute; left: 0; top: 0; transform-origin: 0 0; }
    #mc-edges { position: absolute; left: 0; top: 0; width: 1px; height: 1px; overflow: visible; }
    #mc-edges path { pointer-events: stroke; cursor: pointer; }
    .mc-card {
        position: absolute; box-sizing: border-box;
        background: __CARD_BACKGROUND__;
        border: 1px solid #e2e2e2;
        border-radius: __CARD_RADIUS__px;
        padding: 16px 20px;
        box-shadow: 0 2px 8px rgba(0,0,0,0.06);
        cursor: grab; overflow: visible;
        display: flex; flex-direction: column; gap: 8px;
    }
    .mc-card.mc-selected { border: 2px solid __SELECTED_COLOR__; }
    .mc-card img { max-width: 100%; min-height: 0; flex: 1; object-fit: contain; pointer-events: none; }
    .mc-text { white-space: pre-wrap; overflow: hidden; color: #333; font-size: 14px; }
    .mc-editor {
        flex: 1; width: 100%; resize: none; border: none; outline: none;
        background: transparent; font: inherit; font-size: 14px; color: #333;
    }
    .mc-handle {
        position: absolute; width: __HANDLE_SIZE__px; height: __HANDLE_SIZE__px;
        border-radius: 50%; background: #555; border: 2px solid #fff;
        transform: translate(-50%, -50%); cursor: crosshair; opacity: 0.6;
    }
    .mc-handle:hover { opacity: 1; }
    .mc-handle-top { left: 50%; top: 0; }
    .mc-handle-bottom { left: 50%; top: 100%; }
    .mc-handle-left { left: 0; top: 50%; }
    .mc-handle-right { left: 100%; top: 50%; }
    .mc-resize {
        position: absolute; right: -4px; bottom: -4px; width: 12px; height: 12px;
        background: __SELECTED_COLOR__; border-radius: 3px; cursor: nwse-resize;
    }
    #mc-guides, #mc-overlay-svg {
        position: absolute; inset: 0; width: 100%; height: 100%;
        pointer-events: none; z-index: 10;
    }
</style>
'''

_SCRIPT = '''
<script>
(function() {
    const C = __CONSTANTS__;
    const SVG_NS = 'http://www.w3.org/2000/svg';
    const HANDLES = ['top', 'bottom', 'left', 'right'];
    const SHORTCUT_KEYS = ['c', 'x', 'z', 'y', 'a'];
    const TEXT_TAGS = ['INPUT', 'TEXTAREA'];

    const st = window.mindCanvasState = {
        nodes: [], edges: [], editing: null, hasBuffer: false,
        transform: [0, 0, 1],
        drag: null, pan: null, connect: null, resize: null,
        pendingDrag: null, pendingResize: null, frame: null,
        lastPointer: 0, viewportTimer: null, redrawing: false,
    };

    const root = document.getElementById('mc-root');
    const world = document.getElementById('mc-world');
    const edgeLayer = document.getElementById('mc-edges');
    const nodeLayer = document.getElementById('mc-nodes');
    const guideLayer = document.getElementById('mc-guides');
    const connectLine = document.getElementById('mc-connect-line');

    function local(ev) {
        const r = root.getBoundingClientRect();
        return [ev.clientX - r.left, ev.clientY - r.top];
    }

    function targetTag(ev) {
        return (ev.target && ev.target.tagName) || '';
    }

    function applyTransform() {
        const [tx, ty, z] = st.transform;
        world.style.transform = `translate(${tx}px, ${ty}px) scale(${z})`;
        root.style.backgroundPosition = `${tx}px ${ty}px`;
        root.style.backgroundSize = `${C.DOT_GAP * z}px ${C.DOT_GAP * z}px`;
    }

    function emitViewport() {
        const r = root.getBoundingClientRect();
        const [tx, ty, z] = st.transform;
        emitEvent('mc_viewport', {x: tx, y: ty, zoom: z, width: r.width, height: r.height});
    }

    function findNode(id) {
        return st.nodes.find(n => n.id === id);
    }

    function nodeSize(n) {
        const s = n.size || {};
        return [s.width || 0, s.height || 0];
    }

    function handlePoint(n, side) {
        const [w, h] = nodeSize(n);
        const x = n.position.x, y = n.position.y;
        switch (side) {
            case 'top': return [x + w / 2, y];
            case 'left': return [x, y + h / 2];
            case 'right': return [x + w, y + h / 2];
            default: return [x + w / 2, y + h];
        }
    }

    function pushOut(point, side, d) {
        const [x, y] = point;
        switch (side) {
            case 'top': return [x, y - d];
            case 'left': return [x - d, y];
            case 'right': return [x + d, y];
            default: return [x, y + d];
        }
    }

    function drawEdges() {
        edgeLayer.innerHTML = '';
        for (const e of st.edges) {
            const s = findNode(e.source), t = findNode(e.target);
            if (!s || !t) continue;
            const sh = e.sourceHandle || 'bottom', th = e.targetHandle || 'top';
            const p1 = handlePoint(s, sh), p2 = handlePoint(t, th);
            const d = Math.max(40, Math.hypot(p2[0] - p1[0], p2[1] - p1[1]) / 2);
            const c1 = pushOut(p1, sh, d), c2 = pushOut(p2, th, d);
            const style = e.style || {};
            const path = document.createElementNS(SVG_NS, 'path');
            path.setAttribute('d', `M ${p1[0]} ${p1[1]} C ${c1[0]} ${c1[1]}, ${c2[0]} ${c2[1]}, ${p2[0]} ${p2[1]}`);
            path.setAttribute('stroke', e.selected ? C.SELECTED_COLOR : (style.stroke || C.EDGE_COLOR));
            path.setAttribute('stroke-width', style.strokeWidth || C.EDGE_WIDTH);
            path.setAttribute('fill', 'none');
            path.dataset.edgeId = e.id;
            edgeLayer.appendChild(path);
        }
    }

    function placeCard(card, n) {
        const [w, h] = nodeSize(n);
        card.style.left = n.position.x + 'px';
        card.style.top = n.position.y + 'px';
        card.style.width = w + 'px';
        card.style.height = h + 'px';
    }

    function drawNodes() {
        // a focused editor being replaced must not commit
        const previous = nodeLayer.querySelector('.mc-editor');
        const draft = previous ? previous.value : null;
        st.redrawing = true;
        nodeLayer.innerHTML = '';
        st.redrawing = false;

        for (const n of st.nodes) {
            const data = n.data || {};
            const card = document.createElement('div');
            card.className = 'mc-card' + (n.selected ? ' mc-selected' : '');
            card.dataset.nodeId = n.id;
            placeCard(card, n);

            if (st.editing === n.id) {
                const editor = document.createElement('textarea');
                editor.className = 'mc-editor';
                editor.value = draft !== null ? draft : (data.content || data.label || '');
                editor.addEventListener('blur', () => {
                    if (st.redrawing) return;
                    emitEvent('mc_edit_commit', {id: n.id, text: editor.value});
                });
                editor.addEventListener('keydown', ev => {
                    if (ev.key === 'Escape') editor.blur();
                });
                card.appendChild(editor);
                setTimeout(() => editor.focus(), 0);
            } else {
                if (data.imageUrl) {
                    const img = document.createElement('img');
                    img.src = data.imageUrl;
                    img.draggable = false;
                    card.appendChild(img);
                }
                const text = document.createElement('div');
                text.className = 'mc-text';
                text.textContent = data.content || data.label || '';
                card.appendChild(text);
            }

            for (const side of HANDLES) {
                const handle = document.createElement('div');
                handle.className = 'mc-handle mc-handle-' + side;
                handle.dataset.handle = side;
                card.appendChild(handle);
            }
            if (n.selected) {
                const grip = document.createElement('div');
                grip.className = 'mc-resize';
                card.appendChild(grip);
            }
            nodeLayer.appendChild(card);
        }
    }

    function cardElement(id) {
        return nodeLayer.querySelector(`.mc-card[data-node-id="${CSS.escape(id)}"]`);
    }

    function flushFrame() {
        st.frame = null;
        if (st.pendingDrag) {
            emitEvent('mc_drag', st.pendingDrag);
            st.pendingDrag = null;
        }
        if (st.pendingResize) {
            emitEvent('mc_resize', st.pendingResize);
            st.pendingResize = null;
        }
    }

    function scheduleFrame() {
        if (!st.frame) st.frame = requestAnimationFrame(flushFrame);
    }

    // --- Pointer ---

    root.addEventListener('pointerdown', ev => {
        if (ev.button !== 0 || ev.target.closest('.mc-editor')) return;
        const p = local(ev);
        const card = ev.target.closest('.mc-card');
        const handle = ev.target.closest('.mc-handle');
        const edge = ev.target.closest('path[data-edge-id]');

        if (handle && card) {
            st.connect = {nodeId: card.dataset.nodeId, handle: handle.dataset.handle, start: p};
            emitEvent('mc_connect_start', {id: card.dataset.nodeId, handle: handle.dataset.handle});
        } else if (card && ev.target.closest('.mc-resize')) {
            const n = findNode(card.dataset.nodeId);
            if (!n) return;
            const [w, h] = nodeSize(n);
            st.resize = {id: n.id, start: p, w: w, h: h};
            emitEvent('mc_resize_start', {id: n.id});
        } else if (card) {
            const n = findNode(card.dataset.nodeId);
            if (!n) return;
            if (!n.selected || ev.shiftKey) {
                emitEvent('mc_select', {nodes: [n.id], edges: [], additive: ev.shiftKey});
            }
            st.drag = {id: n.id, start: p, x: n.position.x, y: n.position.y, moved: false};
        } else if (edge) {
            emitEvent('mc_select', {nodes: [], edges: [edge.dataset.edgeId], additive: ev.shiftKey});
        } else {
            st.pan = {start: p, tx: st.transform[0], ty: st.transform[1], moved: false};
        }
    });

    window.addEventListener('pointermove', ev => {
        const p = local(ev);
        const now = performance.now();
        if (now - st.lastPointer > 50) {
            st.lastPointer = now;
            emitEvent('mc_pointer', {x: p[0], y: p[1]});
        }
        const z = st.transform[2];

        if (st.drag) {
            const dx = (p[0] - st.drag.start[0]) / z;
            const dy = (p[1] - st.drag.start[1]) / z;
            if (!st.drag.moved) {
                if (Math.hypot(dx, dy) * z < 3) return;
                st.drag.moved = true;
                emitEvent('mc_drag_start', {id: st.drag.id});
            }
            st.pendingDrag = {id: st.drag.id, x: st.drag.x + dx, y: st.drag.y + dy};
            scheduleFrame();
        } else if (st.resize) {
            const w = Math.max(C.MIN_WIDTH, st.resize.w + (p[0] - st.resize.start[0]) / z);
            const h = Math.max(C.MIN_HEIGHT, st.resize.h + (p[1] - st.resize.start[1]) / z);
            const card = cardElement(st.resize.id);
            if (card) {
                card.style.width = w + 'px';
                card.style.height = h + 'px';
            }
            st.pendingResize = {id: st.resize.id, width: w, height: h};
            scheduleFrame();
        } else if (st.connect) {
            connectLine.setAttribute('x1', st.connect.start[0]);
            connectLine.setAttribute('y1', st.connect.start[1]);
            connectLine.setAttribute('x2', p[0]);
            connectLine.setAttribute('y2', p[1]);
            connectLine.setAttribute('opacity', '1');
        } else if (st.pan) {
            const dx = p[0] - st.pan.start[0], dy = p[1] - st.pan.start[1];
            if (!st.pan.moved && Math.hypot(dx, dy) < 3) return;
            st.pan.moved = true;
            st.transform = [st.pan.tx + dx, st.pan.ty + dy, z];
            applyTransform();
        }
    });

    window.addEventListener('pointerup', ev => {
        const p = local(ev);
        if (st.drag) {
            if (st.drag.moved) {
                flushFrame();
                emitEvent('mc_drag_stop', {id: st.drag.id});
            }
            st.drag = null;
        } else if (st.resize) {
            flushFrame();
            emitEvent('mc_resize_end', {id: st.resize.id});
            st.resize = null;
        } else if (st.connect) {
            connectLine.setAttribute('opacity', '0');
            const el = document.elementFromPoint(ev.clientX, ev.clientY);
            const handle = el && el.closest('.mc-handle');
            const card = el && el.closest('.mc-card');
            let valid = false;
            if (handle && card && !(card.dataset.nodeId === st.connect.nodeId &&
                                    handle.dataset.handle === st.connect.handle)) {
                valid = true;
                emitEvent('mc_connect', {
                    source: st.connect.nodeId, sourceHandle: st.connect.handle,
                    target: card.dataset.nodeId, targetHandle: handle.dataset.handle,
                });
            }
            emitEvent('mc_connect_end', {x: p[0], y: p[1], valid: valid});
            st.connect = null;
        } else if (st.pan) {
            if (st.pan.moved) emitViewport();
            else emitEvent('mc_select', {nodes: [], edges: [], additive: false});
            st.pan = null;
        }
    });

    root.addEventListener('dblclick', ev => {
        if (ev.target.closest('.mc-editor') || ev.target.closest('.mc-handle')) return;
        const card = ev.target.closest('.mc-card');
        if (card) {
            emitEvent('mc_edit_start', {id: card.dataset.nodeId});
            return;
        }
        const p = local(ev);
        emitEvent('mc_dblclick', {x: p[0], y: p[1], onNode: false});
    });

    root.addEventListener('wheel', ev => {
        ev.preventDefault();
        const p = local(ev);
        const [tx, ty, z] = st.transform;
        const nz = Math.min(C.MAX_ZOOM, Math.max(C.MIN_ZOOM, z * Math.exp(-ev.deltaY * 0.001)));
        st.transform = [p[0] - (p[0] - tx) * nz / z, p[1] - (p[1] - ty) * nz / z, nz];
        applyTransform();
        clearTimeout(st.viewportTimer);
        st.viewportTimer = setTimeout(emitViewport, 100);
    }, {passive: false});

    window.addEventListener('resize', emitViewport);

    // --- Keyboard & clipboard ---

    document.addEventListener('keydown', ev => {
        const tag = targetTag(ev);
        if (TEXT_TAGS.includes(tag) || (ev.target && ev.target.isContentEditable)) return;
        const key = ev.key.toLowerCase();
        const command = ev.ctrlKey || ev.metaKey;
        const isShortcut = command ? SHORTCUT_KEYS.includes(key) : (key === 'delete' || key === 'backspace');
        if (!isShortcut) return;
        ev.preventDefault();
        emitEvent('mc_keydown', {key: ev.key, ctrl: ev.ctrlKey, meta: ev.metaKey, shift: ev.shiftKey, target: tag});
    });

    function readImage(file) {
        return new Promise(resolve => {
            const reader = new FileReader();
            reader.onload = () => resolve({type: file.type, data: reader.result});
            reader.onerror = () => resolve(null);
            reader.readAsDataURL(file);
        });
    }

    document.addEventListener('paste', async ev => {
        const tag = targetTag(ev);
        if (TEXT_TAGS.includes(tag) || !ev.clipboardData) return;
        const text = ev.clipboardData.getData('text/plain');
        const files = [];
        for (const item of ev.clipboardData.items) {
            if (item.kind === 'file' && item.type.includes('image')) {
                const file = item.getAsFile();
                if (file) files.push(file);
            }
        }
        // mirror of route_paste(): only claim events Python will handle
        if (!st.hasBuffer && !files.length) return;
        ev.preventDefault();
        const items = (await Promise.all(files.map(readImage))).filter(Boolean);
        emitEvent('mc_paste', {text: text, items: items, target: tag});
    });

    // --- API used from Python ---

    window.mindCanvas = {
        render(payload) {
            st.nodes = payload.nodes || [];
            st.edges = payload.edges || [];
            st.editing = payload.editing || null;
            st.hasBuffer = !!payload.hasBuffer;
            if (payload.transform && !st.pan) {
                st.transform = payload.transform;
                applyTransform();
            }
            drawNodes();
            drawEdges();
        },
        moveNodes(positions) {
            for (const [id, pos] of Object.entries(positions)) {
                const n = findNode(id);
                if (!n) continue;
                n.position = pos;
                const card = cardElement(id);
                if (card) placeCard(card, n);
            }
            drawEdges();
        },
        showGuides(lines) {
            guideLayer.innerHTML = '';
            for (const l of lines) {
                const line = document.createElementNS(SVG_NS, 'line');
                line.setAttribute('x1', l.x1);
                line.setAttribute('y1', l.y1);
                line.setAttribute('x2', l.x2);
                line.setAttribute('y2', l.y2);
                line.setAttribute('stroke', C.GUIDE_COLOR);
                line.setAttribute('stroke-width', C.GUIDE_WIDTH);
                guideLayer.appendChild(line);
            }
        },
    };

    applyTransform();
    emitViewport();
})();
</script>
'''


class CanvasOverlay:
    """
    Browser-side canvas for one client.

    Call setup() once inside the page function, then render() whenever
    the graph changed and move_nodes()/show_guides() during drags.
    """

    def __init__(self):
        self._root_id = 'mc-root'
        self._is_setup = False

    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def setup(self):
        """Create the canvas DOM and its event script. Idempotent."""
        if self._is_setup:
            return

        # Pass constants to JavaScript
        js_constants = json.dumps({
            'GUIDE_COLOR': GUIDE_COLOR,
            'GUIDE_WIDTH': GUIDE_WIDTH,
            'SELECTED_COLOR': SELECTED_COLOR,
            'EDGE_COLOR': EDGE_COLOR,
            'EDGE_WIDTH': EDGE_WIDTH,
            'MIN_WIDTH': CARD_MIN_WIDTH,
            'MIN_HEIGHT': CARD_MIN_HEIGHT,
            'DOT_GAP': DOT_GAP,
            'MIN_ZOOM': MIN_ZOOM,
            'MAX_ZOOM': MAX_ZOOM,
            'MARKER': CLIPBOARD_MARKER,
        })
        style = _STYLE
        for name, value in (
            ('__CANVAS_BACKGROUND__', CANVAS_BACKGROUND),
            ('__DOT_COLOR__', DOT_COLOR),
            ('__CARD_BACKGROUND__', CARD_BACKGROUND),
            ('__CARD_RADIUS__', CARD_RADIUS),
            ('__SELECTED_COLOR__', SELECTED_COLOR),
            ('__HANDLE_SIZE__', HANDLE_SIZE),
        ):
            style = style.replace(name, str(value))

        ui.add_head_html(style)
        ui.add_body_html(f'''
            <div id="{self._root_id}">
                <div id="mc-world">
                    <svg id="mc-edges"></svg>
                    <div id="mc-nodes"></div>
                </div>
                <svg id="mc-guides"></svg>
                <svg id="mc-overlay-svg">
                    <line id="mc-connect-line" x1="0" y1="0" x2="0" y2="0"
                        stroke="{EDGE_COLOR}" stroke-width="{EDGE_WIDTH}"
                        stroke-dasharray="8,4" opacity="0" />
                </svg>
            </div>
        ''' + _SCRIPT.replace('__CONSTANTS__', js_constants))
        self._is_setup = True

    def render(self, session):
        """Redraw every card and edge from the session's store."""
        payload = json.dumps(render_payload(session))
        ui.run_javascript(f'if (window.mindCanvas) window.mindCanvas.render({payload});')

    def move_nodes(self, positions: Dict[str, Dict[str, float]]):
        """Reposition cards without a full redraw. Called on every drag frame."""
        if not positions:
            return
        ui.run_javascript(f'if (window.mindCanvas) window.mindCanvas.moveNodes({json.dumps(positions)});')

    def show_guides(self, lines: List[Dict[str, float]]):
        ui.run_javascript(f'if (window.mindCanvas) window.mindCanvas.showGuides({json.dumps(lines)});')

    def hide_guides(self):
        self.show_guides([])
