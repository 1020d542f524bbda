"""
Normalisation of browser event payloads.

NiceGUI delivers `emitEvent` arguments as dicts, but older clients and
tests may send positional lists. Everything here is pure so it can be
tested without a running page.
"""

from typing import Dict, Any, Optional, Sequence

from mindcanvas.clipboard import ClipboardItem, PasteEvent


def normalize_event_args(raw: Any, keys: Sequence[str] = ()) -> Dict[str, Any]:
    """Return event args as a dict; positional lists are mapped onto `keys`."""
    if hasattr(raw, "args"):
        raw = raw.args
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (list, tuple)):
        return {keys[i]: raw[i] for i in range(min(len(raw), len(keys)))}
    return {}


def _float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def point_from_args(args: Dict[str, Any]) -> Optional[tuple]:
    """(x, y) from args with numeric x/y, else None."""
    if "x" not in args or "y" not in args:
        return None
    try:
        return float(args["x"]), float(args["y"])
    except (TypeError, ValueError):
        return None


def paste_event_from_args(args: Dict[str, Any]) -> PasteEvent:
    """
    Build a PasteEvent from the browser payload:
    {"text": str, "items": [{"type": mime, "data": dataURL}], "target": tagName}
    """
    items = []
    for raw_item in args.get("items") or []:
        if not isinstance(raw_item, dict):
            continue
        mime_type = str(raw_item.get("type") or "")
        if not mime_type:
            continue
        items.append(ClipboardItem(mime_type=mime_type, data=raw_item.get("data") or ""))
    text = args.get("text")
    return PasteEvent(
        text=text if isinstance(text, str) else None,
        items=items,
        target_tag=str(args.get("target") or ""),
    )


def keydown_from_args(args: Dict[str, Any]) -> Dict[str, Any]:
    """Keyword arguments for EditorSession.handle_keydown()."""
    return {
        "key": str(args.get("key") or ""),
        "ctrl": bool(args.get("ctrl")),
        "meta": bool(args.get("meta")),
        "shift": bool(args.get("shift")),
        "target_tag": str(args.get("target") or ""),
    }


def resize_from_args(args: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    node_id = args.get("id")
    if not node_id:
        return None
    resize = {
        "node_id": node_id,
        "width": _float(args.get("width")),
        "height": _float(args.get("height")),
    }
    point = point_from_args(args)
    if point is not None:
        resize["x"], resize["y"] = point
    return resize
