from __future__ import annotations
import json, os, time
from typing import Any, Dict

from .catalogue import readable_byte_size, selection_totals
from .models import Catalogue, Selection

def load_json_safe(path: str, default: Any) -> Any:
    try:
        if not os.path.exists(path):
            return default
        with open(path, "r", encoding="utf-8") as f:
            raw = f.read()
        if not raw.strip():
            return default
        return json.loads(raw)
    except (OSError, ValueError):
        return default

def save_json(path: str, obj: Any) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)

def selection_payload(catalogue: Catalogue, selection: Selection) -> Dict[str, Any]:
    chosen = selection.selected | selection.required
    dl, inst = selection_totals(catalogue, chosen)
    return {
        "url": catalogue.url,
        "selected": sorted(selection.selected),
        "required": sorted(selection.required),
        "download_size": dl,
        "install_size": inst,
        "download_size_h": readable_byte_size(dl),
        "install_size_h": readable_byte_size(inst),
    }

def export_selection(exports_dir: str, catalogue: Catalogue, selection: Selection) -> str:
    """Write the handoff selection to a timestamped JSON file and return its path."""
    ts = time.strftime("%Y%m%d-%H%M%S")
    path = os.path.join(exports_dir, f"selection-{ts}.json")
    save_json(path, selection_payload(catalogue, selection))
    return path
