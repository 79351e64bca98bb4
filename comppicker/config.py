from __future__ import annotations
import copy
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .storage import load_json_safe

APP_NAME = "comppicker"

DEFAULT_CONFIG: Dict[str, Any] = {
    "ui": {"title": "Component Picker", "tagline": "Choose what to install"},
    "url": "",
    "categories": [],
    "selected": [],
}

@dataclass(frozen=True)
class AppPaths:
    cache_dir: str

    @classmethod
    def default(cls) -> "AppPaths":
        return cls(os.path.expanduser(f"~/.cache/{APP_NAME}"))

    @property
    def history_log(self) -> str:
        return os.path.join(self.cache_dir, "history.log")

    @property
    def log_file(self) -> str:
        return os.path.join(self.cache_dir, f"{APP_NAME}.log")

    @property
    def exports_dir(self) -> str:
        return os.path.join(self.cache_dir, "exports")

    def ensure(self) -> None:
        os.makedirs(self.cache_dir, exist_ok=True)
        os.makedirs(self.exports_dir, exist_ok=True)

def load_config(path: Optional[str]) -> Dict[str, Any]:
    default_cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg = load_json_safe(path, default_cfg) if path else default_cfg
    if not isinstance(cfg, dict):
        cfg = default_cfg
    for k, v in default_cfg.items():
        cfg.setdefault(k, v)
    if not isinstance(cfg["ui"], dict):
        cfg["ui"] = dict(DEFAULT_CONFIG["ui"])
    return cfg
