from __future__ import annotations
import os, time, re
from typing import Any, Dict, List

def log_history(path: str, action: str, target: str, stage: str, lines: List[str]) -> None:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    ts = time.strftime("%Y-%m-%d %H:%M:%S")
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"[{ts}] {action} {target} stage={stage}\n")
        for l in lines:
            f.write("  " + l + "\n")
        f.write("\n")

def parse_history(path: str, max_entries: int = 500) -> List[Dict[str, Any]]:
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        txt = f.read()
    blocks = [b.strip() for b in txt.split("\n\n") if b.strip()]
    entries: List[Dict[str, Any]] = []
    for b in blocks[-max_entries:]:
        lines = b.splitlines()
        m = re.match(r"^\[(.*?)\]\s+(\w+)\s+(\S+)\s+stage=(\w+)", lines[0].strip())
        if not m:
            continue
        ts, action, target, stage = m.group(1), m.group(2), m.group(3), m.group(4)
        details = [ln.strip() for ln in lines[1:] if ln.strip()]
        entries.append({"ts": ts, "action": action, "target": target, "stage": stage, "details": details})
    entries.reverse()
    return entries
