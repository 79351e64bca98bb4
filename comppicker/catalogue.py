from __future__ import annotations
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple

from .models import Catalogue, Category, Component

def _depends(raw: Any) -> Tuple[str, ...]:
    if not raw:
        return ()
    if isinstance(raw, str):
        return tuple(raw.split())
    return tuple(str(x).strip() for x in raw if str(x).strip())

def _int(raw: Any) -> int:
    try:
        return int(raw or 0)
    except (TypeError, ValueError):
        return 0

def parse_component(it: Any) -> Optional[Component]:
    if isinstance(it, str):
        cid = it.strip()
        return Component(id=cid, name=cid) if cid else None
    if not isinstance(it, dict):
        return None
    cid = str(it.get("id", "")).strip()
    if not cid:
        return None
    return Component(
        id=cid,
        name=str(it.get("name", "") or cid).strip(),
        description=str(it.get("description", "") or "").strip(),
        download_size=_int(it.get("download_size")),
        install_size=_int(it.get("install_size")),
        hash=str(it.get("hash", "") or "").strip(),
        depends_on=_depends(it.get("depends", it.get("depends_on"))),
        required=bool(it.get("required", False)),
        installed=bool(it.get("installed", False)),
        date_modified=str(it.get("date_modified", "") or ""),
        path=it.get("path") or None,
    )

def parse_category(c: Dict[str, Any]) -> Optional[Category]:
    cid = str(c.get("id", "")).strip()
    if not cid:
        return None
    subs: List[Category] = []
    for s in c.get("subcategories", []) or []:
        if isinstance(s, dict):
            sub = parse_category(s)
            if sub is not None:
                subs.append(sub)
    comps: List[Component] = []
    for it in c.get("components", []) or []:
        comp = parse_component(it)
        if comp is not None:
            comps.append(comp)
    return Category(
        id=cid,
        name=str(c.get("name", "") or cid).strip(),
        description=str(c.get("description", "") or "").strip(),
        subcategories=subs,
        components=comps,
        required=bool(c.get("required", False)),
    )

def parse_catalogue(cfg: Dict[str, Any]) -> Catalogue:
    out: List[Category] = []
    for c in cfg.get("categories", []) or []:
        if not isinstance(c, dict):
            continue
        cat = parse_category(c)
        if cat is not None:
            out.append(cat)
    return Catalogue(categories=out, url=str(cfg.get("url", "") or ""))

# ---------- walking ----------
def iter_categories(categories: Iterable[Category]) -> Iterator[Category]:
    for c in categories:
        yield c
        yield from iter_categories(c.subcategories)

def iter_components(categories: Iterable[Category]) -> Iterator[Component]:
    for c in iter_categories(categories):
        yield from c.components

def collect_components(category: Category) -> List[Component]:
    """All components in the subtree of `category`, depth first."""
    return list(iter_components([category]))

def find_category(catalogue: Catalogue, cid: str) -> Optional[Category]:
    for c in iter_categories(catalogue.categories):
        if c.id == cid:
            return c
    return None

def known_ids(catalogue: Catalogue) -> Set[str]:
    return {comp.id for comp in iter_components(catalogue.categories)}

def category_ids(catalogue: Catalogue) -> Set[str]:
    return {c.id for c in iter_categories(catalogue.categories)}

def components_by_id(catalogue: Catalogue) -> Dict[str, Component]:
    return {comp.id: comp for comp in iter_components(catalogue.categories)}

# ---------- qualified ids ----------
def _prefixed(prefix: str, cid: str) -> str:
    if not prefix or cid.startswith(prefix + "-"):
        return cid
    return f"{prefix}-{cid}"

class RefIndex:
    """Maps ids as written in a data file to qualified component ids."""

    def __init__(self, categories: Iterable[Category]):
        self.full: Set[str] = set()
        self.short: Dict[str, List[str]] = {}
        for cat in iter_categories(categories):
            for comp in cat.components:
                self.full.add(comp.id)
                short = comp.id[len(cat.id) + 1:] if comp.id.startswith(cat.id + "-") else comp.id
                self.short.setdefault(short, []).append(comp.id)

    def resolve(self, ref: str, scope: str = "") -> str:
        """Qualified id for `ref`; the nearest match inside `scope` wins, then a unique short id."""
        if ref in self.full:
            return ref
        while scope:
            local = _prefixed(scope, ref)
            if local in self.full:
                return local
            scope = scope.rpartition("-")[0]
        hits = self.short.get(ref, [])
        return hits[0] if len(hits) == 1 else ref

def _qualify_category(cat: Category, prefix: str) -> Category:
    cid = _prefixed(prefix, cat.id)
    return replace(
        cat,
        id=cid,
        subcategories=[_qualify_category(s, cid) for s in cat.subcategories],
        components=[replace(comp, id=_prefixed(cid, comp.id)) for comp in cat.components],
    )

def _link_category(cat: Category, index: RefIndex) -> Category:
    comps = []
    for comp in cat.components:
        deps = dict.fromkeys(index.resolve(d, cat.id) for d in comp.depends_on)
        comps.append(replace(comp, depends_on=tuple(deps)))
    return replace(
        cat,
        subcategories=[_link_category(s, index) for s in cat.subcategories],
        components=comps,
    )

def qualify_catalogue(catalogue: Catalogue) -> Catalogue:
    """Prefix category and component ids with their category path.

    `docs` under `core` becomes `core-docs`, so equal ids in different
    categories stay distinct. Ids already carrying their path are kept,
    which makes this idempotent. `depends` entries are rewritten to the
    qualified ids they refer to.
    """
    cats = [_qualify_category(c, "") for c in catalogue.categories]
    index = RefIndex(cats)
    return replace(catalogue, categories=[_link_category(c, index) for c in cats])

# ---------- sizes ----------
THRESH = 1024
UNITS = ["KB", "MB", "GB", "TB", "PB", "EB", "ZB", "YB"]

def readable_byte_size(n: int) -> str:
    if abs(n) < THRESH:
        return f"{n} B"
    size = float(n)
    u = -1
    while True:
        size /= THRESH
        u += 1
        if round(abs(size), 1) < THRESH or u >= len(UNITS) - 1:
            break
    return f"{size:.1f} {UNITS[u]}"

def selection_totals(catalogue: Catalogue, ids: Iterable[str]) -> Tuple[int, int]:
    """(download, install) bytes for the given component ids."""
    comps = components_by_id(catalogue)
    dl = inst = 0
    for cid in set(ids):
        comp = comps.get(cid)
        if comp is None:
            continue
        dl += comp.download_size
        inst += comp.install_size
    return dl, inst
