from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from .catalogue import (
    collect_components,
    components_by_id,
    find_category,
    iter_components,
    iter_categories,
    known_ids,
    parse_catalogue,
    qualify_catalogue,
    RefIndex,
)
from .errors import CatalogueError
from .models import Catalogue, Component, Selection

logger = logging.getLogger(__name__)

# handler(catalogue or None for a selection-only sync, selection)
SyncHandler = Callable[[Optional[Catalogue], Selection], None]

class Resolver:
    """Authority over the catalogue and the dependency graph.

    Subclasses talk to whatever backend owns the real state and must wrap
    transport failures in ResolverCommunicationError.
    """

    def __init__(self) -> None:
        self._handlers: List[SyncHandler] = []

    def on_state_sync(self, handler: SyncHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def remove_state_sync(self, handler: SyncHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def publish(self, catalogue: Optional[Catalogue], selection: Selection) -> None:
        for h in list(self._handlers):
            h(catalogue, selection)

    async def fetch_catalogue(self) -> Catalogue:
        raise NotImplementedError

    async def request_sync(self) -> None:
        """Ask for a full state sync; the answer arrives through on_state_sync."""

    async def resolve_dependants(self, cid: str) -> List[str]:
        raise NotImplementedError

    async def resolve_dependencies(self, cid: str) -> List[str]:
        raise NotImplementedError

    async def select_component(self, cid: str) -> None:
        raise NotImplementedError

    async def unselect_component(self, cid: str) -> None:
        raise NotImplementedError

class LocalResolver(Resolver):
    """In-process resolver driven by the catalogue's `depends` links.

    Ids are qualified with their category path on the way in, so the ids
    handed out by fetch_catalogue() may differ from the ones in the file.
    `selected` may use either form.
    """

    def __init__(self, catalogue: Catalogue, selected: Iterable[str] = ()):
        super().__init__()
        self.catalogue = qualify_catalogue(catalogue)
        self.required: Set[str] = set()
        self.selected: Set[str] = set()
        self._reindex()
        for ref in selected:
            self.selected.update(self.find_dependencies(self._refs.resolve(str(ref))))
        self.selected &= self._known

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "LocalResolver":
        catalogue = parse_catalogue(cfg)
        if not catalogue.categories:
            raise CatalogueError("no categories in catalogue")
        return cls(catalogue, cfg.get("selected", []) or [])

    def _reindex(self) -> None:
        self._known = known_ids(self.catalogue)
        self._components: Dict[str, Component] = components_by_id(self.catalogue)
        self._refs = RefIndex(self.catalogue.categories)
        self.required = self.find_required()

    def selection(self) -> Selection:
        return Selection.of(self.selected, self.required)

    # ---------- graph ----------
    def _targets(self, cid: str) -> List[Component]:
        if cid in self._components:
            return [self._components[cid]]
        cat = find_category(self.catalogue, cid)
        if cat is not None:
            return collect_components(cat)
        return []

    def _dependencies_rec(self, comp: Component, out: List[str]) -> None:
        for dep in comp.depends_on:
            if dep in out:
                continue
            out.append(dep)
            dep_comp = self._components.get(dep)
            if dep_comp is not None:
                self._dependencies_rec(dep_comp, out)

    def _dependants_rec(self, cid: str, out: List[str]) -> None:
        for comp in iter_components(self.catalogue.categories):
            if cid in comp.depends_on and comp.id not in out:
                out.append(comp.id)
                self._dependants_rec(comp.id, out)

    def find_dependencies(self, cid: str) -> List[str]:
        """`cid` (or its subtree) plus everything it transitively depends on."""
        out: List[str] = []
        for comp in self._targets(cid):
            self._dependencies_rec(comp, out)
            out.append(comp.id)
        return sorted(set(out) & self._known)

    def find_dependants(self, cid: str) -> List[str]:
        """`cid` (or its subtree) plus everything depending on it, minus required members."""
        out: List[str] = []
        for comp in self._targets(cid):
            self._dependants_rec(comp.id, out)
            out.append(comp.id)
        return sorted(set(out) - self.required)

    def find_required(self) -> Set[str]:
        """Flagged components, everything under flagged categories, and their dependencies."""
        req: Set[str] = set()
        for cat in iter_categories(self.catalogue.categories):
            if cat.required:
                req.update(self.find_dependencies(cat.id))
        for comp in self._components.values():
            if comp.required:
                req.update(self.find_dependencies(comp.id))
        return req

    # ---------- resolver operations ----------
    async def fetch_catalogue(self) -> Catalogue:
        return self.catalogue

    async def request_sync(self) -> None:
        self.publish(self.catalogue, self.selection())

    async def resolve_dependants(self, cid: str) -> List[str]:
        return self.find_dependants(cid)

    async def resolve_dependencies(self, cid: str) -> List[str]:
        return self.find_dependencies(cid)

    async def select_component(self, cid: str) -> None:
        deps = self.find_dependencies(cid)
        logger.debug("select %s -> %s", cid, deps)
        self.selected.update(deps)
        self.publish(None, self.selection())

    async def unselect_component(self, cid: str) -> None:
        gone = set(self.find_dependants(cid))
        logger.debug("unselect %s -> %s", cid, sorted(gone))
        self.selected -= gone
        self.publish(None, self.selection())

    def replace_catalogue(self, catalogue: Catalogue) -> None:
        self.catalogue = qualify_catalogue(catalogue)
        self._reindex()
        self.selected &= self._known
        logger.info("catalogue replaced (%d components)", len(self._known))
        self.publish(self.catalogue, self.selection())
