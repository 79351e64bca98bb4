"""Select/unselect protocol between the tree view and the resolver.

The coordinator owns the SelectionStore. Every change goes through
select(), unselect(), set_expanded() or apply_sync(); the derived tree
states are recomputed from the store on demand.

A single toggle request moves through

    IDLE -> RESOLVING_DEPENDANTS -> AWAITING_CONFIRMATION -> (ABORTED | CONFIRMED)
         -> MUTATING_LOCAL -> CALLING_RESOLVER -> (DONE | FAILED)

where the dependants/confirmation steps only exist for unselect. Requests
that never start end in UNCHANGED, REJECTED (same id already in flight) or
DROPPED (id not in the current catalogue).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Set, Tuple

from .catalogue import category_ids, collect_components, components_by_id, iter_categories, selection_totals
from .errors import (
    ConfirmationDeclined,
    InvariantViolation,
    ResolverCommunicationError,
    StaleReferenceError,
)
from .models import Catalogue, Category, Component, Selection, SelectionStore, TriState
from .resolver import Resolver
from .tree_state import ComponentView, catalogue_states, component_view

logger = logging.getLogger(__name__)

ConfirmGate = Callable[[str], Awaitable[bool]]
Notify = Callable[[str], None]

class ToggleStage(str, Enum):
    IDLE = "idle"
    RESOLVING_DEPENDANTS = "resolving_dependants"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    ABORTED = "aborted"
    CONFIRMED = "confirmed"
    MUTATING_LOCAL = "mutating_local"
    CALLING_RESOLVER = "calling_resolver"
    DONE = "done"
    FAILED = "failed"
    UNCHANGED = "unchanged"
    REJECTED = "rejected"
    DROPPED = "dropped"

TERMINAL = frozenset({
    ToggleStage.ABORTED,
    ToggleStage.DONE,
    ToggleStage.FAILED,
    ToggleStage.UNCHANGED,
    ToggleStage.REJECTED,
    ToggleStage.DROPPED,
})

@dataclass
class ToggleRequest:
    target: str
    action: str  # select|unselect
    stage: ToggleStage = ToggleStage.IDLE
    dependants: List[str] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL

class SelectionCoordinator:
    def __init__(
        self,
        resolver: Resolver,
        confirm: ConfirmGate,
        notify: Optional[Notify] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.resolver = resolver
        self.confirm = confirm
        self.notify = notify
        self.on_change = on_change

        self.catalogue = Catalogue(categories=[])
        self.store = SelectionStore()
        self.generation = 0

        self._components: Dict[str, Component] = {}
        self._categories: Dict[str, Category] = {}
        self._inflight: Dict[str, ToggleRequest] = {}
        # target -> component ids added optimistically and not yet acknowledged
        self._pending_adds: Dict[str, Set[str]] = {}

    async def start(self) -> None:
        catalogue = await self.resolver.fetch_catalogue()
        self._set_catalogue(catalogue)
        self.resolver.on_state_sync(self.apply_sync)
        await self.resolver.request_sync()
        self._changed()

    def close(self) -> None:
        self.resolver.remove_state_sync(self.apply_sync)

    # ---------- read side ----------
    @property
    def selected(self) -> FrozenSet[str]:
        return frozenset(self.store.selected)

    @property
    def required(self) -> FrozenSet[str]:
        return frozenset(self.store.required)

    @property
    def expanded(self) -> FrozenSet[str]:
        return frozenset(self.store.expanded)

    def states(self) -> Dict[str, TriState]:
        return catalogue_states(self.catalogue, self.store.selected, self.store.required)

    def component(self, cid: str) -> Optional[Component]:
        return self._components.get(cid)

    def category(self, cid: str) -> Optional[Category]:
        return self._categories.get(cid)

    def component_view(self, cid: str) -> ComponentView:
        return component_view(self._components[cid], self.store.selected, self.store.required)

    def is_known(self, cid: str) -> bool:
        return cid in self._components or cid in self._categories

    def is_busy(self, cid: str) -> bool:
        return cid in self._inflight

    def display_name(self, cid: str) -> str:
        node = self._components.get(cid) or self._categories.get(cid)
        return node.name if node is not None else cid

    def handoff(self) -> Selection:
        """The selection to hand to the resolver when installation begins."""
        return self.store.snapshot()

    def totals(self) -> Tuple[int, int]:
        return selection_totals(self.catalogue, self.store.chosen())

    async def dependencies(self, cid: str) -> List[str]:
        """Components selecting `cid` would pull in, `cid` itself excluded."""
        try:
            deps = await self.resolver.resolve_dependencies(cid)
        except ResolverCommunicationError as e:
            logger.warning("%s", e)
            return []
        return [d for d in deps if d != cid and d in self._components]

    # ---------- entry points ----------
    async def toggle(self, cid: str) -> ToggleRequest:
        comp = self._components.get(cid)
        if comp is not None:
            view = self.component_view(cid)
            if view.disabled:
                logger.debug("toggle %s ignored: required component", cid)
                return ToggleRequest(cid, "unselect" if view.checked else "select", ToggleStage.UNCHANGED)
            return await (self.unselect(cid) if view.checked else self.select(cid))
        if cid in self._categories:
            # CHECKED, or every member chosen below an empty subcategory
            if self._fully_selected(cid):
                return await self.unselect(cid)
            return await self.select(cid)
        logger.debug("toggle %s dropped: unknown id", cid)
        return ToggleRequest(cid, "select", ToggleStage.DROPPED)

    def set_expanded(self, cid: str, expanded: bool) -> None:
        if cid not in self._categories:
            return
        if expanded:
            self.store.expanded.add(cid)
        else:
            self.store.expanded.discard(cid)

    async def select(self, cid: str) -> ToggleRequest:
        req = ToggleRequest(cid, "select")
        if not self._admit(req):
            return req
        try:
            if self._fully_selected(cid):
                req.stage = ToggleStage.UNCHANGED
                return req

            req.stage = ToggleStage.MUTATING_LOCAL
            added = self._members(cid) - self.store.selected
            self.store.selected |= added
            self._pending_adds[cid] = added
            self._changed()

            await self._call_resolver(req, self.resolver.select_component)
        finally:
            self._release(req)
        return req

    async def unselect(self, cid: str) -> ToggleRequest:
        req = ToggleRequest(cid, "unselect")
        if not self._admit(req):
            return req
        try:
            members = self._members(cid)
            removable = {m for m in members if not self._components[m].required}
            if not removable & self.store.selected:
                req.stage = ToggleStage.UNCHANGED
                return req

            req.stage = ToggleStage.RESOLVING_DEPENDANTS
            try:
                dependants = await self.resolver.resolve_dependants(cid)
            except ResolverCommunicationError as e:
                self._fail(req, e)
                return req
            if self._went_stale(req):
                return req

            req.dependants = [
                d for d in dependants
                if d in self.store.selected and d not in members and not self._components[d].required
            ]
            if req.dependants:
                try:
                    await self._confirm_cascade(req)
                except ConfirmationDeclined as e:
                    logger.info("%s", e)
                    req.stage = ToggleStage.ABORTED
                    return req
                if self._went_stale(req):
                    return req

            req.stage = ToggleStage.MUTATING_LOCAL
            self.store.selected -= removable | set(req.dependants)
            self._changed()

            await self._call_resolver(req, self.resolver.unselect_component)
        finally:
            self._release(req)
        return req

    def dependants_message(self, cid: str, dependants: List[str]) -> str:
        names = ", ".join(self.display_name(d) for d in dependants)
        return (
            f'Unselecting "{self.display_name(cid)}" will also unselect '
            f"{len(dependants)} other components ({names}). Is this okay?"
        )

    # ---------- state sync ----------
    def apply_sync(self, catalogue: Optional[Catalogue], selection: Selection) -> None:
        """Replace the store with the resolver's state.

        In-flight optimistic additions the sync does not mention survive
        until their request finishes. Everything else comes from the sync.
        """
        if catalogue is not None and catalogue != self.catalogue:
            self._set_catalogue(catalogue)

        pending: Set[str] = set()
        for ids in self._pending_adds.values():
            pending |= ids
        keep = pending - selection.required
        self.store.selected = set(selection.selected) | keep
        self.store.required = set(selection.required)
        self._heal()
        logger.debug(
            "sync applied: selected=%d required=%d kept_pending=%d",
            len(self.store.selected), len(self.store.required), len(keep - selection.selected),
        )
        self._changed()

    # ---------- internals ----------
    def _set_catalogue(self, catalogue: Catalogue) -> None:
        self.catalogue = catalogue
        self._components = components_by_id(catalogue)
        self._categories = {c.id: c for c in iter_categories(catalogue.categories)}
        self.generation += 1
        self.store.expanded &= category_ids(catalogue)
        for target in list(self._pending_adds):
            self._pending_adds[target] &= set(self._components)
        self._heal()

    def _heal(self) -> None:
        try:
            self.store.validate(set(self._components))
        except InvariantViolation as e:
            logger.warning("%s; pruning", e)
            self.store.prune(set(self._components))

    def _changed(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _require_known(self, cid: str) -> None:
        if not self.is_known(cid):
            raise StaleReferenceError(cid)

    def _admit(self, req: ToggleRequest) -> bool:
        try:
            self._require_known(req.target)
        except StaleReferenceError as e:
            logger.debug("%s dropped: %s", req.action, e)
            req.stage = ToggleStage.DROPPED
            return False
        if req.target in self._inflight:
            logger.info("%s %s rejected: request already in flight", req.action, req.target)
            req.stage = ToggleStage.REJECTED
            return False
        self._inflight[req.target] = req
        return True

    def _release(self, req: ToggleRequest) -> None:
        if self._inflight.get(req.target) is req:
            del self._inflight[req.target]
        self._pending_adds.pop(req.target, None)

    def _went_stale(self, req: ToggleRequest) -> bool:
        if self.is_known(req.target):
            return False
        logger.debug("%s %s dropped: catalogue replaced", req.action, req.target)
        req.stage = ToggleStage.DROPPED
        return True

    def _members(self, cid: str) -> Set[str]:
        if cid in self._components:
            return {cid}
        return {c.id for c in collect_components(self._categories[cid])}

    def _fully_selected(self, cid: str) -> bool:
        if cid in self._components:
            return cid in self.store.chosen()
        return self._members(cid) <= self.store.chosen()

    async def _confirm_cascade(self, req: ToggleRequest) -> None:
        req.stage = ToggleStage.AWAITING_CONFIRMATION
        ok = await self.confirm(self.dependants_message(req.target, req.dependants))
        if not ok:
            raise ConfirmationDeclined(req.target, req.dependants)
        req.stage = ToggleStage.CONFIRMED

    async def _call_resolver(self, req: ToggleRequest, call: Callable[[str], Awaitable[None]]) -> None:
        req.stage = ToggleStage.CALLING_RESOLVER
        try:
            await call(req.target)
        except ResolverCommunicationError as e:
            self._fail(req, e)
            return
        if self._went_stale(req):
            return
        req.stage = ToggleStage.DONE
        logger.debug("%s %s done", req.action, req.target)

    def _fail(self, req: ToggleRequest, err: ResolverCommunicationError) -> None:
        req.error = err
        req.stage = ToggleStage.FAILED
        logger.warning("%s %s failed: %s", req.action, req.target, err)
        if self.notify is not None:
            self.notify(str(err))
