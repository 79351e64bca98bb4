"""Test doubles for the resolver and the confirmation prompt."""
import asyncio
from typing import Callable, Dict, Iterable, List, Optional

from comppicker.catalogue import parse_catalogue
from comppicker.errors import ResolverCommunicationError
from comppicker.models import Catalogue, Selection
from comppicker.resolver import Resolver


def catalogue_of(*categories: dict, url: str = "") -> Catalogue:
    return parse_catalogue({"url": url, "categories": list(categories)})


def comp(cid: str, name: Optional[str] = None, **kw) -> dict:
    d = {"id": cid, "name": name or cid}
    d.update(kw)
    return d


def cat(cid: str, components: Iterable[dict] = (), subcategories: Iterable[dict] = (), name: Optional[str] = None) -> dict:
    return {
        "id": cid,
        "name": name or cid,
        "components": list(components),
        "subcategories": list(subcategories),
    }


class FakeResolver(Resolver):
    """Records every call; `fail` names operations that raise, `hooks` run during a call."""

    def __init__(self, catalogue: Catalogue, selection: Selection = Selection(), dependants: Optional[Dict[str, List[str]]] = None):
        super().__init__()
        self.catalogue = catalogue
        self.selection = selection
        self.dependants = dependants or {}
        self.calls: List[tuple] = []
        self.fail: set = set()
        self.hooks: Dict[str, Callable[[str], None]] = {}

    def _enter(self, op: str, cid: str = "") -> None:
        self.calls.append((op, cid))
        if op in self.hooks:
            self.hooks[op](cid)
        if op in self.fail:
            raise ResolverCommunicationError(op, cid, "connection refused")

    async def fetch_catalogue(self) -> Catalogue:
        self._enter("fetch")
        return self.catalogue

    async def request_sync(self) -> None:
        self.publish(self.catalogue, self.selection)

    async def resolve_dependants(self, cid: str) -> List[str]:
        self._enter("resolve_dependants", cid)
        return list(self.dependants.get(cid, []))

    async def resolve_dependencies(self, cid: str) -> List[str]:
        self._enter("resolve_dependencies", cid)
        return [cid]

    async def select_component(self, cid: str) -> None:
        self._enter("select", cid)

    async def unselect_component(self, cid: str) -> None:
        self._enter("unselect", cid)

    def ops(self, op: str) -> List[str]:
        return [c for o, c in self.calls if o == op]


class FakeGate:
    def __init__(self, answer: bool = True):
        self.answer = answer
        self.messages: List[str] = []

    async def __call__(self, message: str) -> bool:
        self.messages.append(message)
        return self.answer


class BlockingGate:
    """Holds the prompt open until `release` is set."""

    def __init__(self, answer: bool = True):
        self.answer = answer
        self.messages: List[str] = []
        self.asked = asyncio.Event()
        self.release = asyncio.Event()

    async def __call__(self, message: str) -> bool:
        self.messages.append(message)
        self.asked.set()
        await self.release.wait()
        return self.answer
