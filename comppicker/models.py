from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Set, Tuple

from .errors import InvariantViolation

@dataclass(frozen=True)
class Component:
    id: str
    name: str
    description: str = ""
    download_size: int = 0
    install_size: int = 0
    hash: str = ""
    depends_on: Tuple[str, ...] = ()
    required: bool = False  # resolver flag: not deselectable by the user
    installed: bool = False
    date_modified: str = ""
    path: Optional[str] = None

@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: str = ""
    subcategories: List["Category"] = field(default_factory=list)
    components: List[Component] = field(default_factory=list)
    required: bool = False  # every component below is required

@dataclass(frozen=True)
class Catalogue:
    categories: List[Category]
    url: str = ""

class TriState(str, Enum):
    CHECKED = "checked"
    INDETERMINATE = "indeterminate"
    UNCHECKED = "unchecked"

@dataclass(frozen=True)
class Selection:
    """Authoritative selection as published by the resolver."""
    selected: FrozenSet[str] = frozenset()
    required: FrozenSet[str] = frozenset()

    @classmethod
    def of(cls, selected: Iterable[str] = (), required: Iterable[str] = ()) -> "Selection":
        return cls(frozenset(selected), frozenset(required))

@dataclass
class SelectionStore:
    selected: Set[str] = field(default_factory=set)
    required: Set[str] = field(default_factory=set)
    expanded: Set[str] = field(default_factory=set)

    def chosen(self) -> Set[str]:
        return self.selected | self.required

    def snapshot(self) -> Selection:
        return Selection.of(self.selected, self.required)

    def validate(self, known: Set[str]) -> None:
        stale_sel = self.selected - known
        stale_req = self.required - known
        if stale_sel or stale_req:
            raise InvariantViolation(stale_sel, stale_req)

    def prune(self, known: Set[str]) -> None:
        self.selected &= known
        self.required &= known
