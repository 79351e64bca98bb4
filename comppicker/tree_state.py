"""Derived checkbox state for the catalogue tree.

Everything here is a pure function of (catalogue, selected, required). The
result is recomputed from scratch on every change and never patched.
"""
from __future__ import annotations
from typing import AbstractSet, Dict, Iterable, NamedTuple

from .models import Catalogue, Category, Component, TriState

def category_state(
    category: Category,
    chosen: AbstractSet[str],
    out: Dict[str, TriState],
) -> TriState:
    """Compute the state of `category`, recording it and every descendant in `out`."""
    total = 0
    full = 0
    contributing = 0

    for sub in category.subcategories:
        s = category_state(sub, chosen, out)
        total += 1
        if s is TriState.CHECKED:
            full += 1
        if s is not TriState.UNCHECKED:
            contributing += 1

    for comp in category.components:
        total += 1
        if comp.id in chosen:
            full += 1
            contributing += 1

    if total == 0 or contributing == 0:
        state = TriState.UNCHECKED
    elif full == total:
        state = TriState.CHECKED
    else:
        state = TriState.INDETERMINATE
    out[category.id] = state
    return state

def compute_tree_states(
    categories: Iterable[Category],
    selected: AbstractSet[str],
    required: AbstractSet[str] = frozenset(),
) -> Dict[str, TriState]:
    chosen = set(selected) | set(required)
    out: Dict[str, TriState] = {}
    for c in categories:
        category_state(c, chosen, out)
    return out

def catalogue_states(catalogue: Catalogue, selected, required=frozenset()) -> Dict[str, TriState]:
    return compute_tree_states(catalogue.categories, selected, required)

class ComponentView(NamedTuple):
    checked: bool
    disabled: bool

def component_view(comp: Component, selected: AbstractSet[str], required: AbstractSet[str]) -> ComponentView:
    # required members are always shown checked; a flagged component can be
    # selected but not unselected
    in_required = comp.id in required
    checked = in_required or comp.id in selected
    return ComponentView(
        checked=checked,
        disabled=in_required or (comp.required and checked),
    )
