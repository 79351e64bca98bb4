from __future__ import annotations
from typing import Dict, Optional

from rich.markup import escape
from rich.text import Text
from textual.binding import Binding
from textual.containers import Horizontal
from textual.css.query import NoMatches
from textual.message import Message
from textual.widgets import Button, Static, Tree
from textual.widgets.tree import TreeNode

from ..catalogue import collect_components, readable_byte_size
from ..models import Category, Component, TriState

BOXES = {
    TriState.CHECKED: "[x]",
    TriState.INDETERMINATE: "[-]",
    TriState.UNCHECKED: "[ ]",
}

class ComponentTree(Tree[str]):
    """Catalogue tree. Space toggles selection, enter expands/collapses."""

    BINDINGS = [
        Binding("space", "toggle_selection", "Toggle"),
    ]

    class ToggleRequested(Message):
        def __init__(self, cid: str) -> None:
            super().__init__()
            self.cid = cid

    def action_toggle_selection(self) -> None:
        node = self.cursor_node
        if node is None or node.data is None:
            return
        self.post_message(self.ToggleRequested(node.data))

def build(app, pane):
    app.mount_topcard(
        pane,
        "Components",
        app.cfg.get("ui", {}).get("tagline", ""),
        "Space Toggle · Enter Expand · r Resync · x Export",
    )

    tree = ComponentTree("Catalogue", id="comp_tree")
    tree.show_root = False
    app._tree_nodes = {}
    app._tree_generation = -1
    _populate(app, tree)

    info = Static("", id="comp_info", classes="infobox")
    pane.mount(Horizontal(tree, info, id="comp_row"))
    pane.mount(
        Horizontal(
            Button("Expand all", id="btn_comp_expand", variant="primary"),
            Button("Collapse all", id="btn_comp_collapse", variant="primary"),
            Button("Resync (r)", id="btn_comp_resync", variant="warning"),
            classes="toolbar",
        )
    )
    _info(app, None)

def focus_tree(app) -> None:
    try:
        app.query_one("#comp_tree", ComponentTree).focus()
    except NoMatches:
        pass

def _category_label(app, cat: Category, states: Dict[str, TriState]) -> Text:
    state = states.get(cat.id, TriState.UNCHECKED)
    busy = " …" if app.coordinator.is_busy(cat.id) else ""
    return Text.assemble(f"{BOXES[state]} ", (cat.name, "bold"), (busy, "yellow"))

def _component_label(app, comp: Component) -> Text:
    view = app.coordinator.component_view(comp.id)
    if view.disabled and view.checked:
        box = "[#]"
    else:
        box = "[x]" if view.checked else "[ ]"
    busy = " …" if app.coordinator.is_busy(comp.id) else ""
    return Text.assemble(
        f"{box} ",
        comp.name,
        (f"  {readable_byte_size(comp.install_size)}", "dim"),
        ("  installed", "green") if comp.installed else "",
        (busy, "yellow"),
    )

def _add_category(app, parent: TreeNode, cat: Category, states: Dict[str, TriState]) -> None:
    node = parent.add(
        _category_label(app, cat, states),
        data=cat.id,
        expand=cat.id in app.coordinator.expanded,
    )
    app._tree_nodes[cat.id] = node
    for sub in cat.subcategories:
        _add_category(app, node, sub, states)
    for comp in cat.components:
        app._tree_nodes[comp.id] = node.add_leaf(_component_label(app, comp), data=comp.id)

def _populate(app, tree: ComponentTree) -> None:
    app._tree_nodes = {}
    app._dep_cache = {}
    states = app.coordinator.states()
    for cat in app.coordinator.catalogue.categories:
        _add_category(app, tree.root, cat, states)
    app._tree_generation = app.coordinator.generation

def refresh(app):
    try:
        tree = app.query_one("#comp_tree", ComponentTree)
    except NoMatches:
        return
    if app._tree_generation != app.coordinator.generation:
        tree.clear()
        _populate(app, tree)
        _info(app, None)
        return

    states = app.coordinator.states()
    for cid, node in app._tree_nodes.items():
        cat = app.coordinator.category(cid)
        if cat is not None:
            node.set_label(_category_label(app, cat, states))
            continue
        comp = app.coordinator.component(cid)
        if comp is not None:
            node.set_label(_component_label(app, comp))

    node = tree.cursor_node
    if node is not None:
        _info(app, node.data)

def _info(app, cid: Optional[str]):
    try:
        box = app.query_one("#comp_info", Static)
    except NoMatches:
        return
    c = app.coordinator
    if not cid:
        box.update("[b]Info[/b]\n\nSpace Toggle · Enter Expand")
        return

    comp = c.component(cid)
    if comp is not None:
        view = c.component_view(cid)
        deps = escape(", ".join(c.display_name(d) for d in comp.depends_on)) or "-"
        lines = [
            f"[b]{escape(comp.name)}[/b]",
            f"[dim]{escape(comp.id)}[/dim]",
            "",
            escape(comp.description) or "[dim](no description)[/dim]",
            "",
            f"[b]Download[/b]: {readable_byte_size(comp.download_size)}",
            f"[b]Install[/b]: {readable_byte_size(comp.install_size)}",
            f"[b]Depends on[/b]: {deps}",
            f"[b]Pulls in[/b]: {_pulls_in(app, cid)}",
            f"[b]Selected[/b]: {'yes' if view.checked else 'no'}",
        ]
        if view.disabled:
            lines.append("[b]Required[/b]: yes (cannot be unselected)")
        if comp.installed:
            lines.append("[green]Installed[/green]")
        if comp.date_modified:
            lines.append(f"[dim]Modified {comp.date_modified}[/dim]")
        box.update("\n".join(lines))
        return

    cat = c.category(cid)
    if cat is not None:
        state = c.states().get(cid, TriState.UNCHECKED)
        members = collect_components(cat)
        chosen = [m for m in members if m.id in c.selected or m.id in c.required]
        box.update(
            f"[b]{escape(cat.name)}[/b]\n[dim]{escape(cat.id)}[/dim]\n\n"
            f"{escape(cat.description) or '[dim](no description)[/dim]'}\n\n"
            f"[b]State[/b]: {state.value}\n"
            f"[b]Components[/b]: {len(chosen)}/{len(members)} selected"
        )

def _pulls_in(app, cid: str) -> str:
    deps = app._dep_cache.get(cid)
    if deps is None:
        return "[dim]…[/dim]"
    return escape(", ".join(app.coordinator.display_name(d) for d in deps)) or "-"

async def load_dependencies(app, cid: str) -> None:
    app._dep_cache[cid] = await app.coordinator.dependencies(cid)
    try:
        tree = app.query_one("#comp_tree", ComponentTree)
    except NoMatches:
        return
    node = tree.cursor_node
    if node is not None and node.data == cid:
        _info(app, cid)

def on_highlighted(app, node: TreeNode) -> None:
    cid = node.data
    _info(app, cid)
    if cid and app.coordinator.component(cid) is not None and cid not in app._dep_cache:
        app.run_worker(load_dependencies(app, cid), group="deps", exclusive=True)

def on_expanded(app, node: TreeNode, expanded: bool) -> None:
    if node.data is not None:
        app.coordinator.set_expanded(node.data, expanded)

async def on_button(app, bid: str) -> bool:
    if bid == "btn_comp_expand":
        for cat in app.coordinator.catalogue.categories:
            node = app._tree_nodes.get(cat.id)
            if node is not None:
                node.expand_all()
        app.set_last("Expanded all")
        return True
    if bid == "btn_comp_collapse":
        for cat in app.coordinator.catalogue.categories:
            node = app._tree_nodes.get(cat.id)
            if node is not None:
                node.collapse_all()
        app.set_last("Collapsed all")
        return True
    if bid == "btn_comp_resync":
        await app.action_resync()
        return True
    return False
