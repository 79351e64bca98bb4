from __future__ import annotations

import logging

from rich.markup import escape
from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import Button, DataTable, Static

from ..catalogue import readable_byte_size
from ..storage import export_selection

logger = logging.getLogger(__name__)

COLUMNS = ("Req", "Component", "Category", "Download", "Install")

def build(app, pane):
    app.mount_topcard(pane, "Summary", "Everything that will be installed", "x Export selection")
    row = Horizontal(id="sum_row")
    pane.mount(row)

    tbl = DataTable(id="sum_tbl")
    app.safe_cursor_row(tbl)
    tbl.add_columns(*COLUMNS)

    row.mount(Container(tbl, id="sum_left"))
    row.mount(Static("", id="sum_totals", classes="infobox"))

    pane.mount(
        Horizontal(
            Button("Export selection (x)", id="btn_sum_export", variant="success"),
            classes="toolbar",
        )
    )
    refresh(app)

def _owners(app):
    owners = {}

    def walk(cat, path):
        path = path + [cat.name]
        for comp in cat.components:
            owners[comp.id] = " / ".join(path)
        for sub in cat.subcategories:
            walk(sub, path)

    for cat in app.coordinator.catalogue.categories:
        walk(cat, [])
    return owners

def refresh(app):
    try:
        tbl = app.query_one("#sum_tbl", DataTable)
        totals = app.query_one("#sum_totals", Static)
    except NoMatches:
        return
    c = app.coordinator
    tbl.clear()
    owners = _owners(app)
    chosen = sorted(c.selected | c.required)
    for cid in chosen:
        comp = c.component(cid)
        if comp is None:
            continue
        req = "✔" if cid in c.required else ""
        tbl.add_row(
            req, comp.name, owners.get(cid, ""),
            readable_byte_size(comp.download_size), readable_byte_size(comp.install_size),
            key=cid,
        )

    dl, inst = c.totals()
    url = c.catalogue.url or "-"
    totals.update(
        f"[b]Components[/b]: {len(chosen)}\n"
        f"[b]Required[/b]: {len(c.required)}\n\n"
        f"[b]Download[/b]: {readable_byte_size(dl)}\n"
        f"[b]Install[/b]: {readable_byte_size(inst)}\n\n"
        f"[dim]Source: {escape(url)}[/dim]"
    )

def on_row_highlighted(app, event, table_id: str) -> bool:
    if table_id != "sum_tbl":
        return False
    tbl = event.data_table
    if not tbl.row_count:
        return True
    row = tbl.get_row_at(event.cursor_row)
    app.set_last(f"{row[1]}: {row[4]}")
    return True

async def export(app) -> None:
    c = app.coordinator
    if not (c.selected or c.required):
        app.set_last("Nothing selected")
        return
    try:
        path = export_selection(app.paths.exports_dir, c.catalogue, c.handoff())
    except OSError as e:
        logger.error("export failed: %s", e)
        app.show_error(f"Export failed: {e}")
        return
    logger.info("selection exported to %s", path)
    app.set_last(f"Exported → {path}")

async def on_button(app, bid: str) -> bool:
    if bid == "btn_sum_export":
        await export(app)
        return True
    return False
