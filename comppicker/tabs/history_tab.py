from __future__ import annotations

from textual.containers import Container, Horizontal
from textual.css.query import NoMatches
from textual.widgets import Button, DataTable, Static

from ..history import parse_history

def build(app, pane):
    app.mount_topcard(pane, "History", "Logged select/unselect requests", "")
    row = Horizontal(id="hist_row")
    pane.mount(row)

    tbl = DataTable(id="hist_tbl")
    app.safe_cursor_row(tbl)
    tbl.add_columns("ts", "action", "target", "stage")

    row.mount(Container(tbl, id="hist_left"))
    row.mount(Static("", id="hist_info", classes="infobox"))

    pane.mount(
        Horizontal(
            Button("Refresh", id="btn_hist_refresh", variant="primary"),
            classes="toolbar",
        )
    )

    refresh(app)

def refresh(app):
    try:
        tbl = app.query_one("#hist_tbl", DataTable)
    except NoMatches:
        return
    tbl.clear()
    for e in app.history[:500]:
        tbl.add_row(str(e.get("ts", "")), str(e.get("action", "")), str(e.get("target", ""))[:60], str(e.get("stage", "")))

def on_row_highlighted(app, event, table_id: str) -> bool:
    if table_id != "hist_tbl":
        return False
    idx = event.cursor_row
    if idx < 0 or idx >= len(app.history):
        return True
    e = app.history[idx]
    details = "\n".join(e.get("details") or [])
    body = f"{e.get('ts','')}\n{e.get('action','')} {e.get('target','')}\nstage={e.get('stage','')}\n\n{details}"
    app.query_one("#hist_info", Static).update(body[:15000])
    return True

async def on_button(app, bid: str) -> bool:
    if bid == "btn_hist_refresh":
        app.history = parse_history(app.paths.history_log)
        refresh(app)
        app.set_last("History refreshed")
        return True
    return False
