from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from textual.app import App, ComposeResult
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Header, Static, TabbedContent, TabPane, Tree

from .catalogue import readable_byte_size
from .config import AppPaths, load_config
from .coordinator import SelectionCoordinator, ToggleRequest, ToggleStage
from .errors import CatalogueError, ResolverCommunicationError
from .history import log_history, parse_history
from .modals import ConfirmModal, OutputModal
from .models import Catalogue
from .resolver import LocalResolver, Resolver
from .tabs import components_tab, help_tab, history_tab, summary_tab

logger = logging.getLogger(__name__)

STAGE_MESSAGES = {
    ToggleStage.DONE: "{action}ed {name}",
    ToggleStage.FAILED: "{action} {name} failed",
    ToggleStage.ABORTED: "Kept {name}",
    ToggleStage.REJECTED: "{name} is still being processed",
    ToggleStage.UNCHANGED: "{name}: nothing to change",
    ToggleStage.DROPPED: "{name} no longer exists",
}

class ComponentPickerApp(App):
    CSS = """
    Screen { background: $background; }
    Header { background: $panel; }
    Footer { background: $panel; }

    #comp_row { height: 1fr; }
    #comp_tree { width: 3fr; height: 1fr; border: round $surface; background: $panel; margin: 0 1 1 1; }
    #comp_info { width: 2fr; min-width: 36; height: 1fr; overflow: auto; }

    #sum_row { height: 1fr; }
    #sum_tbl { width: 4fr; }
    #sum_totals { width: 2fr; min-width: 36; }

    #statusbar { height: auto; border: round $primary; background: $boost; padding: 0 2; margin: 0 1 1 1; }

    .topcard { height: auto; border: round $primary; background: $panel; padding: 1 2; margin: 0 1 1 1; }
    .infobox { border: round $primary; background: $boost; padding: 1 2; margin: 0 1 1 1; }
    .toolbar { height: auto; padding: 0 1; margin: 0 1 1 1; }
    .toolbar Button { margin: 0 1 0 0; }

    DataTable { height: 1fr; border: round $surface; background: $panel; margin: 0 1 1 1; }

    #modal { width: 80%; max-width: 120; height: auto; padding: 1 2; border: round $primary; background: $panel; }
    #modal Horizontal { height: auto; margin: 1 0 0 0; }
    """

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("f1", "go_help", "Help"),
        ("f2", "go_components", "Components"),
        ("f3", "go_summary", "Summary"),
        ("f4", "go_history", "History"),
        ("r", "resync", "Resync"),
        ("x", "export", "Export"),
    ]

    def __init__(
        self,
        data_path: Optional[str] = None,
        resolver: Optional[Resolver] = None,
        paths: Optional[AppPaths] = None,
    ):
        super().__init__()
        self.data_path = data_path
        self.cfg = load_config(data_path)
        self.paths = paths or AppPaths.default()
        self.fatal_error: Optional[str] = None

        if resolver is None:
            try:
                resolver = LocalResolver.from_config(self.cfg)
            except CatalogueError as e:
                logger.error("cannot load catalogue from %s: %s", data_path, e)
                self.fatal_error = f"Cannot load the component catalogue: {e}"
                resolver = LocalResolver(Catalogue(categories=[]))
        self.resolver = resolver
        self.coordinator = SelectionCoordinator(
            resolver,
            confirm=self.ask_confirm,
            notify=self.show_error,
            on_change=self.on_selection_changed,
        )

        self.history: List[Dict[str, Any]] = []
        self.last_action = "Ready."
        self._built = False

    # ---------- modal helpers ----------
    async def push_result(self, screen) -> Any:
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[Any] = loop.create_future()

        def _cb(result: Any) -> None:
            if not fut.done():
                fut.set_result(result)

        self.push_screen(screen, callback=_cb)
        return await fut

    async def ask_confirm(self, body: str) -> bool:
        return bool(await self.push_result(ConfirmModal("Unselect components?", body)))

    def show_output(self, title: str, body: str) -> None:
        self.push_screen(OutputModal(title, body))

    def show_error(self, body: str) -> None:
        self.show_output("Error", body)

    # ---------- basics ----------
    def set_last(self, msg: str) -> None:
        self.last_action = msg
        self.update_status()

    def update_status(self) -> None:
        c = self.coordinator
        dl, inst = c.totals()
        s = (
            f"Selected: {len(c.selected)}   "
            f"Required: {len(c.required)}   "
            f"Download: {readable_byte_size(dl)}   "
            f"Install: {readable_byte_size(inst)}   "
            f"Last: {self.last_action}"
        )
        try:
            self.query_one("#statusbar", Static).update(s)
        except NoMatches:
            pass

    def mount_topcard(self, pane: TabPane, title: str, subtitle: str = "", keys: str = "") -> None:
        lines = [f"[b]{title}[/b]"]
        if subtitle:
            lines.append(f"[dim]{subtitle}[/dim]")
        if keys:
            lines.append(f"[dim]{keys}[/dim]")
        pane.mount(Static("\n".join(lines), classes="topcard"))

    @staticmethod
    def safe_cursor_row(tbl: DataTable) -> None:
        tbl.cursor_type = "row"

    # ---------- app layout ----------
    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        yield Static("", id="statusbar")
        with TabbedContent(id="tabs"):
            yield TabPane("Components", id="tab_components")
            yield TabPane("Summary", id="tab_summary")
            yield TabPane("History", id="tab_history")
            yield TabPane("Help", id="tab_help")
        yield Footer()

    async def on_mount(self) -> None:
        ui = self.cfg.get("ui", {}) or {}
        self.title = str(ui.get("title", "Component Picker"))
        self.sub_title = str(ui.get("tagline", ""))

        self.paths.ensure()
        self.history = parse_history(self.paths.history_log)

        try:
            await self.coordinator.start()
        except (CatalogueError, ResolverCommunicationError) as e:
            logger.error("catalogue fetch failed: %s", e)
            self.fatal_error = f"Cannot load the component catalogue: {e}"

        self.build_all()
        self._built = True
        self.query_one("#tabs", TabbedContent).active = "tab_components"
        self.update_status()
        self.call_after_refresh(components_tab.focus_tree, self)

        if self.fatal_error:
            self.show_output("Fatal error", self.fatal_error)

    def on_unmount(self) -> None:
        self.coordinator.close()

    def clear_pane(self, pane_id: str) -> TabPane:
        pane = self.query_one(f"#{pane_id}", TabPane)
        pane.remove_children()
        return pane

    def build_all(self) -> None:
        components_tab.build(self, self.clear_pane("tab_components"))
        summary_tab.build(self, self.clear_pane("tab_summary"))
        history_tab.build(self, self.clear_pane("tab_history"))
        help_tab.build(self, self.clear_pane("tab_help"))

    def on_selection_changed(self) -> None:
        if not self._built:
            return
        components_tab.refresh(self)
        summary_tab.refresh(self)
        self.update_status()

    # ---------- toggling ----------
    def request_toggle(self, cid: str) -> None:
        if self.coordinator.is_busy(cid):
            self.set_last(f"{self.coordinator.display_name(cid)} is still being processed")
            return
        self.run_worker(self._run_toggle(cid), group="toggle")

    async def _run_toggle(self, cid: str) -> ToggleRequest:
        name = self.coordinator.display_name(cid)
        req = await self.coordinator.toggle(cid)
        logger.info("%s %s -> %s", req.action, cid, req.stage.value)

        if req.stage not in (ToggleStage.UNCHANGED, ToggleStage.DROPPED):
            details = [f"dependant: {self.coordinator.display_name(d)}" for d in req.dependants]
            if req.error is not None:
                details.append(f"error: {req.error}")
            log_history(self.paths.history_log, req.action, cid, req.stage.value, details)
            self.history = parse_history(self.paths.history_log)
            history_tab.refresh(self)

        msg = STAGE_MESSAGES.get(req.stage, "{action} {name}")
        self.set_last(msg.format(action=req.action.capitalize(), name=name))
        self.on_selection_changed()
        return req

    # ---------- navigation actions ----------
    def _go(self, tab_id: str) -> None:
        self.query_one("#tabs", TabbedContent).active = tab_id

    def action_go_help(self) -> None: self._go("tab_help")
    def action_go_components(self) -> None: self._go("tab_components")
    def action_go_summary(self) -> None: self._go("tab_summary")
    def action_go_history(self) -> None: self._go("tab_history")

    async def action_resync(self) -> None:
        try:
            await self.resolver.request_sync()
        except ResolverCommunicationError as e:
            self.show_error(str(e))
            return
        self.set_last("Resynced with resolver")

    async def action_export(self) -> None:
        await summary_tab.export(self)

    # ---------- global dispatch ----------
    def on_component_tree_toggle_requested(self, event: components_tab.ComponentTree.ToggleRequested) -> None:
        self.request_toggle(event.cid)

    def on_tree_node_expanded(self, event: Tree.NodeExpanded) -> None:
        components_tab.on_expanded(self, event.node, True)

    def on_tree_node_collapsed(self, event: Tree.NodeCollapsed) -> None:
        components_tab.on_expanded(self, event.node, False)

    def on_tree_node_highlighted(self, event: Tree.NodeHighlighted) -> None:
        components_tab.on_highlighted(self, event.node)

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        table_id = getattr(event.data_table, "id", "")
        if summary_tab.on_row_highlighted(self, event, table_id): return
        if history_tab.on_row_highlighted(self, event, table_id): return

    async def on_button_pressed(self, event) -> None:
        bid = event.button.id
        if await components_tab.on_button(self, bid): return
        if await summary_tab.on_button(self, bid): return
        if await history_tab.on_button(self, bid): return
