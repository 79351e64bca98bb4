from __future__ import annotations
from textual.widgets import Markdown

def build(app, pane):
    app.mount_topcard(pane, "Help", "Keys & Workflow", "")
    pane.mount(Markdown(
        "## Keys\n"
        "- `F1..F4` Tabs\n"
        "- `Space` Toggle component/category\n"
        "- `Enter` Expand/collapse category\n"
        "- `r` Resync with resolver\n"
        "- `x` Export selection\n"
        "\n"
        "## Checkboxes\n"
        "- `[x]` selected, `[ ]` not selected\n"
        "- `[-]` category partially selected\n"
        "- `[#]` required, cannot be unselected\n"
        "\n"
        "Unselecting a component that others depend on asks before removing them too.\n"
    , classes="infobox"))
