"""Builds rich renderables from a RunState.

Nothing here mutates the state; the live app calls `render` after every
engine notification and hands the result to `rich.live.Live`.
"""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text

from tasktui.engine.types import RunState, TaskBuffer

SIDEBAR_WIDTH = 25

KEYBINDS = [
    "m            - Toggle this help menu",
    "↑ or k       - Select previous task",
    "↓ or j       - Select next task",
    "Ctrl-c or q  - Quit",
]


def _entry(name: str, style: str, selected: bool, suffix: str = "") -> Text:
    line = Text(name, style="bold yellow" if selected else style)
    if suffix:
        line.append(f" {suffix}", style=style)
    return line


def task_list(state: RunState) -> Text:
    """Sidebar contents: running, queued and completed sections in display order."""
    running = state.running_tasks()
    queued = state.queued_tasks()
    completed = state.completed_tasks()
    lines: list[Text] = []

    if running:
        lines.append(Text(f"▶ Running ({len(running)})", style="grey50"))
        for name in running:
            lines.append(_entry(name, "white", name == state.selected_task))
        lines.append(Text())

    if queued:
        lines.append(Text(f"⏱ Queued ({len(queued)})", style="grey50"))
        for name in queued:
            lines.append(_entry(name, "grey50", name == state.selected_task))
        lines.append(Text())

    if completed:
        lines.append(Text(f"■ Completed ({len(completed)})", style="grey50"))
        for name in completed:
            errored = state.buffers[name].errored
            lines.append(
                _entry(
                    name,
                    "red" if errored else "grey50",
                    name == state.selected_task,
                    "✗" if errored else "✓",
                )
            )

    return Text("\n").join(lines)


def status_footer(buffer: TaskBuffer) -> str:
    if buffer.running:
        return ""
    if buffer.signal is not None:
        return f"\n----\nDone (killed by signal {buffer.signal})"
    if buffer.exit_code is None:
        return "\n----\nDone (not started)"
    return f"\n----\nDone (exit code: {buffer.exit_code})"


def task_output(state: RunState, height: int | None = None) -> Text:
    """Selected task's output, clipped to its last `height` lines."""
    name = state.selected_task
    if not name:
        return Text()

    buffer = state.buffers.get(name)
    if buffer is None:
        waiting = next((q.remaining_deps for q in state.queue if q.name == name), [])
        return Text(f"Waiting for: {', '.join(waiting)}", style="grey50")

    text = Text.from_ansi(buffer.text + status_footer(buffer))
    if height is None:
        return text

    lines = text.split("\n", allow_blank=True)
    if len(lines) <= height:
        return text
    return Text("\n").join(lines[-height:])


def render(state: RunState, *, height: int = 24, show_help: bool = False) -> RenderableType:
    body: list[RenderableType] = []
    output_height = max(height - 1, 1)

    if state.last_error:
        body.append(
            Panel(Text(f"Error: {state.last_error}", style="red"), border_style="red")
        )
        output_height = max(output_height - 3, 1)

    if show_help:
        body.append(Panel(Text("\n".join(KEYBINDS)), title="Keybinds"))
        output_height = max(output_height - len(KEYBINDS) - 2, 1)

    body.append(Text(state.selected_task, style="grey50"))
    body.append(task_output(state, output_height - 1))

    sidebar = Group(
        task_list(state),
        Text("\n↑↓ - Navigate\nm - More binds", style="grey50"),
    )

    layout = Layout()
    layout.split_row(
        Layout(Panel(sidebar, border_style="white"), name="sidebar", size=SIDEBAR_WIDTH),
        Layout(Group(*body), name="output"),
    )
    return layout
