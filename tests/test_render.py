from __future__ import annotations

from rich.console import Console

from tasktui.config.types import TaskConfig
from tasktui.engine.types import QueueItem, RunState, TaskBuffer
from tasktui.ui import parse_keys, render, task_list, task_output


def _state() -> RunState:
    state = RunState()
    state.task_order = ["web", "lint", "db"]
    state.buffers = {
        "web": TaskBuffer(running=True, text="listening on :8000\n"),
        "lint": TaskBuffer(running=False, errored=True, text="E501\n", exit_code=1),
        "db": TaskBuffer(running=False, text="ready\n", exit_code=0),
    }
    state.queue = [QueueItem("e2e", TaskConfig("e2e", "pytest"), ["web"])]
    state.selected_task = "web"
    return state


def _plain(renderable, width: int = 100, height: int = 20) -> str:
    console = Console(width=width, height=height, record=True, color_system=None)
    console.print(renderable)
    return console.export_text()


def test_task_list_sections_follow_display_order() -> None:
    lines = task_list(_state()).plain.splitlines()

    assert lines == [
        "▶ Running (1)",
        "web",
        "",
        "⏱ Queued (1)",
        "e2e",
        "",
        "■ Completed (2)",
        "lint ✗",
        "db ✓",
    ]


def test_task_list_empty_state() -> None:
    assert task_list(RunState()).plain == ""


def test_output_of_finished_task_has_exit_footer() -> None:
    state = _state()
    state.selected_task = "lint"

    assert task_output(state).plain == "E501\n\n----\nDone (exit code: 1)"


def test_output_of_signaled_task_names_the_signal() -> None:
    state = _state()
    state.buffers["web"] = TaskBuffer(running=False, errored=True, text="bye\n", signal=15)

    assert task_output(state).plain == "bye\n\n----\nDone (killed by signal 15)"


def test_output_is_clipped_to_last_lines() -> None:
    state = _state()
    state.buffers["web"].text = "".join(f"line {i}\n" for i in range(50))

    assert task_output(state, height=3).plain.splitlines() == ["line 47", "line 48", "line 49"]


def test_output_strips_ansi_escape_codes() -> None:
    state = _state()
    state.buffers["web"].text = "\x1b[32mgreen\x1b[0m"

    assert task_output(state).plain == "green"


def test_queued_selection_shows_what_it_waits_for() -> None:
    state = _state()
    state.selected_task = "e2e"

    assert task_output(state).plain == "Waiting for: web"


def test_render_shows_error_and_help() -> None:
    state = _state()
    state.last_error = "Config file not found: /nope.json"

    text = _plain(render(state, height=20, show_help=True))

    assert "Error: Config file not found" in text
    assert "Toggle this help menu" in text
    assert "listening on :8000" in text


def test_parse_keys() -> None:
    assert parse_keys("\x1b[A\x1b[Bjkxq") == ["up", "down", "down", "up", "quit"]
    assert parse_keys("m\x03") == ["help", "quit"]
    assert parse_keys("") == []
