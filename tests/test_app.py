from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

import pytest
from rich.console import Console

from tasktui.ui import TaskApp


def _app(path: Path) -> TaskApp:
    return TaskApp(path, cleanup_timeout=5, console=Console(width=80, height=24))


def test_config_error_is_kept_for_display(tmp_path: Path) -> None:
    app = _app(tmp_path / "missing.json")

    asyncio.run(app.load())

    assert app.state.last_error is not None
    assert "not found" in app.state.last_error
    assert app.state.task_order == []


def test_keys_move_selection_and_quit(tmp_path: Path) -> None:
    cfg = tmp_path / "tasktui.config.json"
    cfg.write_text(
        json.dumps({"tasks": {"a": {"command": "true"}, "b": {"command": "true"}}}),
        encoding="utf-8",
    )
    app = _app(cfg)

    async def main() -> None:
        await app.load()
        await app.engine.wait_until_idle()
        first = app.state.selected_task
        app.handle("down")
        assert app.state.selected_task != first
        app.handle("up")
        assert app.state.selected_task == first

        app.handle("help")
        assert app.show_help

        app.handle("quit")
        await app.engine.stopped.wait()

    asyncio.run(main())


def test_failed_shutdown_is_logged(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    app = _app(tmp_path / "missing.json")

    async def broken_cleanup() -> list[str]:
        raise RuntimeError("kill failed")

    app.engine.cleanup = broken_cleanup

    async def main() -> None:
        app.request_quit()
        await app.engine.stopped.wait()
        for _ in range(3):
            await asyncio.sleep(0)

    with caplog.at_level(logging.ERROR, logger="tasktui"):
        asyncio.run(main())

    assert "Shutdown failed" in caplog.text
    assert "kill failed" in caplog.text
