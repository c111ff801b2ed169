from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Iterator

from rich.console import Console
from rich.live import Live
from rich.text import Text

from tasktui.config import ConfigError, ProjectConfig, load_project
from tasktui.engine import CLEANUP_TIMEOUT, Engine, RunState

from .render import render, status_footer

IS_WINDOWS = sys.platform == "win32"

if not IS_WINDOWS:
    import termios
    import tty

logger = logging.getLogger(__name__)

KEY_ACTIONS = {
    "\x1b[A": "up",
    "\x1bOA": "up",
    "k": "up",
    "\x1b[B": "down",
    "\x1bOB": "down",
    "j": "down",
    "m": "help",
    "q": "quit",
    "\x03": "quit",
}


def parse_keys(data: str) -> list[str]:
    """Translate raw terminal input into actions, skipping unknown bytes."""
    actions: list[str] = []
    i = 0
    while i < len(data):
        for seq in sorted(KEY_ACTIONS, key=len, reverse=True):
            if data.startswith(seq, i):
                actions.append(KEY_ACTIONS[seq])
                i += len(seq)
                break
        else:
            i += 1
    return actions


class TaskApp:
    """Interactive front end: a rich Live screen driven by engine notifications."""

    def __init__(
        self,
        config_path: str | Path,
        *,
        cleanup_timeout: float = CLEANUP_TIMEOUT,
        console: Console | None = None,
    ):
        self.config_path = config_path
        self.console = console or Console()
        self.state = RunState()
        self.engine = Engine(
            self.state,
            on_update=self.refresh,
            on_error=self._show_error,
            cleanup_timeout=cleanup_timeout,
        )
        self.show_help = False
        self.live: Live | None = None
        self._quitting: asyncio.Task[None] | None = None

    def view(self):
        return render(self.state, height=self.console.size.height, show_help=self.show_help)

    def refresh(self) -> None:
        if self.live is not None:
            self.live.update(self.view(), refresh=True)

    def _show_error(self, message: str) -> None:
        logger.error("%s", message)
        self.refresh()

    async def load(self) -> None:
        if self.state.stopping:
            return
        try:
            project = load_project(self.config_path)
        except ConfigError as exc:
            self.engine.report_error(str(exc))
            self.refresh()
            return
        await self.engine.initialize(project)

    def handle(self, action: str) -> None:
        match action:
            case "up":
                self.engine.move(-1)
            case "down":
                self.engine.move(1)
            case "help":
                self.show_help = not self.show_help
                self.refresh()
            case "quit":
                self.request_quit()

    def request_quit(self) -> None:
        if self._quitting is None:
            self._quitting = asyncio.get_running_loop().create_task(self.engine.quit())
            self._quitting.add_done_callback(self._quit_done)

    def _quit_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Shutdown failed", exc_info=exc)

    def _reload(self) -> None:
        logger.info("Reloading %s", self.config_path)
        asyncio.get_running_loop().create_task(self.load())

    def _on_stdin(self, fd: int) -> None:
        data = os.read(fd, 64).decode("utf-8", errors="ignore")
        for action in parse_keys(data):
            self.handle(action)

    @contextlib.contextmanager
    def _key_input(self, loop: asyncio.AbstractEventLoop) -> Iterator[None]:
        if IS_WINDOWS or not sys.stdin.isatty():
            yield
            return

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        loop.add_reader(fd, self._on_stdin, fd)
        try:
            yield
        finally:
            loop.remove_reader(fd)
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        if IS_WINDOWS:
            return
        loop.add_signal_handler(signal.SIGINT, self.request_quit)
        loop.add_signal_handler(signal.SIGTERM, self.request_quit)
        loop.add_signal_handler(signal.SIGHUP, self._reload)

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)

        with Live(
            self.view(), console=self.console, screen=True, auto_refresh=False
        ) as live:
            self.live = live
            with self._key_input(loop):
                await self.load()
                await self.engine.stopped.wait()
            self.live = None

        return 0


def print_summary(state: RunState, console: Console) -> None:
    """Teardown report in the style of `OK name` / `FAIL name` lines."""
    for name in state.task_order:
        buffer = state.buffers[name]
        label = "FAIL" if buffer.errored else "OK"
        console.rule(f"{label} {name}", style="red" if buffer.errored else "green")
        console.print(Text.from_ansi(buffer.text + status_footer(buffer)))

    for item in state.queue:
        console.rule(f"BLOCKED {item.name}", style="yellow")
        console.print(Text(f"Waiting for: {', '.join(item.remaining_deps)}"))


async def run_headless(
    project: ProjectConfig,
    *,
    console: Console,
    cleanup_timeout: float = CLEANUP_TIMEOUT,
) -> int:
    """Run every task without a live screen and report once nothing is left running."""
    engine = Engine(
        on_error=lambda message: console.print(Text(f"Error: {message}", style="red")),
        cleanup_timeout=cleanup_timeout,
    )
    await engine.initialize(project)
    try:
        await engine.wait_until_idle()
    except asyncio.CancelledError:
        await engine.quit()
        raise

    print_summary(engine.state, console)
    failed = any(b.errored for b in engine.state.buffers.values())
    return 1 if failed or engine.state.queue else 0
