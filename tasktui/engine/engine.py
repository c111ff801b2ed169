from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from tasktui.config.types import ProjectConfig, TaskConfig

from . import queue, shutdown
from .gate import ensure_dependencies
from .supervisor import Supervisor, launch
from .types import EngineError, QueueItem, RunState

logger = logging.getLogger(__name__)


def _noop(*_args: object) -> None:
    return None


class Engine:
    """Runs the tasks of a ProjectConfig and keeps a RunState current.

    `on_update` is called after every state-affecting event, `on_error` with
    a message for config and launch failures. Both must not mutate the state.
    """

    def __init__(
        self,
        state: RunState | None = None,
        *,
        on_update: Callable[[], None] = _noop,
        on_error: Callable[[str], None] = _noop,
        cleanup_timeout: float = shutdown.CLEANUP_TIMEOUT,
        launcher: Callable[[TaskConfig], Awaitable[asyncio.subprocess.Process]] = launch,
    ):
        self.state = state if state is not None else RunState()
        self.on_update = on_update
        self.on_error = on_error
        self.cleanup_timeout = cleanup_timeout
        self.supervisor = Supervisor(
            self.state,
            on_update=self._notify,
            on_error=self.report_error,
            on_exit=self._task_exited,
            launcher=launcher,
        )
        self.stopped = asyncio.Event()

    def _notify(self) -> None:
        self.on_update()

    def report_error(self, message: str) -> None:
        self.state.last_error = message
        self.on_error(message)

    def spawn(self, name: str, task: TaskConfig) -> None:
        self.supervisor.spawn(name, task)

    def _task_exited(self, _name: str) -> None:
        # dependents of tasks killed on the way out must stay queued
        if self.state.stopping:
            return
        queue.advance(self.state, self.spawn)

    async def initialize(self, project: ProjectConfig) -> bool:
        """Dispatch every task of `project` not dispatched yet.

        Calling it again with a reloaded config only dispatches new names.
        An empty config after a previous load stops the engine; the return
        value is False in that case.
        """
        if self.state.stopping or self.stopped.is_set():
            raise EngineError("engine is shutting down")

        state = self.state

        if not len(project) and state.initialized:
            logger.info("Config has no tasks left, shutting down")
            await self.quit()
            return False

        state.initialized = True
        state.tasks = dict(project.tasks)
        # a config that loads cleanly supersedes the previous load error
        state.last_error = None

        for task in project:
            if task.name in state.spawned_tasks:
                continue
            state.spawned_tasks.add(task.name)

            if not task.depends_on:
                self.spawn(task.name, task)
                continue

            if not ensure_dependencies(task.name, task.depends_on, state):
                continue

            state.queue.append(QueueItem(task.name, task, list(task.depends_on)))

        # dependencies may already be finished (gate failures, earlier loads)
        queue.advance(state, self.spawn)
        self._notify()
        return True

    def display_order(self) -> list[str]:
        return self.state.display_order()

    def move(self, steps: int) -> None:
        entries = self.display_order()
        if not entries:
            return

        try:
            index = entries.index(self.state.selected_task)
        except ValueError:
            index = -1

        self.state.selected_task = entries[(index + steps) % len(entries)]
        self._notify()

    async def cleanup(self) -> list[str]:
        """Stop dispatching, then stop every task process, launches in flight included."""
        self.state.stopping = True
        await self.supervisor.launches_settled()
        return await shutdown.cleanup(self.state, timeout=self.cleanup_timeout)

    async def quit(self) -> None:
        try:
            await self.cleanup()
        finally:
            self.stopped.set()

    async def wait_until_idle(self) -> None:
        await self.supervisor.wait()
