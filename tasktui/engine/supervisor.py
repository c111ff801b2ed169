from __future__ import annotations

import asyncio
import codecs
import logging
import os
from typing import Awaitable, Callable

from tasktui.config.types import TaskConfig

from .types import RunState, TaskBuffer

logger = logging.getLogger(__name__)

POSIX = os.name == "posix"
CHUNK_SIZE = 4096

# Most CLIs drop colors when stdout is not a TTY unless told otherwise.
COLOR_ENV = {"FORCE_COLOR": "1", "CLICOLOR_FORCE": "1"}


def task_environment(task: TaskConfig) -> dict[str, str]:
    return {**os.environ, **COLOR_ENV, **task.env}


async def launch(task: TaskConfig) -> asyncio.subprocess.Process:
    """Start `task.command` through the shell with stdout and stderr on one pipe."""
    return await asyncio.create_subprocess_shell(
        task.command,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
        cwd=task.cwd,
        env=task_environment(task),
        # own process group, so the whole subtree can be signaled at once
        start_new_session=POSIX,
    )


class Supervisor:
    """Spawns task processes and folds their lifecycle into a RunState.

    Every handler runs on the event loop thread, so buffer mutations never
    interleave with other engine code.
    """

    def __init__(
        self,
        state: RunState,
        *,
        on_update: Callable[[], None],
        on_error: Callable[[str], None],
        on_exit: Callable[[str], None],
        launcher: Callable[[TaskConfig], Awaitable[asyncio.subprocess.Process]] = launch,
    ):
        self.state = state
        self.on_update = on_update
        self.on_error = on_error
        self.on_exit = on_exit
        self.launcher = launcher
        self._supervised: set[asyncio.Task[None]] = set()
        self._launching: set[asyncio.Future[asyncio.subprocess.Process]] = set()

    def spawn(self, name: str, task: TaskConfig) -> asyncio.Task[None] | None:
        if self.state.stopping:
            logger.debug("Not spawning %r, shutting down", name)
            return None
        job = asyncio.get_running_loop().create_task(
            self._supervise(name, task), name=f"tasktui:{name}"
        )
        self._supervised.add(job)
        job.add_done_callback(self._supervised.discard)
        return job

    async def wait(self) -> None:
        """Return once no supervised process is left, including ones spawned meanwhile."""
        while self._supervised:
            await asyncio.gather(*list(self._supervised), return_exceptions=True)

    async def launches_settled(self) -> None:
        """Return once every launch in flight has produced a process or failed."""
        while self._launching:
            await asyncio.wait(set(self._launching))

    async def _supervise(self, name: str, task: TaskConfig) -> None:
        state = self.state
        if state.stopping:
            return

        launching = asyncio.ensure_future(self.launcher(task))
        self._launching.add(launching)
        try:
            proc = await launching
        except (OSError, ValueError) as exc:
            # ValueError: Popen rejects commands with embedded NUL bytes
            self._launch_failed(name, task, exc)
            return
        finally:
            self._launching.discard(launching)

        logger.debug("Spawned %r (pid %s): %s", name, proc.pid, task.command)
        state.live_processes[name] = proc
        if not state.selected_task:
            state.selected_task = name
        state.buffers[name] = TaskBuffer(running=True)
        state.task_order.append(name)
        self.on_update()

        await self._pump(name, proc)
        code = await proc.wait()

        buffer = state.buffers[name]
        buffer.running = False
        if code is not None and code < 0:
            buffer.signal = -code
        else:
            buffer.exit_code = code
        buffer.errored = code != 0
        state.live_processes.pop(name, None)
        state.killed.discard(name)
        logger.debug("Task %r exited with code %s", name, code)

        self.on_exit(name)
        self.on_update()

    async def _pump(self, name: str, proc: asyncio.subprocess.Process) -> None:
        assert proc.stdout is not None
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        buffer = self.state.buffers[name]

        while True:
            chunk = await proc.stdout.read(CHUNK_SIZE)
            text = decoder.decode(chunk, final=not chunk)
            if text:
                buffer.text += text
                if self.state.selected_task == name:
                    self.on_update()
            if not chunk:
                return

    def _launch_failed(self, name: str, task: TaskConfig, exc: Exception) -> None:
        message = f"Failed to start task {name!r}: {exc}"
        logger.error("%s (command: %s, cwd: %s)", message, task.command, task.cwd)
        self.state.buffers[name] = TaskBuffer(running=False, errored=True, text=message)
        self.state.task_order.append(name)
        self.on_error(message)
        self.on_exit(name)
        self.on_update()
