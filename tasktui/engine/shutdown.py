from __future__ import annotations

import asyncio
import logging
import os
import signal

from .types import RunState

logger = logging.getLogger(__name__)

POSIX = os.name == "posix"
CLEANUP_TIMEOUT = 10.0


def send_signal(proc: asyncio.subprocess.Process, sig: int, *, force: bool = False) -> None:
    """Signal the process group led by `proc`, or the process itself off POSIX.

    A process that is already gone is not an error.
    """
    try:
        if POSIX:
            os.killpg(proc.pid, sig)
        elif force:
            proc.kill()
        else:
            proc.send_signal(sig)
    except ProcessLookupError:
        logger.debug("pid %s already exited before signal %s", proc.pid, sig)


async def cleanup(
    state: RunState,
    *,
    timeout: float = CLEANUP_TIMEOUT,
    interrupt: int = signal.SIGTERM,
) -> list[str]:
    """Stop every live task process, escalating to a forceful kill after `timeout`.

    The timeout is shared by all processes. Returns the names of the tasks
    that had to be force-killed.
    """
    targets = {
        name: proc
        for name, proc in state.live_processes.items()
        if name not in state.killed and proc.returncode is None
    }
    if not targets:
        return []

    for name, proc in targets.items():
        logger.debug("Interrupting %r (pid %s)", name, proc.pid)
        state.killed.add(name)
        send_signal(proc, interrupt)

    waiters = {asyncio.ensure_future(proc.wait()): name for name, proc in targets.items()}
    _, pending = await asyncio.wait(waiters, timeout=timeout)

    stragglers = [waiters[w] for w in pending]
    for name in stragglers:
        logger.warning("Task %r ignored the interrupt for %ss, killing it", name, timeout)
        send_signal(targets[name], getattr(signal, "SIGKILL", signal.SIGTERM), force=True)

    if pending:
        await asyncio.wait(pending)

    return stragglers
