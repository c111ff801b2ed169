import logging
from typing import Callable

from tasktui.config.types import TaskConfig

from .types import QueueItem, RunState

logger = logging.getLogger(__name__)


def is_resolved(dep: str, state: RunState) -> bool:
    # Finished either way; a failed dependency still unblocks its dependents.
    buffer = state.buffers.get(dep)
    return buffer is not None and not buffer.running


def advance(state: RunState, spawn: Callable[[str, TaskConfig], None]) -> list[str]:
    """Shrink every queued item's remaining dependencies and spawn the ready ones.

    Returns the names handed to `spawn`, in queue order.
    """
    ready: list[QueueItem] = []
    blocked: list[QueueItem] = []

    for item in state.queue:
        item.remaining_deps = [d for d in item.remaining_deps if not is_resolved(d, state)]
        if item.remaining_deps:
            blocked.append(item)
        else:
            ready.append(item)

    state.queue = blocked

    for item in ready:
        logger.debug("Dependencies of %r resolved, spawning", item.name)
        spawn(item.name, item.task)

    return [item.name for item in ready]
