import logging
from typing import Iterable

from .types import RunState, TaskBuffer

logger = logging.getLogger(__name__)


def missing_dependency_message(dep: str) -> str:
    return f"Cannot depend on {dep} as it does not exist"


def ensure_dependencies(name: str, depends_on: Iterable[str], state: RunState) -> bool:
    """Return True when every dependency names a registered task.

    Otherwise record a finished, errored buffer for `name` describing the
    first missing dependency and return False. The task must not be queued.
    """
    for dep in depends_on:
        if dep not in state.tasks:
            logger.warning("Task %r depends on unknown task %r", name, dep)
            state.buffers[name] = TaskBuffer(
                running=False, errored=True, text=missing_dependency_message(dep)
            )
            state.task_order.append(name)
            return False

    return True
