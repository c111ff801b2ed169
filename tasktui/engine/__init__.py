from .engine import Engine
from .gate import ensure_dependencies
from .queue import advance
from .shutdown import CLEANUP_TIMEOUT, cleanup
from .types import EngineError, QueueItem, RunState, TaskBuffer

__all__ = [
    "Engine",
    "EngineError",
    "RunState",
    "TaskBuffer",
    "QueueItem",
    "ensure_dependencies",
    "advance",
    "cleanup",
    "CLEANUP_TIMEOUT",
]
