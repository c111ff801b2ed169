from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from tasktui.config.types import TaskConfig


class EngineError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


@dataclass
class TaskBuffer:
    running: bool = False
    errored: bool = False
    text: str = ""
    # None when the process never started or was killed by a signal
    exit_code: int | None = None
    signal: int | None = None


@dataclass
class QueueItem:
    name: str
    task: TaskConfig
    remaining_deps: list[str]


@dataclass
class RunState:
    """Everything the engine mutates and the renderer reads.

    One instance per program invocation. Only engine code writes to it;
    observers get a reference and must treat it as read-only.
    """

    initialized: bool = False
    stopping: bool = False
    tasks: dict[str, TaskConfig] = field(default_factory=dict)
    task_order: list[str] = field(default_factory=list)
    buffers: dict[str, TaskBuffer] = field(default_factory=dict)
    live_processes: dict[str, asyncio.subprocess.Process] = field(default_factory=dict)
    killed: set[str] = field(default_factory=set)
    queue: list[QueueItem] = field(default_factory=list)
    selected_task: str = ""
    last_error: str | None = None
    spawned_tasks: set[str] = field(default_factory=set)

    def running_tasks(self) -> list[str]:
        return [n for n in self.task_order if self.buffers[n].running]

    def completed_tasks(self) -> list[str]:
        return [n for n in self.task_order if not self.buffers[n].running]

    def queued_tasks(self) -> list[str]:
        return [item.name for item in self.queue]

    def display_order(self) -> list[str]:
        """Running tasks, then queued, then finished ones."""
        return self.running_tasks() + self.queued_tasks() + self.completed_tasks()
