from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass(frozen=True)
class TaskConfig:
    name: str
    command: str
    depends_on: tuple[str, ...] = ()
    cwd: str = field(default_factory=os.getcwd)
    env: dict[str, str] = field(default_factory=dict)


@dataclass
class ProjectConfig:
    tasks: dict[str, TaskConfig]

    def __iter__(self):
        yield from self.tasks.values()

    def __len__(self):
        return len(self.tasks)

    def has_task(self, name: str) -> bool:
        return name in self.tasks

    def get_task(self, name: str) -> TaskConfig:
        if not self.has_task(name):
            raise KeyError(name)

        return self.tasks[name]

    def task_names(self) -> list[str]:
        return list(self.tasks)


class ConfigError(Exception):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)


class UnsupportedConfigFormatError(ConfigError):
    def __init__(self, *args: object) -> None:
        super().__init__(*args)
