from .app import TaskApp, parse_keys, print_summary, run_headless
from .render import render, task_list, task_output

__all__ = [
    "TaskApp",
    "parse_keys",
    "print_summary",
    "run_headless",
    "render",
    "task_list",
    "task_output",
]
