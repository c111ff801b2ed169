from __future__ import annotations

import argparse

from tasktui.engine import CLEANUP_TIMEOUT

DEFAULT_CONFIG = "tasktui.config.json"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasktui")

    parser.add_argument(
        "-c",
        "--config",
        default=DEFAULT_CONFIG,
        help="Path to config file (.json, .yaml/.yml or .toml)",
    )
    parser.add_argument(
        "--log-file",
        default=None,
        help="Write logs to this file (the terminal is used by the task view)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for --log-file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
    )

    # run
    run = subparsers.add_parser("run", help="Run tasks and show their output")
    run.add_argument(
        "--headless",
        action="store_true",
        help="No interactive view: wait for all tasks, then print their output",
    )
    run.add_argument(
        "--cleanup-timeout",
        type=float,
        default=CLEANUP_TIMEOUT,
        help="Seconds to wait for tasks to exit on quit before killing them",
    )

    # list
    subparsers.add_parser("list", help="List tasks and their dependencies")

    return parser
