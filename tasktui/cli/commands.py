from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from rich.console import Console

from tasktui.config import ConfigError, load_project
from tasktui.ui import TaskApp, run_headless

from .args import build_parser

logger = logging.getLogger("tasktui")


def run_cli(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        _configure_logging(args.log_file, args.log_level)

        match args.command:
            case "run":
                return cmd_run(args)
            case "list":
                return cmd_list(args)
            case _:
                return 2

    except ConfigError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    except KeyboardInterrupt:
        return 130


def _configure_logging(log_file: str | None, level: str) -> None:
    if log_file is None:
        return
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    logger.addHandler(handler)
    logger.setLevel(level)


def cmd_run(args: argparse.Namespace) -> int:
    if args.headless:
        project = load_project(args.config)
        return asyncio.run(
            run_headless(
                project,
                console=Console(),
                cleanup_timeout=args.cleanup_timeout,
            )
        )

    # config errors are shown inside the view, so the screen is up first
    app = TaskApp(args.config, cleanup_timeout=args.cleanup_timeout)
    return asyncio.run(app.run())


def cmd_list(args: argparse.Namespace) -> int:
    project = load_project(args.config)
    for task in project:
        deps = " ".join(task.depends_on)
        print(f"{task.name}: {deps}".rstrip())
    return 0
