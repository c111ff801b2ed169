import json
import os
import tomllib
from pathlib import Path
from typing import Any, Mapping

import yaml

from .types import ConfigError, ProjectConfig, TaskConfig, UnsupportedConfigFormatError

# Accepted spelling -> canonical field name
_FIELD_ALIASES = {
    "command": "command",
    "depends_on": "depends_on",
    "dependsOn": "depends_on",
    "cwd": "cwd",
    "working_dir": "cwd",
    "env": "env",
}


def load_project(path: str | Path) -> ProjectConfig:
    pure_path = Path(path).expanduser().resolve()

    if not pure_path.exists():
        raise ConfigError(f"Config file not found: {pure_path}")

    if not pure_path.is_file():
        raise ConfigError(f"Config path is not a file: {pure_path}")

    fmt = _detect_format(pure_path)
    raw_file = _parse_file(pure_path, fmt)
    return build_project_config(raw_file)


def _detect_format(path: Path) -> str:
    fmt = path.suffix
    match fmt:
        case ".yaml" | ".yml":
            return "yaml"
        case ".toml":
            return "toml"
        case ".json":
            return "json"
        case _:
            raise UnsupportedConfigFormatError(
                f"Non supported file extension: {fmt}\n Expected format: .yml/.yaml, .toml, .json"
            )


def _parse_file(path: Path, fmt: str) -> Mapping[str, Any]:
    text = path.read_text(encoding="utf-8")
    match fmt:
        case "yaml":
            try:
                raw_file = yaml.safe_load(text)
            except yaml.YAMLError as exc:
                raise ConfigError(f"{path}: invalid YAML") from exc
        case "toml":
            try:
                raw_file = tomllib.loads(text)
            except tomllib.TOMLDecodeError as exc:
                raise ConfigError(f"{path}: invalid TOML") from exc
        case "json":
            try:
                raw_file = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ConfigError(f"{path}: invalid JSON") from exc
        case _:
            raise AssertionError("Unreachable")

    if not isinstance(raw_file, Mapping):
        raise ConfigError(
            f"{path}: {fmt.upper()} parsed successfully but top-level value is not an object: {type(raw_file)}"
        )

    return raw_file


def build_project_config(raw: Mapping[str, Any]) -> ProjectConfig:
    """Validate an already parsed document into a ProjectConfig.

    Dependency names are not checked against the task set here; a missing
    dependency only fails the task that declares it, at run time.
    """
    tasks: dict[str, TaskConfig] = {}

    if "tasks" not in raw:
        raise ConfigError("Missing 'tasks' field")

    if not isinstance(raw["tasks"], Mapping):
        raise ConfigError(f"'tasks' must be a mapping, got {type(raw['tasks'])}")

    for name, fields in raw["tasks"].items():
        if not isinstance(name, str):
            raise ConfigError(f"Task name must be a string, got {type(name)}")

        if not isinstance(fields, Mapping):
            raise ConfigError(f"{name} must be a mapping")

        name_norm = name.strip()

        if len(name_norm) < 1:
            raise ConfigError("A task name can't be empty")

        if name_norm in tasks:
            raise ConfigError(f"Duplicate task name after normalization: {name_norm}")

        tasks[name_norm] = _build_task_config(name_norm, fields)

    return ProjectConfig(tasks=tasks)


def _normalize_fields(name: str, fields: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in fields.items():
        canonical = _FIELD_ALIASES.get(key)
        if canonical is None:
            raise ConfigError(f"{name}: Can't process: {key}")
        if canonical in out:
            raise ConfigError(f"{name}: '{key}' given more than once")
        out[canonical] = value
    return out


def _build_task_config(name: str, raw_fields: Mapping[str, Any]) -> TaskConfig:
    fields = _normalize_fields(name, raw_fields)
    depends_on: list[str] = []
    seen = set()
    env = {}
    cwd = os.getcwd()

    if "command" not in fields:
        raise ConfigError(f"{name}: missing 'command'")

    if not isinstance(fields["command"], str):
        raise ConfigError(f"{name}: The command should be a string")

    command = fields["command"].strip()

    if len(command) < 1:
        raise ConfigError(f"{name}: Command missing")

    if "depends_on" in fields:
        if not isinstance(fields["depends_on"], list):
            raise ConfigError(f"{name}: Dependencies should be in a list.")

        for item in fields["depends_on"]:
            if not isinstance(item, str):
                raise ConfigError(
                    f"{name}: {item} should be a string in the dependency list"
                )

            dep = item.strip()

            if len(dep) < 1:
                raise ConfigError(f"{name}: A dependency is empty")

            # Allows to ignore duplicates dependency
            if dep in seen:
                continue

            depends_on.append(dep)
            seen.add(dep)

    if "env" in fields:
        if not isinstance(fields["env"], Mapping):
            raise ConfigError(f"{name}: Env should be a mapping")

        for key, item in fields["env"].items():
            if not isinstance(key, str):
                raise ConfigError(f"{name}: {key} should be a string")

            if len(key.strip()) < 1:
                raise ConfigError(f"{name}: A key can't be empty")

            if not isinstance(item, str):
                raise ConfigError(f"{name}: {item} should be a string")

            env[key.strip()] = item

    if "cwd" in fields:
        if not isinstance(fields["cwd"], str):
            raise ConfigError(f"{name}: The cwd should be a string")

        if len(fields["cwd"].strip()) < 1:
            raise ConfigError(f"{name}: Please provide a string or remove this field")

        cwd = fields["cwd"].strip()

    return TaskConfig(name, command, tuple(depends_on), cwd, env)
