from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from ..config import DEFAULT_TASKS_FILE
from ..errors import ConfigError
from .types import ExecutionMode, TaskSpec

logger = logging.getLogger(__name__)

LEGACY_VERSION = "0.1.0"
CURRENT_VERSION = "2.0.0"


@dataclass(frozen=True, slots=True)
class WorkspaceFolder:
    """A named root folder of the workspace.

    Example:
        ```python
        folder = WorkspaceFolder(name="app", path=Path("/src/app"))
        ```
    """

    name: str
    path: Path


@dataclass(slots=True)
class WorkspaceFolderConfiguration:
    """Parsed task configuration of one workspace folder.

    Example:
        ```python
        config = WorkspaceFolderConfiguration(folder=folder, version="2.0.0", execution_mode=ExecutionMode.TERMINAL)
        ```
    """

    folder: WorkspaceFolder
    version: str
    execution_mode: ExecutionMode
    tasks: dict[str, TaskSpec] = field(default_factory=dict)


def _str_map(value: Any, field_name: str) -> dict[str, str]:
    """Validate and normalize a string-to-string table.

    Example:
        ```python
        env = _str_map({"CI": "1"}, "env")
        ```
    """
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{field_name}' must be a TOML table")
    out: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(item, str):
            raise ConfigError(f"'{field_name}.{key}' must be a string")
        out[str(key)] = item
    return out


def _parse_task(label: str, raw: Any) -> TaskSpec:
    """Build a TaskSpec from one `[tasks.<label>]` table.

    Example:
        ```python
        task = _parse_task("build", {"command": "make"})
        ```
    """
    if not isinstance(raw, dict):
        raise ConfigError(f"Task '{label}' must be a TOML table")
    command = raw.get("command")
    if not isinstance(command, str) or not command.strip():
        raise ConfigError(f"Task '{label}' requires a non-empty 'command'")
    cwd = raw.get("cwd")
    if cwd is not None and not isinstance(cwd, str):
        raise ConfigError(f"Task '{label}': 'cwd' must be a string")
    timeout = raw.get("timeout_seconds")
    if timeout is not None and (not isinstance(timeout, int) or timeout <= 0):
        raise ConfigError(f"Task '{label}': 'timeout_seconds' must be a positive integer")
    return TaskSpec(
        label=label,
        command=command,
        cwd=cwd,
        env=_str_map(raw.get("env"), f"tasks.{label}.env"),
        timeout_seconds=timeout,
    )


def _declared_mode(raw: Mapping[str, Any], version: str) -> ExecutionMode:
    """Return the declared engine, inferring process mode for legacy files.

    Example:
        ```python
        mode = _declared_mode({"engine": "terminal"}, "2.0.0")
        ```
    """
    engine = raw.get("engine")
    if engine is None:
        return ExecutionMode.PROCESS if version == LEGACY_VERSION else ExecutionMode.TERMINAL
    try:
        return ExecutionMode(str(engine))
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in ExecutionMode)
        raise ConfigError(f"Unknown engine {engine!r}; expected one of: {allowed}") from exc


def read_folder_configuration(
    folder: WorkspaceFolder,
    file_name: str = DEFAULT_TASKS_FILE,
) -> WorkspaceFolderConfiguration:
    """Read `<folder>/<file_name>` into a folder configuration.

    A missing file yields an empty terminal-mode configuration.

    Example:
        ```python
        config = read_folder_configuration(WorkspaceFolder("app", Path("/src/app")))
        ```
    """
    path = folder.path / file_name
    if not path.exists():
        logger.debug("No task file at %s", path)
        return WorkspaceFolderConfiguration(folder, CURRENT_VERSION, ExecutionMode.TERMINAL)
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid task file {path}: {exc}") from exc

    version = str(raw.get("version", CURRENT_VERSION))
    tasks_raw = raw.get("tasks", {})
    if not isinstance(tasks_raw, dict):
        raise ConfigError(f"'tasks' in {path} must be a TOML table")
    tasks = {label: _parse_task(label, body) for label, body in tasks_raw.items()}
    return WorkspaceFolderConfiguration(
        folder=folder,
        version=version,
        execution_mode=_declared_mode(raw, version),
        tasks=tasks,
    )


def resolve_workspace_configuration(
    folders: Iterable[WorkspaceFolder],
    file_name: str = DEFAULT_TASKS_FILE,
) -> dict[str, WorkspaceFolderConfiguration]:
    """Resolve the configuration of every workspace folder, keyed by folder name.

    Example:
        ```python
        configs = resolve_workspace_configuration([WorkspaceFolder("app", Path("."))])
        ```
    """
    configs: dict[str, WorkspaceFolderConfiguration] = {}
    for folder in folders:
        if folder.name in configs:
            raise ConfigError(f"Duplicate workspace folder name: {folder.name}")
        configs[folder.name] = read_folder_configuration(folder, file_name)
    return configs


def resolve_execution_mode(configurations: Mapping[str, WorkspaceFolderConfiguration]) -> ExecutionMode:
    """Return PROCESS when any folder declares it, TERMINAL otherwise.

    Example:
        ```python
        mode = resolve_execution_mode(configs)
        ```
    """
    for config in configurations.values():
        if config.execution_mode is ExecutionMode.PROCESS:
            return ExecutionMode.PROCESS
    return ExecutionMode.TERMINAL


def find_task(
    configurations: Mapping[str, WorkspaceFolderConfiguration],
    label: str,
) -> tuple[WorkspaceFolderConfiguration, TaskSpec]:
    """Locate a task by label across folders, in folder order.

    Example:
        ```python
        config, task = find_task(configs, "build")
        ```
    """
    for config in configurations.values():
        task = config.tasks.get(label)
        if task is not None:
            return config, task
    raise ConfigError(f"No task labelled '{label}' in the workspace")
