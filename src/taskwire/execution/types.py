from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ExecutionMode(str, Enum):
    """Declared strategy for running workspace tasks."""

    TERMINAL = "terminal"
    PROCESS = "process"


class TaskEventKind(str, Enum):
    """Lifecycle transitions reported by an engine's state-change stream."""

    START = "start"
    ACTIVE = "active"
    INACTIVE = "inactive"
    END = "end"


@dataclass(frozen=True, slots=True)
class TaskSpec:
    """One runnable task declared in a workspace folder.

    Example:
        ```python
        task = TaskSpec(label="build", command="make all", timeout_seconds=120)
        ```
    """

    label: str
    command: str
    cwd: str | None = None
    env: dict[str, str] = field(default_factory=dict)
    timeout_seconds: int | None = None


@dataclass(frozen=True, slots=True)
class TaskEvent:
    """State-change payload fired by the terminal engine.

    Example:
        ```python
        event = TaskEvent(TaskEventKind.END, "build", "Task - build", exit_code=0)
        ```
    """

    kind: TaskEventKind
    label: str
    terminal_id: str
    exit_code: int | None = None


@dataclass(frozen=True, slots=True)
class ReconnectEvent:
    """Reconnect payload: terminals the engine re-adopted after a reload.

    Example:
        ```python
        event = ReconnectEvent(terminal_ids=("Task - build",))
        ```
    """

    terminal_ids: tuple[str, ...]


@dataclass(slots=True)
class TaskOutcome:
    """Normalized result of one task run.

    Example:
        ```python
        out = TaskOutcome(label="build", terminal_id="Task - build", stdout="", stderr="", returncode=0, timed_out=False)
        ```
    """

    label: str
    terminal_id: str
    stdout: str
    stderr: str
    returncode: int
    timed_out: bool
    error: str | None = None
