from __future__ import annotations

import logging
import os
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from ..config import DEFAULT_SHELL
from ..events import Emitter
from .types import ReconnectEvent, TaskEvent, TaskEventKind, TaskOutcome, TaskSpec
from .workspace import WorkspaceFolderConfiguration

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Terminal:
    """Execution surface metadata tracked by the engine.

    Example:
        ```python
        terminal = Terminal("Task - build", 0.0, 0.0, 0)
        ```
    """

    terminal_id: str
    created_at: float
    last_used_at: float
    run_count: int


@dataclass(slots=True)
class _TerminalEntry:
    """Internal pool entry tracking lease state.

    Example:
        ```python
        entry = _TerminalEntry(terminal=terminal, in_use=False)
        ```
    """

    terminal: Terminal
    in_use: bool


def terminal_name(label: str) -> str:
    """Return the conventional terminal id for a task label.

    Example:
        ```python
        name = terminal_name("build")
        ```
    """
    return f"Task - {label}"


class TerminalEngine:
    """Run workspace tasks in reusable terminals and report their lifecycle.

    Example:
        ```python
        engine = TerminalEngine(configs, shell="/bin/bash")
        outcome = engine.run(TaskSpec(label="build", command="make"), folder="app")
        ```
    """

    def __init__(
        self,
        configurations: Mapping[str, WorkspaceFolderConfiguration] | None = None,
        *,
        shell: str = DEFAULT_SHELL,
    ) -> None:
        """Initialize an engine with no open terminals.

        Example:
            ```python
            engine = TerminalEngine({"app": config})
            ```
        """
        cleaned = shell.strip()
        if not cleaned:
            raise ValueError("TerminalEngine requires a non-empty 'shell'")
        self._shell = cleaned
        self._configurations = dict(configurations or {})
        self._lock = threading.Lock()
        self._terminals: dict[str, _TerminalEntry] = {}
        self._state_change: Emitter[TaskEvent] = Emitter()
        self._reconnect: Emitter[ReconnectEvent] = Emitter()
        self.on_state_change = self._state_change.event
        self.on_reconnect = self._reconnect.event

    def run(self, task: TaskSpec, *, folder: str | None = None) -> TaskOutcome:
        """Run one task in a leased terminal, firing START/ACTIVE/INACTIVE/END.

        Example:
            ```python
            outcome = engine.run(TaskSpec(label="lint", command="ruff check ."))
            ```
        """
        terminal_id = self._acquire(task.label)
        self._state_change.fire(TaskEvent(TaskEventKind.START, task.label, terminal_id))
        self._state_change.fire(TaskEvent(TaskEventKind.ACTIVE, task.label, terminal_id))
        try:
            outcome = self._execute(task, terminal_id, folder)
        finally:
            self._release(terminal_id)
        self._state_change.fire(TaskEvent(TaskEventKind.INACTIVE, task.label, terminal_id))
        self._state_change.fire(
            TaskEvent(TaskEventKind.END, task.label, terminal_id, exit_code=outcome.returncode)
        )
        return outcome

    def is_active_sync(self) -> bool:
        """Return whether any terminal is currently leased to a task.

        Example:
            ```python
            busy = engine.is_active_sync()
            ```
        """
        with self._lock:
            return any(entry.in_use for entry in self._terminals.values())

    def reconnect(self, terminal_ids: Iterable[str]) -> ReconnectEvent | None:
        """Adopt terminals that survived a reload and announce them.

        Example:
            ```python
            engine.reconnect(["Task - build"])
            ```
        """
        now = time.time()
        adopted: list[str] = []
        with self._lock:
            for terminal_id in terminal_ids:
                if not terminal_id or terminal_id in self._terminals:
                    continue
                self._terminals[terminal_id] = _TerminalEntry(
                    terminal=Terminal(terminal_id, now, now, 0),
                    in_use=False,
                )
                adopted.append(terminal_id)
        if not adopted:
            return None
        event = ReconnectEvent(terminal_ids=tuple(adopted))
        logger.info("Reconnected to %d terminal(s)", len(adopted))
        self._reconnect.fire(event)
        return event

    def terminals(self) -> list[Terminal]:
        """Return a snapshot of known terminals.

        Example:
            ```python
            ids = [t.terminal_id for t in engine.terminals()]
            ```
        """
        with self._lock:
            return [entry.terminal for entry in self._terminals.values()]

    def _acquire(self, label: str) -> str:
        """Lease the task's idle terminal, opening a new one when it is busy.

        Example:
            ```python
            terminal_id = engine._acquire("build")
            ```
        """
        base = terminal_name(label)
        now = time.time()
        with self._lock:
            candidate = base
            suffix = 1
            while True:
                entry = self._terminals.get(candidate)
                if entry is None:
                    entry = _TerminalEntry(terminal=Terminal(candidate, now, now, 0), in_use=False)
                    self._terminals[candidate] = entry
                    logger.debug("Opened terminal %s", candidate)
                if not entry.in_use:
                    entry.in_use = True
                    entry.terminal.last_used_at = now
                    entry.terminal.run_count += 1
                    return candidate
                suffix += 1
                candidate = f"{base} ({suffix})"

    def _release(self, terminal_id: str) -> None:
        """Mark a leased terminal idle again.

        Example:
            ```python
            engine._release("Task - build")
            ```
        """
        with self._lock:
            entry = self._terminals.get(terminal_id)
            if entry is not None:
                entry.in_use = False

    def _working_directory(self, task: TaskSpec, folder: str | None) -> Path | None:
        """Resolve the task's cwd against its workspace folder.

        Example:
            ```python
            cwd = engine._working_directory(task, "app")
            ```
        """
        config = self._configurations.get(folder) if folder is not None else None
        root = config.folder.path if config is not None else None
        if task.cwd is None:
            return root
        cwd = Path(task.cwd).expanduser()
        if cwd.is_absolute() or root is None:
            return cwd
        return root / cwd

    def _execute(self, task: TaskSpec, terminal_id: str, folder: str | None) -> TaskOutcome:
        """Run the task command through the configured shell.

        Example:
            ```python
            outcome = engine._execute(task, "Task - build", None)
            ```
        """
        cwd = self._working_directory(task, folder)
        logger.info("Running task %r in %s", task.label, terminal_id)
        try:
            completed = subprocess.run(
                [self._shell, "-c", task.command],
                cwd=str(cwd) if cwd is not None else None,
                env={**os.environ, **task.env},
                capture_output=True,
                text=True,
                timeout=task.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            return TaskOutcome(
                label=task.label,
                terminal_id=terminal_id,
                stdout="",
                stderr="",
                returncode=124,
                timed_out=True,
                error=f"Task timed out after {task.timeout_seconds}s",
            )
        except OSError as exc:
            logger.warning("Task %r could not start: %s", task.label, exc)
            return TaskOutcome(
                label=task.label,
                terminal_id=terminal_id,
                stdout="",
                stderr="",
                returncode=127,
                timed_out=False,
                error=f"Failed to start task: {exc}",
            )
        return TaskOutcome(
            label=task.label,
            terminal_id=terminal_id,
            stdout=completed.stdout,
            stderr=completed.stderr,
            returncode=completed.returncode,
            timed_out=False,
        )
