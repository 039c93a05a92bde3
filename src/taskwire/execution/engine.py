from __future__ import annotations

from typing import Any, Protocol

from ..events import Event
from .types import TaskOutcome, TaskSpec


class TaskEngine(Protocol):
    on_state_change: Event[Any]
    on_reconnect: Event[Any]

    def run(self, task: TaskSpec, *, folder: str | None = None) -> TaskOutcome:
        """Run one task and return its normalized outcome.

        Example:
            ```python
            outcome = engine.run(TaskSpec(label="build", command="make"))
            ```
        """
        ...

    def is_active_sync(self) -> bool:
        """Return whether any task is currently running.

        Example:
            ```python
            busy = engine.is_active_sync()
            ```
        """
        ...
