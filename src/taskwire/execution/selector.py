from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Mapping

from ..errors import UnsupportedEngineError
from ..events import Disposable, Emitter, Event, relay
from .capabilities import capabilities_for_mode
from .engine import TaskEngine
from .terminal_engine import TerminalEngine
from .types import ExecutionMode, TaskOutcome, TaskSpec
from .workspace import WorkspaceFolder, WorkspaceFolderConfiguration

logger = logging.getLogger(__name__)

ConfigurationProvider = Callable[[], Mapping[str, WorkspaceFolderConfiguration]]
EngineFactory = Callable[[Mapping[str, WorkspaceFolderConfiguration]], TaskEngine]


class EngineSelector:
    """Lazily build and cache the one task engine for the declared execution mode.

    The engine's state-change and reconnect streams are relayed onto the
    selector's own events, and every relay refreshes `is_active()`.

    Example:
        ```python
        selector = EngineSelector(ExecutionMode.TERMINAL, configuration_provider=lambda: configs)
        selector.on_state_change(print)
        outcome = selector.run_task(TaskSpec(label="build", command="make"))
        ```
    """

    PROCESS_ENGINE_SUPPORT_MESSAGE = "Process task engine is not supported in this deployment."

    def __init__(
        self,
        mode: ExecutionMode,
        *,
        configuration_provider: ConfigurationProvider,
        engine_factory: EngineFactory = TerminalEngine,
    ) -> None:
        """Store the declared mode and the collaborators used on first construction.

        Example:
            ```python
            selector = EngineSelector(ExecutionMode.TERMINAL, configuration_provider=dict)
            ```
        """
        self._mode = ExecutionMode(mode)
        self._configuration_provider = configuration_provider
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._engine: TaskEngine | None = None
        self._subscriptions: list[Disposable] = []
        self._active = False
        self._state_change: Emitter[Any] = Emitter()
        self._reconnect: Emitter[Any] = Emitter()

    @property
    def mode(self) -> ExecutionMode:
        """Return the declared execution mode.

        Example:
            ```python
            assert selector.mode is ExecutionMode.TERMINAL
            ```
        """
        return self._mode

    @property
    def on_state_change(self) -> Event[Any]:
        """Return the relayed state-change event of the cached engine.

        Example:
            ```python
            handle = selector.on_state_change(lambda event: print(event.kind))
            ```
        """
        return self._state_change.event

    @property
    def on_reconnect(self) -> Event[Any]:
        """Return the relayed reconnect event of the cached engine.

        Example:
            ```python
            handle = selector.on_reconnect(lambda event: print(event.terminal_ids))
            ```
        """
        return self._reconnect.event

    def get_engine(self) -> TaskEngine:
        """Return the cached engine, constructing it exactly once.

        Unsupported modes raise `UnsupportedEngineError` on every call and
        leave nothing cached.

        Example:
            ```python
            engine = selector.get_engine()
            assert engine is selector.get_engine()
            ```
        """
        engine = self._engine
        if engine is not None:
            return engine
        with self._lock:
            if self._engine is None:
                self._engine = self._create_engine()
            return self._engine

    def is_active(self) -> bool:
        """Return whether a task was running at the last relayed event.

        Example:
            ```python
            if selector.is_active():
                print("busy")
            ```
        """
        return self._active

    def version_and_engine_compatible(self) -> bool:
        """Return whether workspace tasks can run in this deployment.

        Example:
            ```python
            ok = selector.version_and_engine_compatible()
            ```
        """
        return self._mode is ExecutionMode.TERMINAL

    def compute_legacy_configuration(self, folder: WorkspaceFolder) -> WorkspaceFolderConfiguration:
        """Reject legacy configurations, which require the process engine.

        Example:
            ```python
            selector.compute_legacy_configuration(WorkspaceFolder("app", Path(".")))
            ```
        """
        raise UnsupportedEngineError(ExecutionMode.PROCESS, self.PROCESS_ENGINE_SUPPORT_MESSAGE)

    def run_task(self, task: TaskSpec, *, folder: str | None = None) -> TaskOutcome:
        """Run a task through the cached engine.

        Example:
            ```python
            outcome = selector.run_task(task, folder="app")
            ```
        """
        return self.get_engine().run(task, folder=folder)

    def _create_engine(self) -> TaskEngine:
        """Construct the engine and wire its lifecycle relays; caller holds the lock.

        Example:
            ```python
            engine = selector._create_engine()
            ```
        """
        if not capabilities_for_mode(self._mode).supported:
            logger.warning("Execution mode %s is not supported", self._mode.value)
            raise UnsupportedEngineError(self._mode, self.PROCESS_ENGINE_SUPPORT_MESSAGE)
        configurations = self._configuration_provider()
        engine = self._engine_factory(configurations)

        def _refresh_active(_: Any) -> None:
            """Recompute the derived active flag from the engine.

            Example:
                ```python
                _refresh_active(event)
                ```
            """
            self._active = engine.is_active_sync()

        self._subscriptions = [
            relay(engine.on_state_change, self._state_change, before=_refresh_active),
            relay(engine.on_reconnect, self._reconnect, before=_refresh_active),
        ]
        logger.info("Created %s task engine for %d folder(s)", self._mode.value, len(configurations))
        return engine
