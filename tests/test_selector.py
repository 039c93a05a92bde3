import threading
import time
from pathlib import Path

import pytest

from taskwire import UnsupportedEngineError
from taskwire.events import Emitter
from taskwire.execution import (
    EngineSelector,
    ExecutionMode,
    TaskEventKind,
    TaskOutcome,
    TaskSpec,
    TerminalEngine,
    WorkspaceFolder,
)


class _FakeEngine:
    def __init__(self, configurations) -> None:
        self.configurations = configurations
        self.state = Emitter()
        self.reconnects = Emitter()
        self.on_state_change = self.state.event
        self.on_reconnect = self.reconnects.event
        self.active = False

    def run(self, task: TaskSpec, *, folder=None) -> TaskOutcome:
        return TaskOutcome(task.label, "fake", "", "", 0, False)

    def is_active_sync(self) -> bool:
        return self.active


class _Counters:
    def __init__(self) -> None:
        self.provider_calls = 0
        self.factory_calls = 0
        self.lock = threading.Lock()

    def provider(self):
        with self.lock:
            self.provider_calls += 1
        return {}

    def factory(self, configurations) -> _FakeEngine:
        with self.lock:
            self.factory_calls += 1
        time.sleep(0.05)
        return _FakeEngine(configurations)


def _selector(counters: _Counters, mode: ExecutionMode = ExecutionMode.TERMINAL) -> EngineSelector:
    return EngineSelector(mode, configuration_provider=counters.provider, engine_factory=counters.factory)


def test_get_engine_is_cached_and_subscribes_once() -> None:
    counters = _Counters()
    selector = _selector(counters)

    first = selector.get_engine()
    second = selector.get_engine()

    assert first is second
    assert counters.provider_calls == 1
    assert counters.factory_calls == 1
    assert first.state.listener_count == 1
    assert first.reconnects.listener_count == 1


def test_concurrent_first_calls_construct_exactly_one_engine() -> None:
    counters = _Counters()
    selector = _selector(counters)
    barrier = threading.Barrier(16)
    results: list[object] = []
    lock = threading.Lock()

    def _call() -> None:
        barrier.wait()
        engine = selector.get_engine()
        with lock:
            results.append(engine)

    threads = [threading.Thread(target=_call) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 16
    assert all(engine is results[0] for engine in results)
    assert counters.factory_calls == 1
    assert counters.provider_calls == 1


def test_process_mode_fails_every_time_without_caching() -> None:
    counters = _Counters()
    selector = _selector(counters, ExecutionMode.PROCESS)

    for _ in range(2):
        with pytest.raises(UnsupportedEngineError) as exc:
            selector.get_engine()
        assert str(exc.value) == EngineSelector.PROCESS_ENGINE_SUPPORT_MESSAGE
        assert exc.value.mode is ExecutionMode.PROCESS

    assert counters.provider_calls == 0
    assert counters.factory_calls == 0


def test_state_change_relay_updates_active_flag_before_delivery() -> None:
    counters = _Counters()
    selector = _selector(counters)
    observed: list[tuple[object, bool]] = []
    selector.on_state_change(lambda payload: observed.append((payload, selector.is_active())))
    engine = selector.get_engine()

    assert selector.is_active() is False
    engine.active = True
    engine.state.fire("started")
    engine.active = False
    engine.state.fire("stopped")

    assert observed == [("started", True), ("stopped", False)]


def test_reconnect_relay_forwards_payload_verbatim() -> None:
    counters = _Counters()
    selector = _selector(counters)
    received: list[object] = []
    selector.on_reconnect(received.append)
    engine = selector.get_engine()
    payload = object()

    engine.active = True
    engine.reconnects.fire(payload)

    assert received == [payload]
    assert selector.is_active() is True


def test_compatibility_and_legacy_configuration() -> None:
    terminal = _selector(_Counters())
    process = _selector(_Counters(), ExecutionMode.PROCESS)

    assert terminal.version_and_engine_compatible() is True
    assert process.version_and_engine_compatible() is False
    with pytest.raises(UnsupportedEngineError):
        terminal.compute_legacy_configuration(WorkspaceFolder("app", Path(".")))


def test_run_task_through_terminal_engine_relays_lifecycle(tmp_path: Path) -> None:
    selector = EngineSelector(
        ExecutionMode.TERMINAL,
        configuration_provider=dict,
        engine_factory=TerminalEngine,
    )
    observed: list[tuple[TaskEventKind, bool]] = []
    selector.on_state_change(lambda event: observed.append((event.kind, selector.is_active())))

    outcome = selector.run_task(TaskSpec(label="greet", command="echo hello", cwd=str(tmp_path)))

    assert outcome.returncode == 0
    assert outcome.stdout.strip() == "hello"
    assert observed == [
        (TaskEventKind.START, True),
        (TaskEventKind.ACTIVE, True),
        (TaskEventKind.INACTIVE, False),
        (TaskEventKind.END, False),
    ]
    assert selector.is_active() is False
