import logging

import pytest

from taskwire.events import Disposable, Emitter, relay


def test_emitter_delivers_to_all_listeners_until_disposed() -> None:
    emitter: Emitter[str] = Emitter()
    first: list[str] = []
    second: list[str] = []
    handle = emitter.event(first.append)
    emitter.subscribe(second.append)

    emitter.fire("a")
    handle.dispose()
    emitter.fire("b")

    assert first == ["a"]
    assert second == ["a", "b"]
    assert emitter.listener_count == 1


def test_failing_listener_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    emitter: Emitter[int] = Emitter()
    received: list[int] = []

    def _boom(_: int) -> None:
        raise RuntimeError("listener failure")

    emitter.subscribe(_boom)
    emitter.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="taskwire.events"):
        emitter.fire(7)

    assert received == [7]
    assert "failed" in caplog.text


def test_disposed_emitter_refuses_new_listeners() -> None:
    emitter: Emitter[int] = Emitter()
    emitter.dispose()
    received: list[int] = []

    handle = emitter.subscribe(received.append)
    emitter.fire(1)

    assert received == []
    assert handle.disposed


def test_disposable_runs_callback_once() -> None:
    calls: list[int] = []
    handle = Disposable(lambda: calls.append(1))

    handle.dispose()
    handle.dispose()

    assert calls == [1]


def test_relay_runs_hook_before_forwarding() -> None:
    source: Emitter[str] = Emitter()
    target: Emitter[str] = Emitter()
    order: list[str] = []
    target.subscribe(lambda payload: order.append(f"target:{payload}"))

    handle = relay(source.event, target, before=lambda payload: order.append(f"before:{payload}"))
    source.fire("x")
    handle.dispose()
    source.fire("y")

    assert order == ["before:x", "target:x"]
