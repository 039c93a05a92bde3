import threading

from taskwire import CancellationToken, CancellationTokenSource


def test_listener_fires_once_even_when_cancelled_repeatedly() -> None:
    source = CancellationTokenSource()
    calls: list[str] = []
    source.token.on_cancellation_requested(lambda: calls.append("fired"))

    source.cancel()
    source.cancel()

    assert calls == ["fired"]
    assert source.token.is_cancellation_requested


def test_registering_after_cancel_runs_listener_immediately() -> None:
    source = CancellationTokenSource()
    source.cancel()
    calls: list[str] = []

    source.token.on_cancellation_requested(lambda: calls.append("late"))

    assert calls == ["late"]


def test_disposed_listener_is_not_called() -> None:
    source = CancellationTokenSource()
    calls: list[str] = []
    handle = source.token.on_cancellation_requested(lambda: calls.append("fired"))

    handle.dispose()
    source.cancel()

    assert calls == []
    assert handle.disposed


def test_fixed_tokens() -> None:
    calls: list[str] = []
    CancellationToken.NONE.on_cancellation_requested(lambda: calls.append("none"))
    CancellationToken.CANCELLED.on_cancellation_requested(lambda: calls.append("cancelled"))

    assert calls == ["cancelled"]
    assert not CancellationToken.NONE.is_cancellation_requested
    assert CancellationToken.CANCELLED.is_cancellation_requested


def test_concurrent_cancel_fires_each_listener_once() -> None:
    source = CancellationTokenSource()
    calls: list[int] = []
    lock = threading.Lock()

    def _record() -> None:
        with lock:
            calls.append(1)

    for _ in range(5):
        source.token.on_cancellation_requested(_record)

    barrier = threading.Barrier(8)

    def _cancel() -> None:
        barrier.wait()
        source.cancel()

    threads = [threading.Thread(target=_cancel) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(calls) == 5


def test_dispose_with_cancel() -> None:
    source = CancellationTokenSource()
    calls: list[str] = []
    source.token.on_cancellation_requested(lambda: calls.append("fired"))

    source.dispose(cancel=True)

    assert calls == ["fired"]


def test_dispose_without_cancel_drops_listeners() -> None:
    source = CancellationTokenSource()
    calls: list[str] = []
    source.token.on_cancellation_requested(lambda: calls.append("fired"))

    source.dispose()
    source.cancel()

    assert calls == []
