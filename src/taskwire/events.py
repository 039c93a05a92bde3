"""Minimal observer primitives: disposables, emitters and event relays."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

Listener = Callable[[T], None]


class Disposable:
    """Handle that releases a subscription or resource exactly once.

    Example:
        ```python
        handle = Disposable(lambda: print("released"))
        handle.dispose()
        ```
    """

    def __init__(self, callback: Callable[[], None] | None = None) -> None:
        """Wrap a release callback.

        Example:
            ```python
            handle = Disposable(listeners.clear)
            ```
        """
        self._callback = callback
        self._lock = threading.Lock()

    @property
    def disposed(self) -> bool:
        """Return whether the release callback has already run.

        Example:
            ```python
            assert handle.disposed
            ```
        """
        return self._callback is None

    def dispose(self) -> None:
        """Run the release callback; later calls are no-ops.

        Example:
            ```python
            handle.dispose()
            handle.dispose()
            ```
        """
        with self._lock:
            callback, self._callback = self._callback, None
        if callback is not None:
            callback()


class Event(Protocol[T_co]):
    """Subscription surface of an emitter.

    Example:
        ```python
        handle = emitter.event(lambda payload: print(payload))
        ```
    """

    def __call__(self, listener: Callable[[T_co], None]) -> Disposable:
        """Subscribe a listener and return its disposable.

        Example:
            ```python
            handle = engine.on_state_change(print)
            ```
        """
        ...


class Emitter(Generic[T]):
    """Fire payloads to subscribed listeners.

    Example:
        ```python
        emitter: Emitter[str] = Emitter()
        emitter.event(print)
        emitter.fire("started")
        ```
    """

    def __init__(self) -> None:
        """Initialize an emitter with no listeners.

        Example:
            ```python
            emitter = Emitter()
            ```
        """
        self._lock = threading.Lock()
        self._listeners: list[Callable[[T], None]] = []
        self._disposed = False

    @property
    def event(self) -> Event[T]:
        """Return the subscription surface exposed to consumers.

        Example:
            ```python
            on_change = emitter.event
            ```
        """
        return self.subscribe

    @property
    def listener_count(self) -> int:
        """Return the number of live listeners.

        Example:
            ```python
            assert emitter.listener_count == 0
            ```
        """
        with self._lock:
            return len(self._listeners)

    def subscribe(self, listener: Callable[[T], None]) -> Disposable:
        """Register a listener and return a disposable that removes it.

        Example:
            ```python
            handle = emitter.subscribe(print)
            handle.dispose()
            ```
        """
        with self._lock:
            if self._disposed:
                return Disposable()
            self._listeners.append(listener)
        return Disposable(lambda: self._remove(listener))

    def fire(self, payload: T) -> None:
        """Deliver a payload to a snapshot of the current listeners.

        Example:
            ```python
            emitter.fire(TaskEvent(TaskEventKind.START, "build", "term-1"))
            ```
        """
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(payload)
            except Exception:
                logger.exception("Event listener %r failed", listener)

    def dispose(self) -> None:
        """Drop all listeners and refuse new subscriptions.

        Example:
            ```python
            emitter.dispose()
            ```
        """
        with self._lock:
            self._disposed = True
            self._listeners.clear()

    def _remove(self, listener: Callable[[T], None]) -> None:
        """Remove one registration of a listener if it is still present.

        Example:
            ```python
            emitter._remove(print)
            ```
        """
        with self._lock:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass


def relay(
    source: Event[T],
    target: Emitter[T],
    *,
    before: Callable[[T], None] | None = None,
) -> Disposable:
    """Forward every payload from `source` to `target`, running `before` first.

    Example:
        ```python
        handle = relay(engine.on_reconnect, selector_emitter)
        ```
    """

    def _forward(payload: T) -> None:
        """Run the pre-hook and re-fire one payload.

        Example:
            ```python
            _forward(event)
            ```
        """
        if before is not None:
            before(payload)
        target.fire(payload)

    return source(_forward)
