"""Cooperative cancellation tokens with one-shot listeners."""

from __future__ import annotations

import threading
from typing import Callable

from .events import Disposable, Emitter


class CancellationToken:
    """Passive cancellation signal handed to long-running operations.

    Example:
        ```python
        source = CancellationTokenSource()
        handle = source.token.on_cancellation_requested(lambda: print("stop"))
        ```
    """

    NONE: "CancellationToken"
    CANCELLED: "CancellationToken"

    def __init__(self) -> None:
        """Initialize a token that has not been cancelled.

        Example:
            ```python
            token = CancellationToken()
            ```
        """
        self._lock = threading.Lock()
        self._cancelled = False
        self._emitter: Emitter[None] | None = None

    @property
    def is_cancellation_requested(self) -> bool:
        """Return whether cancellation has been requested.

        Example:
            ```python
            if token.is_cancellation_requested:
                return
            ```
        """
        return self._cancelled

    def on_cancellation_requested(self, listener: Callable[[], None]) -> Disposable:
        """Register a listener that runs at most once, when cancellation is requested.

        Registering on an already-cancelled token runs the listener immediately.

        Example:
            ```python
            handle = token.on_cancellation_requested(transfer.cancel)
            handle.dispose()
            ```
        """
        with self._lock:
            if not self._cancelled:
                if self._emitter is None:
                    self._emitter = Emitter()
                return self._emitter.subscribe(lambda _: listener())
        listener()
        return Disposable()

    def _cancel(self) -> None:
        """Flip the token and fire each listener once; repeated calls are no-ops.

        Example:
            ```python
            token._cancel()
            ```
        """
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            emitter, self._emitter = self._emitter, None
        if emitter is not None:
            emitter.fire(None)
            emitter.dispose()

    def _dispose(self) -> None:
        """Drop listeners without cancelling.

        Example:
            ```python
            token._dispose()
            ```
        """
        with self._lock:
            emitter, self._emitter = self._emitter, None
        if emitter is not None:
            emitter.dispose()


class _FixedToken(CancellationToken):
    """Token whose state can never change.

    Example:
        ```python
        token = _FixedToken(cancelled=False)
        ```
    """

    def __init__(self, *, cancelled: bool) -> None:
        """Create a token frozen in the given state.

        Example:
            ```python
            token = _FixedToken(cancelled=True)
            ```
        """
        super().__init__()
        self._cancelled = cancelled

    def on_cancellation_requested(self, listener: Callable[[], None]) -> Disposable:
        """Run the listener immediately when cancelled, otherwise never.

        Example:
            ```python
            CancellationToken.NONE.on_cancellation_requested(print)
            ```
        """
        if self._cancelled:
            listener()
        return Disposable()

    def _cancel(self) -> None:
        """Ignore cancellation requests on a fixed token.

        Example:
            ```python
            CancellationToken.NONE._cancel()
            ```
        """


CancellationToken.NONE = _FixedToken(cancelled=False)
CancellationToken.CANCELLED = _FixedToken(cancelled=True)


class CancellationTokenSource:
    """Owner side of a cancellation token.

    Example:
        ```python
        source = CancellationTokenSource()
        await request(options, source.token)
        ```
    """

    def __init__(self) -> None:
        """Create a source with a fresh token.

        Example:
            ```python
            source = CancellationTokenSource()
            ```
        """
        self._token = CancellationToken()

    @property
    def token(self) -> CancellationToken:
        """Return the token to hand to operations.

        Example:
            ```python
            token = source.token
            ```
        """
        return self._token

    def cancel(self) -> None:
        """Request cancellation; safe to call repeatedly and from any thread.

        Example:
            ```python
            source.cancel()
            ```
        """
        self._token._cancel()

    def dispose(self, cancel: bool = False) -> None:
        """Release listeners, optionally cancelling first.

        Example:
            ```python
            source.dispose(cancel=True)
            ```
        """
        if cancel:
            self.cancel()
        self._token._dispose()
