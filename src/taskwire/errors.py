"""Error hierarchy for taskwire."""

from __future__ import annotations


class TaskwireError(Exception):
    """Base exception for all taskwire errors."""


class RequestError(TaskwireError):
    """Failure of a single outbound request."""


class OfflineError(RequestError):
    """Host reported no network connectivity before the request started."""

    def __init__(self) -> None:
        """Create the offline error with its fixed message.

        Example:
            ```python
            raise OfflineError()
            ```
        """
        super().__init__("Unable to make a connection to the Internet. Please check your network.")


class TransportError(RequestError):
    """Low-level transfer failure (DNS, refused connection, reset)."""

    def __init__(self, status_text: str | None = None) -> None:
        """Create a transport error from the transport's status text.

        Example:
            ```python
            err = TransportError("connection refused")
            ```
        """
        self.status_text = status_text or None
        super().__init__(f"Request failed: {status_text}" if status_text else "Request failed")


class RequestTimeoutError(RequestError):
    """Configured deadline elapsed before the response body was complete."""

    def __init__(self, timeout_ms: int | None) -> None:
        """Create a timeout error naming the configured duration.

        Example:
            ```python
            err = RequestTimeoutError(5000)
            ```
        """
        self.timeout_ms = timeout_ms
        super().__init__(f"Request timeout: {timeout_ms}ms" if timeout_ms else "Request timeout")


class RequestCancelledError(RequestError):
    """Caller aborted the request through its cancellation token."""

    def __init__(self) -> None:
        """Create the cancellation error.

        Example:
            ```python
            raise RequestCancelledError()
            ```
        """
        super().__init__("Canceled")


class RequestSetupError(RequestError):
    """Request could not be wired up before the transfer began."""


class EngineError(TaskwireError):
    """Execution engine selection or construction error."""


class UnsupportedEngineError(EngineError):
    """Requested execution mode has no implementation in this deployment."""

    def __init__(self, mode: object, message: str) -> None:
        """Create the error for an unsupported execution mode.

        Example:
            ```python
            err = UnsupportedEngineError(ExecutionMode.PROCESS, "not supported")
            ```
        """
        self.mode = mode
        super().__init__(message)


class ConfigError(TaskwireError):
    """Configuration file is missing required data or is malformed."""


def is_cancellation_error(exc: BaseException) -> bool:
    """Return True when an error is the result of caller cancellation.

    Example:
        ```python
        if not is_cancellation_error(exc):
            logger.error("request failed: %s", exc)
        ```
    """
    return isinstance(exc, RequestCancelledError)
