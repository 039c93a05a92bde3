from .cancellation import CancellationToken, CancellationTokenSource
from .config import RuntimeSettings
from .errors import (
    ConfigError,
    EngineError,
    OfflineError,
    RequestCancelledError,
    RequestError,
    RequestSetupError,
    RequestTimeoutError,
    TaskwireError,
    TransportError,
    UnsupportedEngineError,
    is_cancellation_error,
)
from .execution import EngineSelector, ExecutionMode, TaskSpec, TerminalEngine
from .request import RequestOptions, RequestResult

__all__ = [
    "CancellationToken",
    "CancellationTokenSource",
    "ConfigError",
    "EngineError",
    "EngineSelector",
    "ExecutionMode",
    "OfflineError",
    "RequestCancelledError",
    "RequestError",
    "RequestOptions",
    "RequestResult",
    "RequestSetupError",
    "RequestTimeoutError",
    "RuntimeSettings",
    "TaskSpec",
    "TaskwireError",
    "TerminalEngine",
    "TransportError",
    "UnsupportedEngineError",
    "is_cancellation_error",
]
