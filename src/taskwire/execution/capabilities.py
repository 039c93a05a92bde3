from __future__ import annotations

from dataclasses import dataclass

from .types import ExecutionMode


@dataclass(frozen=True, slots=True)
class EngineCapabilities:
    """Capability flags advertised for an execution mode.

    Example:
        ```python
        caps = EngineCapabilities(True, True, True, False)
        ```
    """

    supported: bool
    supports_reconnect: bool
    supports_timeout: bool
    supports_legacy_configuration: bool


def capabilities_for_mode(mode: ExecutionMode | str) -> EngineCapabilities:
    """Return capability flags for an execution mode in this deployment.

    Example:
        ```python
        caps = capabilities_for_mode(ExecutionMode.TERMINAL)
        ```
    """
    if mode in {ExecutionMode.TERMINAL, ExecutionMode.TERMINAL.value}:
        return EngineCapabilities(True, True, True, False)
    # Process engine is declared but has no implementation here.
    return EngineCapabilities(False, False, False, False)
