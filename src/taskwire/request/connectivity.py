from __future__ import annotations

import logging
import socket
from typing import Protocol

from ..config import DEFAULT_PROBE_HOST, DEFAULT_PROBE_PORT

logger = logging.getLogger(__name__)


class ConnectivityProbe(Protocol):
    def is_online(self) -> bool:
        """Report synchronously whether the host has network connectivity.

        Example:
            ```python
            if not probe.is_online():
                raise OfflineError()
            ```
        """
        ...


class HostConnectivity:
    """Routing-table connectivity check; a UDP connect sends no packets.

    Example:
        ```python
        online = HostConnectivity().is_online()
        ```
    """

    def __init__(self, host: str = DEFAULT_PROBE_HOST, port: int = DEFAULT_PROBE_PORT) -> None:
        """Store the probe address.

        Example:
            ```python
            probe = HostConnectivity("1.1.1.1", 53)
            ```
        """
        self._host = host
        self._port = port

    def is_online(self) -> bool:
        """Return False when the host has no route to the probe address.

        Example:
            ```python
            probe.is_online()
            ```
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
                sock.connect((self._host, self._port))
        except OSError as exc:
            logger.debug("Connectivity probe to %s:%s failed: %s", self._host, self._port, exc)
            return False
        return True
