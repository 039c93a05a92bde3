from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError


def _default_config_path() -> Path:
    """Return bundled default configuration TOML path.

    Example:
        ```python
        path = _default_config_path()
        ```
    """
    return Path(__file__).with_name("default_config.toml")


def _read_config_toml(path: Path) -> dict[str, Any]:
    """Read configuration TOML and return a flat settings dictionary.

    Example:
        ```python
        raw = _read_config_toml(Path("/tmp/taskwire.toml"))
        ```
    """
    if not path.exists():
        return {
            "connectivity_probe_host": "8.8.8.8",
            "connectivity_probe_port": 53,
            "stream_chunk_size": 65536,
            "shell": "/bin/sh",
            "tasks_file": "tasks.toml",
        }
    try:
        raw = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
    flat: dict[str, Any] = {}
    for section in ("request", "tasks"):
        table = raw.get(section, {})
        if not isinstance(table, dict):
            raise ConfigError(f"'[{section}]' must be a TOML table")
        flat.update(table)
    return flat


_DEFAULT_CONFIG_RAW = _read_config_toml(_default_config_path())
DEFAULT_PROBE_HOST = str(_DEFAULT_CONFIG_RAW.get("connectivity_probe_host", "8.8.8.8"))
DEFAULT_PROBE_PORT = int(_DEFAULT_CONFIG_RAW.get("connectivity_probe_port", 53))
DEFAULT_STREAM_CHUNK_SIZE = int(_DEFAULT_CONFIG_RAW.get("stream_chunk_size", 65536))
DEFAULT_SHELL = str(_DEFAULT_CONFIG_RAW.get("shell", "/bin/sh"))
DEFAULT_TASKS_FILE = str(_DEFAULT_CONFIG_RAW.get("tasks_file", "tasks.toml"))


@dataclass(slots=True)
class RuntimeSettings:
    """Runtime settings shared by the request client and the task engines.

    Example:
        ```python
        settings = RuntimeSettings(stream_chunk_size=4096, shell="/bin/bash")
        ```
    """

    connectivity_probe_host: str = DEFAULT_PROBE_HOST
    connectivity_probe_port: int = DEFAULT_PROBE_PORT
    stream_chunk_size: int = DEFAULT_STREAM_CHUNK_SIZE
    shell: str = DEFAULT_SHELL
    tasks_file: str = DEFAULT_TASKS_FILE
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate settings after dataclass initialization.

        Example:
            ```python
            RuntimeSettings(connectivity_probe_port=53)
            ```
        """
        if not 0 < self.connectivity_probe_port < 65536:
            raise ValueError("connectivity_probe_port must be between 1 and 65535")
        if self.stream_chunk_size <= 0:
            raise ValueError("stream_chunk_size must be positive")
        if not self.shell.strip():
            raise ValueError("shell must be a non-empty path")
        if not self.tasks_file.strip():
            raise ValueError("tasks_file must be a non-empty file name")

    @classmethod
    def from_file(cls, config_path: str) -> "RuntimeSettings":
        """Create settings from a TOML file, falling back to bundled defaults.

        Example:
            ```python
            settings = RuntimeSettings.from_file("/tmp/taskwire.toml")
            ```
        """
        raw = _read_config_toml(Path(config_path))
        return cls(
            connectivity_probe_host=str(raw.get("connectivity_probe_host", DEFAULT_PROBE_HOST)),
            connectivity_probe_port=int(raw.get("connectivity_probe_port", DEFAULT_PROBE_PORT)),
            stream_chunk_size=int(raw.get("stream_chunk_size", DEFAULT_STREAM_CHUNK_SIZE)),
            shell=str(raw.get("shell", DEFAULT_SHELL)),
            tasks_file=str(raw.get("tasks_file", DEFAULT_TASKS_FILE)),
            config_path=config_path,
        )
