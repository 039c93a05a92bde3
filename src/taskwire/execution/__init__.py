from .capabilities import EngineCapabilities, capabilities_for_mode
from .engine import TaskEngine
from .selector import EngineSelector
from .terminal_engine import TerminalEngine
from .types import ExecutionMode, ReconnectEvent, TaskEvent, TaskEventKind, TaskOutcome, TaskSpec
from .workspace import (
    WorkspaceFolder,
    WorkspaceFolderConfiguration,
    find_task,
    read_folder_configuration,
    resolve_execution_mode,
    resolve_workspace_configuration,
)

__all__ = [
    "EngineCapabilities",
    "EngineSelector",
    "ExecutionMode",
    "ReconnectEvent",
    "TaskEngine",
    "TaskEvent",
    "TaskEventKind",
    "TaskOutcome",
    "TaskSpec",
    "TerminalEngine",
    "WorkspaceFolder",
    "WorkspaceFolderConfiguration",
    "capabilities_for_mode",
    "find_task",
    "read_folder_configuration",
    "resolve_execution_mode",
    "resolve_workspace_configuration",
]
