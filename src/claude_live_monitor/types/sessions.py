"""Session descriptor and live session state types."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from claude_live_monitor.types.errors import DecodeError
from claude_live_monitor.utils.path_codec import display_name, project_key

# Context window size used for the context percentage
CONTEXT_WINDOW = 200_000

RECENT_TOOLS_CAPACITY = 10


@dataclass(frozen=True)
class Session:
    """An active CLI session published through an ide/*.lock descriptor."""
    pid: int
    workspace_folders: tuple[str, ...]
    ide_name: str
    transport: Optional[str] = None
    running_in_windows: Optional[bool] = None

    @property
    def id(self) -> str:
        # Several sessions may share one pid, so the workspace wins
        return self.workspace_folders[0] if self.workspace_folders else str(self.pid)

    @property
    def project_key(self) -> str | None:
        if not self.workspace_folders:
            return None
        return project_key(self.workspace_folders[0])

    @property
    def display_name(self) -> str:
        return display_name(self.workspace_folders[0] if self.workspace_folders else "")

    @classmethod
    def from_descriptor(cls, data: Any) -> "Session":
        """Build a Session from a decoded lock-file object.

        Raises DecodeError when a required field is missing or mistyped.
        """
        if not isinstance(data, dict):
            raise DecodeError("descriptor is not an object")

        pid = data.get("pid")
        if not isinstance(pid, int) or isinstance(pid, bool):
            raise DecodeError("descriptor has no integer pid")

        folders = data.get("workspaceFolders")
        if not isinstance(folders, list) or not all(isinstance(f, str) for f in folders):
            raise DecodeError("descriptor has no workspaceFolders list")

        ide_name = data.get("ideName")
        if not isinstance(ide_name, str):
            raise DecodeError("descriptor has no ideName")

        transport = data.get("transport")
        running_in_windows = data.get("runningInWindows")
        return cls(
            pid=pid,
            workspace_folders=tuple(folders),
            ide_name=ide_name,
            transport=transport if isinstance(transport, str) else None,
            running_in_windows=running_in_windows if isinstance(running_in_windows, bool) else None,
        )


@dataclass
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_input_tokens: int = 0
    cache_creation_input_tokens: int = 0

    @property
    def total(self) -> int:
        return (self.input_tokens + self.output_tokens +
                self.cache_read_input_tokens + self.cache_creation_input_tokens)

    @property
    def context_percentage(self) -> float:
        return min(100.0, self.total / CONTEXT_WINDOW * 100)


@dataclass
class ToolExecution:
    """A tool call, running until its result arrives."""
    id: str
    name: str
    argument: Optional[str] = None
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.end_time is None

    @property
    def duration_ms(self) -> int | None:
        if self.end_time is None:
            return None
        return int((self.end_time - self.start_time).total_seconds() * 1000)


@dataclass
class AgentInfo:
    """A background agent launched through the Task tool."""
    id: str
    name: str
    description: str = ""
    start_time: datetime = field(default_factory=datetime.now)
    is_active: bool = True


class TodoStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class TodoItem:
    content: str
    status: TodoStatus = TodoStatus.PENDING


@dataclass
class SessionState:
    session_id: str = ""
    model: str = ""
    cwd: str = ""
    git_branch: str = ""
    token_usage: TokenUsage = field(default_factory=TokenUsage)
    last_message: str = ""
    last_message_time: Optional[datetime] = None
    active_tools: list[ToolExecution] = field(default_factory=list)
    recent_tools: list[ToolExecution] = field(default_factory=list)
    agents: list[AgentInfo] = field(default_factory=list)
    todos: list[TodoItem] = field(default_factory=list)
    is_connected: bool = False
    last_update_time: Optional[datetime] = None

    @property
    def context_percentage(self) -> float:
        return self.token_usage.context_percentage

    @property
    def has_active_tools(self) -> bool:
        return bool(self.active_tools)

    @property
    def current_tool_name(self) -> str | None:
        return self.active_tools[0].name if self.active_tools else None
