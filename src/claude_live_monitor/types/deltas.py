"""Typed facts extracted from a single session log line."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from claude_live_monitor.types.sessions import TodoItem


@dataclass(frozen=True)
class SessionFieldsDelta:
    session_id: Optional[str] = None
    cwd: Optional[str] = None
    git_branch: Optional[str] = None


@dataclass(frozen=True)
class ModelDelta:
    model: str


@dataclass(frozen=True)
class UsageDelta:
    """Running token totals. None means the field was absent."""
    input_tokens: Optional[int] = None
    output_tokens: Optional[int] = None
    cache_read_input_tokens: Optional[int] = None
    cache_creation_input_tokens: Optional[int] = None


@dataclass(frozen=True)
class MessageDelta:
    preview: str
    timestamp: datetime


@dataclass(frozen=True)
class ToolStartDelta:
    tool_id: str
    name: str
    argument: Optional[str]
    timestamp: datetime
    is_task: bool = False
    task_description: str = ""
    task_subagent_type: str = ""


@dataclass(frozen=True)
class ToolCompleteDelta:
    tool_id: str
    timestamp: datetime


@dataclass(frozen=True)
class TodoReplaceDelta:
    todos: tuple[TodoItem, ...]


Delta = Union[
    SessionFieldsDelta,
    ModelDelta,
    UsageDelta,
    MessageDelta,
    ToolStartDelta,
    ToolCompleteDelta,
    TodoReplaceDelta,
]
