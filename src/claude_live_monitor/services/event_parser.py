"""Decode Claude Code session log lines into typed deltas."""

from datetime import datetime
from typing import Any, Callable

import orjson

from claude_live_monitor.types.deltas import (
    Delta,
    MessageDelta,
    ModelDelta,
    SessionFieldsDelta,
    TodoReplaceDelta,
    ToolCompleteDelta,
    ToolStartDelta,
    UsageDelta,
)
from claude_live_monitor.types.sessions import TodoItem, TodoStatus
from claude_live_monitor.utils.path_codec import basename

TODO_TOOL = "TodoWrite"
TASK_TOOL = "Task"
PREVIEW_LENGTH = 100
ARGUMENT_LENGTH = 50

_USAGE_FIELDS = (
    "input_tokens",
    "output_tokens",
    "cache_read_input_tokens",
    "cache_creation_input_tokens",
)


def parse_line(line: str, now: Callable[[], datetime] = datetime.now) -> list[Delta]:
    """Parse one JSONL line into zero or more deltas.

    Never raises: malformed or unrecognized lines yield an empty list.
    """
    try:
        raw = orjson.loads(line)
    except orjson.JSONDecodeError:
        return []

    if not isinstance(raw, dict):
        return []

    deltas: list[Delta] = []

    fields = SessionFieldsDelta(
        session_id=_str_or_none(raw.get("sessionId")),
        cwd=_str_or_none(raw.get("cwd")),
        git_branch=_str_or_none(raw.get("gitBranch")),
    )
    if fields != SessionFieldsDelta():
        deltas.append(fields)

    message = raw.get("message")
    if isinstance(message, dict):
        deltas.extend(_parse_message(message, now))

    return deltas


def _parse_message(message: dict, now: Callable[[], datetime]) -> list[Delta]:
    deltas: list[Delta] = []

    model = message.get("model")
    if isinstance(model, str):
        deltas.append(ModelDelta(model=model))

    raw_usage = message.get("usage")
    if isinstance(raw_usage, dict):
        counters = {name: _int_or_none(raw_usage.get(name)) for name in _USAGE_FIELDS}
        if any(v is not None for v in counters.values()):
            deltas.append(UsageDelta(**counters))

    content = message.get("content")
    if not isinstance(content, list):
        return deltas

    for block in content:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type")
        if block_type == "text":
            text = block.get("text")
            if isinstance(text, str):
                lines = text.splitlines()
                preview = lines[0] if lines else ""
                deltas.append(MessageDelta(preview=preview[:PREVIEW_LENGTH], timestamp=now()))
        elif block_type == "tool_use":
            deltas.extend(_parse_tool_use(block, now))

    # Tool results arrive in user messages and close the matching tool call
    if message.get("role") == "user":
        for block in content:
            if not isinstance(block, dict) or block.get("type") != "tool_result":
                continue
            tool_use_id = block.get("tool_use_id")
            if isinstance(tool_use_id, str):
                deltas.append(ToolCompleteDelta(tool_id=tool_use_id, timestamp=now()))

    return deltas


def _parse_tool_use(block: dict, now: Callable[[], datetime]) -> list[Delta]:
    tool_id = block.get("id")
    name = block.get("name")
    if not isinstance(tool_id, str) or not isinstance(name, str):
        return []

    deltas: list[Delta] = []
    tool_input = block.get("input")

    if name == TODO_TOOL and isinstance(tool_input, dict):
        todos = tool_input.get("todos")
        if isinstance(todos, list):
            deltas.append(TodoReplaceDelta(todos=parse_todos(todos)))

    is_task = name == TASK_TOOL
    task_description = ""
    task_subagent_type = ""
    if is_task and isinstance(tool_input, dict):
        task_description = _str_or_none(tool_input.get("description")) or ""
        task_subagent_type = _str_or_none(tool_input.get("subagent_type")) or ""

    deltas.append(ToolStartDelta(
        tool_id=tool_id,
        name=name,
        argument=extract_tool_argument(tool_input),
        timestamp=now(),
        is_task=is_task,
        task_description=task_description,
        task_subagent_type=task_subagent_type,
    ))
    return deltas


def extract_tool_argument(tool_input: Any) -> str | None:
    """Pick a short, human-readable argument for a running tool."""
    if not isinstance(tool_input, dict):
        return None

    pattern = tool_input.get("pattern")
    if isinstance(pattern, str):
        return pattern
    command = tool_input.get("command")
    if isinstance(command, str):
        return command[:ARGUMENT_LENGTH]
    file_path = tool_input.get("file_path")
    if isinstance(file_path, str):
        return basename(file_path)
    query = tool_input.get("query")
    if isinstance(query, str):
        return query[:ARGUMENT_LENGTH]
    prompt = tool_input.get("prompt")
    if isinstance(prompt, str):
        return prompt[:ARGUMENT_LENGTH]
    return None


def parse_todos(raw_todos: list) -> tuple[TodoItem, ...]:
    """Build the full todo list from a TodoWrite input.

    Items without string content and status are dropped.
    Unknown statuses fall back to pending.
    """
    todos = []
    for entry in raw_todos:
        if not isinstance(entry, dict):
            continue
        content = entry.get("content")
        status = entry.get("status")
        if not isinstance(content, str) or not isinstance(status, str):
            continue
        try:
            todo_status = TodoStatus(status)
        except ValueError:
            todo_status = TodoStatus.PENDING
        todos.append(TodoItem(content=content, status=todo_status))
    return tuple(todos)


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _int_or_none(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value
