"""Tests for claude_live_monitor.services.event_parser."""

from datetime import datetime

import pytest

from claude_live_monitor.services.event_parser import extract_tool_argument, parse_line, parse_todos
from claude_live_monitor.types.deltas import (
    MessageDelta,
    ModelDelta,
    SessionFieldsDelta,
    TodoReplaceDelta,
    ToolCompleteDelta,
    ToolStartDelta,
    UsageDelta,
)
from claude_live_monitor.types.sessions import TodoItem, TodoStatus
from helpers import assistant_line, make_line, tool_result_line, tool_use_block

NOW = datetime(2026, 2, 13, 12, 0, 0)


def _parse(line):
    return parse_line(line, now=lambda: NOW)


# ---------------------------------------------------------------------------
# Tolerance
# ---------------------------------------------------------------------------

class TestMalformedInput:
    @pytest.mark.parametrize("line", [
        "",
        "not json",
        '{"truncated": ',
        "[1, 2, 3]",
        '"just a string"',
        "{}",
        '{"unknownField": 42}',
    ])
    def test_unrecognized_lines_yield_nothing(self, line):
        assert _parse(line) == []

    def test_message_not_an_object_is_ignored(self):
        assert _parse(make_line(message="hello")) == []

    def test_string_content_is_ignored(self):
        deltas = _parse(make_line(message={"role": "user", "content": "plain text prompt"}))
        assert deltas == []


# ---------------------------------------------------------------------------
# Top-level fields
# ---------------------------------------------------------------------------

class TestSessionFields:
    def test_session_fields(self):
        deltas = _parse(make_line(sessionId="abc-123", cwd="/home/wiz/app", gitBranch="main"))
        assert deltas == [SessionFieldsDelta(session_id="abc-123", cwd="/home/wiz/app", git_branch="main")]

    def test_partial_fields_leave_others_unset(self):
        deltas = _parse(make_line(gitBranch="feature/x"))
        assert deltas == [SessionFieldsDelta(git_branch="feature/x")]

    def test_non_string_fields_ignored(self):
        assert _parse(make_line(sessionId=5, cwd=None)) == []


# ---------------------------------------------------------------------------
# Message fields
# ---------------------------------------------------------------------------

class TestMessage:
    def test_model(self):
        deltas = _parse(assistant_line(model="claude-sonnet-4-5"))
        assert ModelDelta(model="claude-sonnet-4-5") in deltas

    def test_usage_all_fields(self):
        usage = {
            "input_tokens": 10,
            "output_tokens": 20,
            "cache_read_input_tokens": 30,
            "cache_creation_input_tokens": 40,
        }
        deltas = _parse(assistant_line(usage=usage))
        assert UsageDelta(10, 20, 30, 40) in deltas

    def test_usage_missing_fields_are_none(self):
        deltas = _parse(assistant_line(usage={"output_tokens": 7}))
        usage = [d for d in deltas if isinstance(d, UsageDelta)]
        assert usage == [UsageDelta(output_tokens=7)]

    def test_usage_zero_is_present(self):
        deltas = _parse(assistant_line(usage={"input_tokens": 0}))
        assert UsageDelta(input_tokens=0) in deltas

    def test_text_preview_is_first_line(self):
        deltas = _parse(assistant_line(content=[{"type": "text", "text": "Done.\nSecond line"}]))
        assert MessageDelta(preview="Done.", timestamp=NOW) in deltas

    def test_text_preview_truncated_to_100(self):
        text = "x" * 250
        deltas = _parse(assistant_line(content=[{"type": "text", "text": text}]))
        message = [d for d in deltas if isinstance(d, MessageDelta)][0]
        assert message.preview == "x" * 100

    def test_empty_text(self):
        deltas = _parse(assistant_line(content=[{"type": "text", "text": ""}]))
        assert MessageDelta(preview="", timestamp=NOW) in deltas


# ---------------------------------------------------------------------------
# Tool use / results
# ---------------------------------------------------------------------------

class TestToolUse:
    def test_tool_start(self):
        deltas = _parse(assistant_line(content=[tool_use_block("toolu_1", "Bash", command="ls -la")]))
        starts = [d for d in deltas if isinstance(d, ToolStartDelta)]
        assert len(starts) == 1
        assert starts[0].tool_id == "toolu_1"
        assert starts[0].name == "Bash"
        assert starts[0].argument == "ls -la"
        assert starts[0].timestamp == NOW
        assert starts[0].is_task is False

    def test_tool_without_id_is_skipped(self):
        block = {"type": "tool_use", "name": "Read", "input": {}}
        assert not [d for d in _parse(assistant_line(content=[block])) if isinstance(d, ToolStartDelta)]

    def test_task_tool_carries_agent_details(self):
        block = tool_use_block("toolu_t", "Task", description="Explore repo",
                               subagent_type="Explore", prompt="Look around")
        start = [d for d in _parse(assistant_line(content=[block])) if isinstance(d, ToolStartDelta)][0]
        assert start.is_task is True
        assert start.task_description == "Explore repo"
        assert start.task_subagent_type == "Explore"

    def test_tool_result_in_user_message(self):
        deltas = _parse(tool_result_line("toolu_1", "toolu_2"))
        assert deltas == [
            ToolCompleteDelta(tool_id="toolu_1", timestamp=NOW),
            ToolCompleteDelta(tool_id="toolu_2", timestamp=NOW),
        ]

    def test_tool_result_in_assistant_message_ignored(self):
        content = [{"type": "tool_result", "tool_use_id": "toolu_1"}]
        deltas = _parse(assistant_line(content=content))
        assert not [d for d in deltas if isinstance(d, ToolCompleteDelta)]


class TestToolArgument:
    def test_pattern_not_truncated(self):
        pattern = "p" * 80
        assert extract_tool_argument({"pattern": pattern, "command": "x"}) == pattern

    def test_command_truncated(self):
        assert extract_tool_argument({"command": "c" * 80}) == "c" * 50

    def test_file_path_basename(self):
        assert extract_tool_argument({"file_path": "/home/wiz/app/src/main.py"}) == "main.py"

    def test_query_and_prompt_truncated(self):
        assert extract_tool_argument({"query": "q" * 60}) == "q" * 50
        assert extract_tool_argument({"prompt": "r" * 60}) == "r" * 50

    def test_priority_order(self):
        tool_input = {"prompt": "p", "query": "q", "file_path": "/a/b.txt", "command": "cmd"}
        assert extract_tool_argument(tool_input) == "cmd"

    def test_no_recognized_field(self):
        assert extract_tool_argument({"url": "https://example.com"}) is None

    def test_non_dict_input(self):
        assert extract_tool_argument(None) is None
        assert extract_tool_argument(["command"]) is None


# ---------------------------------------------------------------------------
# Todos
# ---------------------------------------------------------------------------

class TestTodos:
    def test_todo_write_emits_replace_then_start(self):
        todos = [
            {"content": "Write tests", "status": "completed"},
            {"content": "Fix bug", "status": "in_progress"},
            {"content": "Ship", "status": "pending"},
        ]
        deltas = _parse(assistant_line(content=[tool_use_block("toolu_todo", "TodoWrite", todos=todos)]))
        kinds = [type(d) for d in deltas]
        assert kinds.index(TodoReplaceDelta) < kinds.index(ToolStartDelta)
        replace = [d for d in deltas if isinstance(d, TodoReplaceDelta)][0]
        assert replace.todos == (
            TodoItem("Write tests", TodoStatus.COMPLETED),
            TodoItem("Fix bug", TodoStatus.IN_PROGRESS),
            TodoItem("Ship", TodoStatus.PENDING),
        )

    def test_unknown_status_defaults_to_pending(self):
        assert parse_todos([{"content": "Later", "status": "blocked"}]) == (
            TodoItem("Later", TodoStatus.PENDING),
        )

    def test_incomplete_items_skipped(self):
        assert parse_todos([{"content": "no status"}, {"status": "pending"}, "junk"]) == ()

    def test_empty_list_clears(self):
        deltas = _parse(assistant_line(content=[tool_use_block("t", "TodoWrite", todos=[])]))
        assert TodoReplaceDelta(todos=()) in deltas

    def test_other_tool_with_todos_is_not_a_todo_write(self):
        deltas = _parse(assistant_line(content=[tool_use_block("t", "Bash", todos=[])]))
        assert not [d for d in deltas if isinstance(d, TodoReplaceDelta)]
