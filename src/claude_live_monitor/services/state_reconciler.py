"""Fold parsed log deltas into the authoritative session state."""

import copy
import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

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
from claude_live_monitor.types.sessions import (
    RECENT_TOOLS_CAPACITY,
    AgentInfo,
    SessionState,
    ToolExecution,
)

logger = logging.getLogger(__name__)


class SessionStateReconciler:
    """Owns a single SessionState and applies deltas to it in order.

    Token usage records carry running totals, so each present counter
    overwrites the previous value (last write wins per field).
    """

    def __init__(self, on_agent_completed: Optional[Callable[[AgentInfo], None]] = None):
        self._state = SessionState()
        self._on_agent_completed = on_agent_completed
        # Set while history is replayed; completions then update state silently
        self.replaying = False

    @property
    def state(self) -> SessionState:
        return self._state

    def snapshot(self) -> SessionState:
        """Return an independent copy for consumers."""
        return copy.deepcopy(self._state)

    def reset(self, cwd: str = ""):
        self._state = SessionState(cwd=cwd)

    def set_connected(self, connected: bool):
        self._state.is_connected = connected

    def touch(self, now: datetime | None = None):
        self._state.last_update_time = now or datetime.now()

    def apply_all(self, deltas: Iterable[Delta]):
        for delta in deltas:
            self.apply(delta)

    def apply(self, delta: Delta):
        state = self._state

        if isinstance(delta, SessionFieldsDelta):
            if delta.session_id is not None:
                state.session_id = delta.session_id
            if delta.cwd is not None:
                state.cwd = delta.cwd
            if delta.git_branch is not None:
                state.git_branch = delta.git_branch

        elif isinstance(delta, ModelDelta):
            state.model = delta.model

        elif isinstance(delta, UsageDelta):
            usage = state.token_usage
            if delta.input_tokens is not None:
                usage.input_tokens = delta.input_tokens
            if delta.output_tokens is not None:
                usage.output_tokens = delta.output_tokens
            if delta.cache_read_input_tokens is not None:
                usage.cache_read_input_tokens = delta.cache_read_input_tokens
            if delta.cache_creation_input_tokens is not None:
                usage.cache_creation_input_tokens = delta.cache_creation_input_tokens

        elif isinstance(delta, MessageDelta):
            state.last_message = delta.preview
            state.last_message_time = delta.timestamp

        elif isinstance(delta, ToolStartDelta):
            self._start_tool(delta)

        elif isinstance(delta, ToolCompleteDelta):
            self._complete_tool(delta)

        elif isinstance(delta, TodoReplaceDelta):
            state.todos = list(delta.todos)

        else:
            logger.debug("Ignoring unknown delta %r", delta)

    def _start_tool(self, delta: ToolStartDelta):
        state = self._state
        # Re-delivered lines must not duplicate a running tool
        if any(t.id == delta.tool_id for t in state.active_tools):
            return
        state.active_tools.append(ToolExecution(
            id=delta.tool_id,
            name=delta.name,
            argument=delta.argument,
            start_time=delta.timestamp,
        ))
        if delta.is_task and not any(a.id == delta.tool_id for a in state.agents):
            state.agents.append(AgentInfo(
                id=delta.tool_id,
                name=delta.task_subagent_type or delta.name,
                description=delta.task_description,
                start_time=delta.timestamp,
            ))

    def _complete_tool(self, delta: ToolCompleteDelta):
        state = self._state
        index = next(
            (i for i, t in enumerate(state.active_tools) if t.id == delta.tool_id),
            None,
        )
        if index is None:
            # Start event fell outside the bootstrap window
            return

        tool = state.active_tools.pop(index)
        tool.end_time = delta.timestamp
        state.recent_tools.insert(0, tool)
        del state.recent_tools[RECENT_TOOLS_CAPACITY:]

        for agent in state.agents:
            if agent.id == delta.tool_id and agent.is_active:
                agent.is_active = False
                if self._on_agent_completed is not None and not self.replaying:
                    self._on_agent_completed(copy.copy(agent))
