"""Type definitions for Claude Live Monitor."""

from claude_live_monitor.types.sessions import (
    Session,
    SessionState,
    TokenUsage,
    ToolExecution,
    AgentInfo,
    TodoItem,
    TodoStatus,
)
from claude_live_monitor.types.deltas import (
    Delta,
    SessionFieldsDelta,
    ModelDelta,
    UsageDelta,
    MessageDelta,
    ToolStartDelta,
    ToolCompleteDelta,
    TodoReplaceDelta,
)
from claude_live_monitor.types.usage import (
    LimitData,
    ExtraUsage,
    UsageSnapshot,
    UsageLevel,
    RefreshMode,
    MonitoringMode,
)
from claude_live_monitor.types.stats import DailyStats

__all__ = [
    "Session",
    "SessionState",
    "TokenUsage",
    "ToolExecution",
    "AgentInfo",
    "TodoItem",
    "TodoStatus",
    "Delta",
    "SessionFieldsDelta",
    "ModelDelta",
    "UsageDelta",
    "MessageDelta",
    "ToolStartDelta",
    "ToolCompleteDelta",
    "TodoReplaceDelta",
    "LimitData",
    "ExtraUsage",
    "UsageSnapshot",
    "UsageLevel",
    "RefreshMode",
    "MonitoringMode",
    "DailyStats",
]
