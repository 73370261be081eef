"""Daily activity summary types."""

from dataclasses import dataclass


@dataclass
class DailyStats:
    date: str = ""  # YYYY-MM-DD
    message_count: int = 0
    tool_call_count: int = 0
    session_count: int = 0
    tokens_used: int = 0
