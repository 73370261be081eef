"""Summarize the CLI's stats-cache.json into today's activity."""

import logging
from datetime import date
from pathlib import Path
from typing import Any

import orjson

from claude_live_monitor.types.stats import DailyStats

logger = logging.getLogger(__name__)


def load_daily_stats(path: str | Path, today: date | None = None) -> DailyStats | None:
    """Read the stats cache and summarize today's entry.

    Falls back to the most recent day when today has no entry yet.
    Returns None if the file is missing or malformed.
    """
    path = Path(path)
    try:
        data = orjson.loads(path.read_bytes())
    except FileNotFoundError:
        logger.debug("Stats cache not found: %s", path)
        return None
    except (OSError, orjson.JSONDecodeError):
        logger.warning("Failed to read stats cache %s", path, exc_info=True)
        return None

    if not isinstance(data, dict):
        return None

    today_str = (today or date.today()).isoformat()
    stats = DailyStats()

    activity = _dated_entries(data.get("dailyActivity"))
    chosen = next((a for a in activity if a["date"] == today_str), None)
    if chosen is None and activity:
        chosen = activity[0]
    if chosen is not None:
        stats.date = chosen["date"]
        stats.message_count = _count(chosen.get("messageCount"))
        stats.tool_call_count = _count(chosen.get("toolCallCount"))
        stats.session_count = _count(chosen.get("sessionCount"))

    tokens = _dated_entries(data.get("dailyModelTokens"))
    target = stats.date or today_str
    day_tokens = next((t for t in tokens if t["date"] == target), None)
    if day_tokens is not None and isinstance(day_tokens.get("tokensByModel"), dict):
        stats.tokens_used = _sum_tokens(day_tokens["tokensByModel"])
    elif tokens and isinstance(tokens[0].get("tokensByModel"), dict):
        stats.tokens_used = _sum_tokens(tokens[0]["tokensByModel"])
        if not stats.date:
            stats.date = tokens[0]["date"]

    return stats


def _dated_entries(raw: Any) -> list[dict]:
    """Entries carrying a string date, newest first."""
    if not isinstance(raw, list):
        return []
    entries = [e for e in raw if isinstance(e, dict) and isinstance(e.get("date"), str)]
    entries.sort(key=lambda e: e["date"], reverse=True)
    return entries


def _count(value: Any) -> int:
    return value if isinstance(value, int) and not isinstance(value, bool) else 0


def _sum_tokens(by_model: dict) -> int:
    return sum(_count(v) for v in by_model.values())
