"""Usage quota types."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class LimitData:
    percentage: float  # 0-100
    resets_at: Optional[datetime] = None

    def resets_in(self, now: datetime | None = None) -> float | None:
        """Seconds until the limit resets, or None if unknown."""
        if self.resets_at is None:
            return None
        now = now or datetime.now(timezone.utc)
        return (self.resets_at - now).total_seconds()

    def formatted_remaining(self, now: datetime | None = None) -> str:
        """Remaining time as "3d 12h", "2h 30m" or "45m"."""
        seconds = self.resets_in(now)
        if seconds is None or seconds <= 0:
            return "—"
        hours = int(seconds) // 3600
        minutes = (int(seconds) % 3600) // 60
        if hours >= 24:
            return f"{hours // 24}d {hours % 24}h"
        if hours > 0:
            return f"{hours}h {minutes}m"
        return f"{minutes}m"

    @property
    def formatted_percentage(self) -> str:
        return f"{round(self.percentage)}%"

    @property
    def usage_level(self) -> "UsageLevel":
        if self.percentage < 50:
            return UsageLevel.LOW
        if self.percentage < 80:
            return UsageLevel.MEDIUM
        return UsageLevel.HIGH


@dataclass(frozen=True)
class ExtraUsage:
    """Metered spending beyond the included quota."""
    enabled: bool
    used: Optional[float]
    limit: Optional[float]
    currency: str

    @property
    def percentage(self) -> float | None:
        if self.used is None or self.limit is None or self.limit <= 0:
            return None
        return self.used / self.limit * 100


@dataclass(frozen=True)
class UsageSnapshot:
    five_hour: Optional[LimitData] = None
    seven_day: Optional[LimitData] = None
    seven_day_oauth_apps: Optional[LimitData] = None
    opus: Optional[LimitData] = None
    sonnet: Optional[LimitData] = None
    extra_usage: Optional[ExtraUsage] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def primary_utilization(self) -> float:
        return self.five_hour.percentage if self.five_hour else 0.0


class UsageLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RefreshMode(str, Enum):
    SMART = "smart"
    FIXED = "fixed"


REFRESH_INTERVALS = (60, 180, 300, 600)


class MonitoringMode(str, Enum):
    ACTIVE = "active"
    IDLE_SHORT = "idle_short"
    IDLE_MEDIUM = "idle_medium"
    IDLE_LONG = "idle_long"

    @property
    def interval(self) -> int:
        return _MODE_INTERVALS[self]


_MODE_INTERVALS = {
    MonitoringMode.ACTIVE: 60,
    MonitoringMode.IDLE_SHORT: 180,
    MonitoringMode.IDLE_MEDIUM: 300,
    MonitoringMode.IDLE_LONG: 600,
}
