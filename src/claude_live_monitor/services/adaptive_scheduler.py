"""Poll cadence for usage refreshes."""

import logging

from claude_live_monitor.types.usage import REFRESH_INTERVALS, MonitoringMode, RefreshMode

logger = logging.getLogger(__name__)

DEFAULT_FIXED_INTERVAL = 180
CHANGE_THRESHOLD = 0.01

# Unchanged-poll count at which each mode escalates to the next one.
# The count keeps growing across stages and only resets on a change.
_ESCALATION = {
    MonitoringMode.ACTIVE: (3, MonitoringMode.IDLE_SHORT),
    MonitoringMode.IDLE_SHORT: (6, MonitoringMode.IDLE_MEDIUM),
    MonitoringMode.IDLE_MEDIUM: (12, MonitoringMode.IDLE_LONG),
}


class AdaptiveScheduler:
    """Chooses the delay before the next usage poll.

    In smart mode the delay grows while the five-hour utilization stays
    flat and snaps back to the active cadence when it moves. In fixed
    mode the configured interval is used unconditionally.
    """

    def __init__(
        self,
        refresh_mode: RefreshMode = RefreshMode.SMART,
        fixed_interval: int = DEFAULT_FIXED_INTERVAL,
    ):
        self.refresh_mode = refresh_mode
        self.fixed_interval = fixed_interval
        self._mode = MonitoringMode.ACTIVE
        self._unchanged_count = 0
        self._last_utilization = 0.0

    @property
    def mode(self) -> MonitoringMode:
        return self._mode

    @property
    def unchanged_count(self) -> int:
        return self._unchanged_count

    @property
    def fixed_interval(self) -> int:
        return self._fixed_interval

    @fixed_interval.setter
    def fixed_interval(self, seconds: int):
        if seconds not in REFRESH_INTERVALS:
            logger.warning("Unsupported refresh interval %r, using %ds", seconds, DEFAULT_FIXED_INTERVAL)
            seconds = DEFAULT_FIXED_INTERVAL
        self._fixed_interval = seconds

    @property
    def is_smart(self) -> bool:
        return self.refresh_mode == RefreshMode.SMART

    def next_interval(self) -> int:
        """Seconds until the next poll."""
        if self.is_smart:
            return self._mode.interval
        return self._fixed_interval

    def record_poll(self, utilization: float) -> MonitoringMode:
        """Feed the primary utilization of a successful poll."""
        if not self.is_smart:
            return self._mode

        if abs(utilization - self._last_utilization) > CHANGE_THRESHOLD:
            if self._mode != MonitoringMode.ACTIVE:
                logger.debug("Usage changed, monitoring mode back to active")
            self._mode = MonitoringMode.ACTIVE
            self._unchanged_count = 0
        else:
            self._unchanged_count += 1
            escalation = _ESCALATION.get(self._mode)
            if escalation is not None and self._unchanged_count >= escalation[0]:
                self._mode = escalation[1]
                logger.debug("Monitoring mode changed to: %s", self._mode.value)

        self._last_utilization = utilization
        return self._mode

    def reset(self):
        """Return to the active cadence, e.g. after a manual refresh."""
        self._mode = MonitoringMode.ACTIVE
        self._unchanged_count = 0
