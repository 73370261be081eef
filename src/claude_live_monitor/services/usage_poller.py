"""Usage quota polling with adaptive cadence and debounced manual refresh."""

import logging
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional

import httpx
from PySide6.QtCore import QObject, Signal, Slot, Property, QTimer

from claude_live_monitor.services.adaptive_scheduler import AdaptiveScheduler
from claude_live_monitor.services.async_runner import AsyncRunner
from claude_live_monitor.services.config_manager import ConfigManager
from claude_live_monitor.services.credential_store import (
    CF_CLEARANCE,
    CREDENTIAL_NAMES,
    ORGANIZATION_ID,
    SESSION_KEY,
)
from claude_live_monitor.services.usage_api import BASE_URL, UsageApiClient
from claude_live_monitor.types.errors import NetworkError, NoCredentials, UsageError
from claude_live_monitor.types.usage import MonitoringMode, RefreshMode, UsageSnapshot

logger = logging.getLogger(__name__)

MANUAL_REFRESH_DEBOUNCE_S = 10.0
MIN_SESSION_KEY_LENGTH = 20
MAX_SESSION_KEY_LENGTH = 500


@dataclass(frozen=True)
class _PollOutcome:
    snapshot: Optional[UsageSnapshot] = None
    error: Optional[UsageError] = None
    organization_id: Optional[str] = None


class UsagePoller(QObject):
    """Fetches usage snapshots on an adaptive schedule.

    All state lives on the poller's thread. Fetch rounds run on the
    runner's loop and hand their outcome back through _round_finished,
    so a snapshot is only published once both requests have completed.
    """

    usage_changed = Signal(object)   # UsageSnapshot
    error_changed = Signal(object)   # UsageError | None
    loading_changed = Signal()
    configured_changed = Signal()
    mode_changed = Signal(str)       # MonitoringMode value

    _round_finished = Signal(int, object)  # generation, _PollOutcome

    def __init__(
        self,
        credentials,
        config: ConfigManager | None = None,
        runner=None,
        transport: httpx.AsyncBaseTransport | None = None,
        base_url: str = BASE_URL,
        clock: Callable[[], float] = time.monotonic,
        parent=None,
    ):
        super().__init__(parent)
        self._credentials = credentials
        self._config = config
        self._runner = runner or AsyncRunner()
        self._transport = transport
        self._base_url = base_url
        self._clock = clock

        self._scheduler = AdaptiveScheduler()
        self._usage = UsageSnapshot()
        self._has_usage = False
        self._last_error: UsageError | None = None
        self._loading = False
        self._configured = False
        self._polling = False
        self._in_flight = False
        self._generation = 0
        self._last_manual_refresh: float | None = None

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._on_timer)

        self._round_finished.connect(self._on_round_finished)
        if self._config is not None:
            self._config.settings_changed.connect(self._on_setting_changed)
        self._load_schedule_settings()
        self._update_configured()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def usage(self) -> UsageSnapshot:
        return self._usage

    @property
    def has_usage(self) -> bool:
        return self._has_usage

    @property
    def last_error(self) -> UsageError | None:
        return self._last_error

    @property
    def scheduler(self) -> AdaptiveScheduler:
        return self._scheduler

    @property
    def monitoring_mode(self) -> MonitoringMode:
        return self._scheduler.mode

    @property
    def is_polling(self) -> bool:
        return self._polling

    @property
    def is_fetching(self) -> bool:
        return self._in_flight

    def _get_loading(self) -> bool:
        return self._loading

    isLoading = Property(bool, _get_loading, notify=loading_changed)

    def _get_configured(self) -> bool:
        return self._configured

    isConfigured = Property(bool, _get_configured, notify=configured_changed)

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def is_loading(self) -> bool:
        return self._loading

    # ------------------------------------------------------------------
    # Polling control
    # ------------------------------------------------------------------

    @Slot()
    def start_polling(self):
        """Fetch now, then keep polling until stop_polling()."""
        if not self._configured:
            logger.info("Cannot start polling: no session key configured")
            return
        self.stop_polling()
        self._polling = True
        self.fetch_usage()

    @Slot()
    def stop_polling(self):
        """Cancel the pending timer; a result still in flight is discarded."""
        self._timer.stop()
        self._polling = False
        self._generation += 1

    @Slot(result=bool)
    def manual_refresh(self) -> bool:
        """Fetch now unless a manual refresh happened in the last 10 seconds.

        Refused without touching the debounce window while a round is
        already running.
        """
        if self._in_flight:
            logger.debug("Manual refresh skipped, fetch already in flight")
            return False
        now = self._clock()
        if (self._last_manual_refresh is not None
                and now - self._last_manual_refresh < MANUAL_REFRESH_DEBOUNCE_S):
            logger.debug("Manual refresh debounced")
            return False
        self._last_manual_refresh = now

        if self._scheduler.is_smart:
            self._scheduler.reset()
            self.mode_changed.emit(self._scheduler.mode.value)

        self.fetch_usage()
        return True

    @Slot(result=bool)
    def fetch_usage(self) -> bool:
        """Start one fetch round. Returns False if one is already running.

        The outcome is published through usage_changed / error_changed.
        """
        if self._in_flight:
            logger.debug("Fetch already in flight, skipping")
            return False

        session_key = self._credentials.get(SESSION_KEY)
        if not session_key:
            self._set_error(NoCredentials())
            self._schedule_next()
            return False

        self._in_flight = True
        self._set_loading(True)
        generation = self._generation
        coro = self._run_round(
            session_key,
            self._credentials.get(ORGANIZATION_ID),
            self._credentials.get(CF_CLEARANCE),
        )
        self._runner.submit(coro, lambda future: self._deliver(generation, future))
        return True

    def _deliver(self, generation: int, future: Future):
        # Runs on the runner's thread
        try:
            outcome = future.result()
        except Exception as e:
            logger.exception("Usage fetch round crashed")
            outcome = _PollOutcome(error=NetworkError(str(e)))
        self._round_finished.emit(generation, outcome)

    async def _run_round(self, session_key: str, org_id: str | None, cf_clearance: str | None) -> _PollOutcome:
        discovered = None
        try:
            async with UsageApiClient(
                session_key,
                cf_clearance=cf_clearance,
                base_url=self._base_url,
                transport=self._transport,
            ) as client:
                if not org_id:
                    org = await client.discover_organization()
                    org_id = discovered = org.uuid
                snapshot = await client.fetch_snapshot(org_id)
        except UsageError as e:
            return _PollOutcome(error=e, organization_id=discovered)
        return _PollOutcome(snapshot=snapshot, organization_id=discovered)

    def _on_round_finished(self, generation: int, outcome: _PollOutcome):
        self._in_flight = False
        self._set_loading(False)

        if generation != self._generation:
            logger.debug("Discarding stale usage result")
            # A restart while this round was running could not fetch yet
            if self._polling:
                self.fetch_usage()
            return

        if outcome.organization_id:
            self._credentials.set(ORGANIZATION_ID, outcome.organization_id)

        if outcome.snapshot is not None:
            self._usage = outcome.snapshot
            self._has_usage = True
            self._set_error(None)
            five_hour = outcome.snapshot.primary_utilization
            logger.info("Usage fetched: 5hr=%.1f%%", five_hour)
            previous_mode = self._scheduler.mode
            if self._scheduler.record_poll(five_hour) != previous_mode:
                self.mode_changed.emit(self._scheduler.mode.value)
            self.usage_changed.emit(self._usage)
        else:
            logger.error("Failed to fetch usage: %s", outcome.error)
            self._set_error(outcome.error)

        self._schedule_next()

    def _schedule_next(self):
        if not self._polling:
            return
        seconds = self._scheduler.next_interval()
        self._timer.start(seconds * 1000)
        logger.debug("Next usage poll in %ds", seconds)

    def _on_timer(self):
        self.fetch_usage()

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    @staticmethod
    def is_valid_session_key(key: str) -> bool:
        return MIN_SESSION_KEY_LENGTH <= len(key) <= MAX_SESSION_KEY_LENGTH

    @Slot(str)
    def set_session_key(self, key: str):
        self._replace_credential(SESSION_KEY, key)

    @Slot(str)
    def set_organization_id(self, org_id: str):
        self._replace_credential(ORGANIZATION_ID, org_id)

    @Slot(str)
    def set_cf_clearance(self, value: str):
        self._replace_credential(CF_CLEARANCE, value)

    def _replace_credential(self, name: str, value: str):
        was_polling = self._polling
        self.stop_polling()
        if value:
            self._credentials.set(name, value)
        else:
            self._credentials.delete(name)
        self._update_configured()
        if was_polling and self._configured:
            self.start_polling()

    @Slot()
    def clear_credentials(self):
        """Forget all credentials and the last snapshot; stops polling."""
        self.stop_polling()
        for name in CREDENTIAL_NAMES:
            self._credentials.delete(name)
        self._usage = UsageSnapshot()
        self._has_usage = False
        self.usage_changed.emit(self._usage)
        self._set_error(None)
        self._update_configured()

    # ------------------------------------------------------------------
    # Internal state
    # ------------------------------------------------------------------

    def _update_configured(self):
        configured = bool(self._credentials.get(SESSION_KEY))
        if configured != self._configured:
            self._configured = configured
            self.configured_changed.emit()

    def _set_loading(self, value: bool):
        if self._loading != value:
            self._loading = value
            self.loading_changed.emit()

    def _set_error(self, error: UsageError | None):
        if error is self._last_error:
            return
        self._last_error = error
        self.error_changed.emit(error)

    def _load_schedule_settings(self):
        if self._config is None:
            return
        self._scheduler.refresh_mode = self._config.refresh_mode()
        self._scheduler.fixed_interval = self._config.refresh_interval()

    def _on_setting_changed(self, key: str):
        if key in ("usage/refreshMode", "usage/refreshInterval"):
            self._load_schedule_settings()
            if self._scheduler.refresh_mode == RefreshMode.SMART:
                self._scheduler.reset()
            if self._polling and not self._in_flight:
                self._schedule_next()

    def cleanup(self):
        self.stop_polling()
        shutdown = getattr(self._runner, "shutdown", None)
        if shutdown is not None:
            shutdown()
