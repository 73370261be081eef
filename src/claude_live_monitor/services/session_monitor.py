"""Central session monitoring orchestrator."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from PySide6.QtCore import QObject, Signal, Slot, Property

from claude_live_monitor.services.event_parser import parse_line
from claude_live_monitor.services.file_watcher import FileWatcher
from claude_live_monitor.services.log_tailer import LogTailer
from claude_live_monitor.services.session_registry import SessionRegistry
from claude_live_monitor.services.state_reconciler import SessionStateReconciler
from claude_live_monitor.services.stats_cache import load_daily_stats
from claude_live_monitor.types import DailyStats, Session, SessionState
from claude_live_monitor.types.errors import NoLogFile

logger = logging.getLogger(__name__)

CLAUDE_DIR = Path.home() / ".claude"


class SessionMonitor(QObject):
    """Mirrors the selected session's log into a SessionState.

    Registry scans pick the session, the tailer streams its log lines,
    the parser turns them into deltas and the reconciler folds them in.
    Consumers only ever see copies published through state_changed.
    """

    state_changed = Signal(object)        # SessionState snapshot
    sessions_changed = Signal()
    connected_changed = Signal(bool)
    daily_stats_changed = Signal(object)  # DailyStats
    agent_completed = Signal(object)      # AgentInfo

    def __init__(
        self,
        claude_dir: str | Path | None = None,
        is_alive: Callable[[int], bool] | None = None,
        clock: Callable[[], datetime] = datetime.now,
        parent=None,
    ):
        super().__init__(parent)
        self._claude_dir = Path(claude_dir) if claude_dir else CLAUDE_DIR
        self._clock = clock
        self._watcher = FileWatcher(self)
        self._registry = SessionRegistry(
            self._claude_dir / "ide", is_alive=is_alive, watcher=self._watcher, parent=self,
        )
        self._tailer = LogTailer(self._claude_dir / "projects", watcher=self._watcher, parent=self)
        self._reconciler = SessionStateReconciler(on_agent_completed=self.agent_completed.emit)
        self._daily_stats = DailyStats()

        self._registry.sessions_changed.connect(self.sessions_changed)
        self._registry.selection_changed.connect(self._on_selection_changed)
        self._registry.scanned.connect(self._on_scanned)
        self._tailer.lines_ready.connect(self._on_lines)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def tailer(self) -> LogTailer:
        return self._tailer

    @property
    def state(self) -> SessionState:
        return self._reconciler.snapshot()

    @property
    def daily_stats(self) -> DailyStats:
        return self._daily_stats

    @property
    def sessions(self) -> list[Session]:
        return self._registry.sessions

    @property
    def selected_session(self) -> Session | None:
        return self._registry.selected

    def _get_connected(self) -> bool:
        return self._reconciler.state.is_connected

    connected = Property(bool, _get_connected, notify=connected_changed)

    def start(self):
        self.load_daily_stats()
        self._registry.start()

    @Slot()
    def scan_sessions(self):
        self._registry.scan()

    @Slot(str)
    def select_session(self, session_id: str):
        selected = self._registry.selected
        if selected is not None and selected.id == session_id:
            return
        self._registry.select(session_id)

    @Slot()
    def refresh(self):
        """Rescan sessions and pull any unread log data."""
        self._registry.scan()
        if self._registry.selected is not None:
            self._tailer.read_new()

    @Slot()
    def load_daily_stats(self):
        stats = load_daily_stats(self._claude_dir / "stats-cache.json")
        if stats is not None and stats != self._daily_stats:
            self._daily_stats = stats
            self.daily_stats_changed.emit(stats)

    def _on_selection_changed(self):
        session = self._registry.selected
        self._tailer.detach()
        self._set_connected(False)
        self._reconciler.reset(cwd=session.workspace_folders[0] if session and session.workspace_folders else "")

        if session is not None:
            logger.info("Selected session %s (pid %d)", session.display_name, session.pid)
            self._attach(session)
        self._publish()

    def _on_scanned(self):
        self.load_daily_stats()
        session = self._registry.selected
        if session is not None and not self._tailer.is_attached:
            if self._attach(session):
                self._publish()

    def _attach(self, session: Session) -> bool:
        self._reconciler.replaying = True
        try:
            self._tailer.attach(session)
        except NoLogFile as e:
            logger.info("%s; will retry on next scan", e)
            return False
        finally:
            self._reconciler.replaying = False
        self._reconciler.touch(self._clock())
        self._set_connected(True)
        return True

    def _on_lines(self, lines: list):
        for line in lines:
            self._reconciler.apply_all(parse_line(line, now=self._clock))
        self._reconciler.touch(self._clock())
        self._publish()

    def _set_connected(self, connected: bool):
        if self._reconciler.state.is_connected != connected:
            self._reconciler.set_connected(connected)
            self.connected_changed.emit(connected)

    def _publish(self):
        self.state_changed.emit(self._reconciler.snapshot())

    def cleanup(self):
        """Release the log handle and stop all timers and watches."""
        self._registry.stop()
        self._tailer.detach()
        self._watcher.stop()
