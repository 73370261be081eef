"""Discover live Claude Code sessions from ide/*.lock descriptors."""

import logging
from pathlib import Path
from typing import Callable

import orjson
import psutil
from PySide6.QtCore import QObject, Signal, Slot, Property, QTimer

from claude_live_monitor.services.file_watcher import FileWatcher
from claude_live_monitor.types.errors import DecodeError
from claude_live_monitor.types.sessions import Session

logger = logging.getLogger(__name__)

SCAN_INTERVAL_MS = 5000


def read_descriptor(lock_file: Path) -> Session:
    """Decode one lock file. Raises DecodeError or OSError."""
    data = lock_file.read_bytes()
    try:
        raw = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        raise DecodeError(f"{lock_file.name}: {e}") from e
    return Session.from_descriptor(raw)


class SessionRegistry(QObject):
    """Tracks the set of live sessions and which one is selected."""

    sessions_changed = Signal()
    selection_changed = Signal()
    scanned = Signal()

    def __init__(
        self,
        ide_dir: str | Path,
        is_alive: Callable[[int], bool] | None = None,
        watcher: FileWatcher | None = None,
        parent=None,
    ):
        super().__init__(parent)
        self._ide_dir = Path(ide_dir)
        self._is_alive = is_alive or psutil.pid_exists
        self._watcher = watcher or FileWatcher(self)
        self._sessions: list[Session] = []
        self._selected: Session | None = None

        self._scan_timer = QTimer(self)
        self._scan_timer.setInterval(SCAN_INTERVAL_MS)
        self._scan_timer.timeout.connect(self.scan)

        self._watcher.directory_changed.connect(self._on_directory_changed)

    @property
    def sessions(self) -> list[Session]:
        return list(self._sessions)

    @property
    def selected(self) -> Session | None:
        return self._selected

    def _get_session_count(self) -> int:
        return len(self._sessions)

    sessionCount = Property(int, _get_session_count, notify=sessions_changed)

    def _get_selected_id(self) -> str:
        return self._selected.id if self._selected else ""

    selectedSessionId = Property(str, _get_selected_id, notify=selection_changed)

    def start(self):
        """Scan now, then every few seconds and whenever ide/ changes."""
        self.scan()
        self._watcher.watch_directory(str(self._ide_dir))
        self._scan_timer.start()

    def stop(self):
        self._scan_timer.stop()
        self._watcher.unwatch_directory(str(self._ide_dir))

    @Slot()
    def scan(self) -> list[Session]:
        """Refresh the candidate set and reconcile the selection."""
        sessions = self._discover()
        if sessions != self._sessions:
            self._sessions = sessions
            self.sessions_changed.emit()

        if self._selected is None and len(sessions) == 1:
            logger.info("Auto-selecting single session %s", sessions[0].display_name)
            self._set_selected(sessions[0])

        if self._selected is not None:
            current = next((s for s in sessions if s.id == self._selected.id), None)
            if current is None:
                logger.info("Selected session %s is gone", self._selected.display_name)
                self._set_selected(None)
            elif current.pid != self._selected.pid:
                # CLI restarted in the same workspace; consumers must re-attach
                logger.info("Session %s restarted as pid %d", current.display_name, current.pid)
                self._set_selected(current)
            else:
                self._selected = current

        self.scanned.emit()
        return list(sessions)

    @Slot(str)
    def select(self, session_id: str) -> bool:
        """Select a known session by id. Returns False if it is unknown."""
        session = next((s for s in self._sessions if s.id == session_id), None)
        if session is None:
            logger.warning("Cannot select unknown session %s", session_id)
            return False
        self._set_selected(session)
        return True

    @Slot()
    def clear_selection(self):
        self._set_selected(None)

    def _set_selected(self, session: Session | None):
        if session == self._selected:
            return
        self._selected = session
        self.selection_changed.emit()

    def _discover(self) -> list[Session]:
        if not self._ide_dir.is_dir():
            logger.debug("IDE directory does not exist: %s", self._ide_dir)
            return []

        sessions = []
        for lock_file in sorted(self._ide_dir.glob("*.lock")):
            try:
                session = read_descriptor(lock_file)
            except DecodeError as e:
                logger.warning("Skipping undecodable descriptor %s: %s", lock_file.name, e)
                continue
            except OSError:
                logger.debug("Could not read %s", lock_file, exc_info=True)
                continue

            if not self._is_alive(session.pid):
                logger.debug("Process %d is not running, skipping %s", session.pid, lock_file.name)
                continue
            sessions.append(session)
        return sessions

    def _on_directory_changed(self, path: str):
        if path == str(self._ide_dir):
            self.scan()
