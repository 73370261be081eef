"""Follow the newest log file of a session and emit appended lines."""

import logging
from collections import deque
from pathlib import Path
from typing import BinaryIO

from PySide6.QtCore import QObject, Signal

from claude_live_monitor.services.file_watcher import FileWatcher
from claude_live_monitor.types.errors import NoLogFile
from claude_live_monitor.types.sessions import Session

logger = logging.getLogger(__name__)

# Lines replayed on attach; newest state wins, so a bounded window is enough
BOOTSTRAP_LINES = 50


def find_current_log_file(project_dir: Path) -> Path | None:
    """Newest *.jsonl in project_dir, skipping agent sub-logs.

    Modification times can be coarse, so ties are broken by file name.
    """
    if not project_dir.is_dir():
        return None

    candidates = []
    for path in project_dir.glob("*.jsonl"):
        if path.name.startswith("agent-"):
            continue
        try:
            mtime = path.stat().st_mtime
        except OSError:
            continue
        candidates.append((mtime, path.name, path))

    if not candidates:
        return None
    return max(candidates)[2]


class LogTailer(QObject):
    """Owns one open log file and a byte cursor into it.

    Only complete lines are consumed: the cursor always sits just past a
    newline, so a line still being written is read whole on the next change.
    """

    lines_ready = Signal(list)  # list[str]
    attached = Signal(str)      # file_path
    detached = Signal()

    def __init__(self, projects_root: str | Path, watcher: FileWatcher | None = None, parent=None):
        super().__init__(parent)
        self._projects_root = Path(projects_root)
        self._watcher = watcher or FileWatcher(self)
        self._handle: BinaryIO | None = None
        self._path: Path | None = None
        self._cursor = 0

        self._watcher.file_changed.connect(self._on_file_changed)

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def is_attached(self) -> bool:
        return self._handle is not None

    def log_dir_for(self, session: Session) -> Path | None:
        key = session.project_key
        if not key:
            return None
        return self._projects_root / key

    def attach(self, session: Session) -> Path:
        """Start following the session's current log file.

        Emits the bootstrap window through lines_ready before returning.
        Raises NoLogFile when the session has no log yet.
        """
        self.detach()

        project_dir = self.log_dir_for(session)
        log_file = find_current_log_file(project_dir) if project_dir else None
        if log_file is None:
            raise NoLogFile(f"No session log for {session.display_name} in {project_dir}")

        try:
            handle = open(log_file, "rb")
        except OSError as e:
            raise NoLogFile(f"Cannot open {log_file}: {e}") from e

        self._handle = handle
        self._path = log_file

        recent: deque[str] = deque(maxlen=BOOTSTRAP_LINES)
        consumed = 0
        for raw_line in handle:
            if not raw_line.endswith(b"\n"):
                break
            consumed += len(raw_line)
            line = raw_line.decode("utf-8", errors="replace").strip()
            if line:
                recent.append(line)
        self._cursor = consumed

        self._watcher.watch_file(str(log_file))
        logger.info("Following %s (%d bytes, %d bootstrap lines)",
                    log_file, self._cursor, len(recent))
        self.attached.emit(str(log_file))
        if recent:
            self.lines_ready.emit(list(recent))
        return log_file

    def detach(self):
        """Stop following the current file and close its handle."""
        if self._handle is None:
            return
        if self._path is not None:
            self._watcher.unwatch_file(str(self._path))
        self._handle.close()
        self._handle = None
        self._path = None
        self._cursor = 0
        self.detached.emit()

    def read_new(self) -> list[str]:
        """Read complete lines appended since the cursor and advance it.

        Safe to call repeatedly: a second call with no new data returns [].
        """
        if self._handle is None:
            return []

        try:
            self._handle.seek(0, 2)
            size = self._handle.tell()
            if size < self._cursor:
                logger.info("Log %s shrank, rereading from start", self._path)
                self._cursor = 0
            self._handle.seek(self._cursor)
            data = self._handle.read()
        except OSError:
            logger.warning("Failed to read %s", self._path, exc_info=True)
            return []

        end = data.rfind(b"\n")
        if end < 0:
            return []
        self._cursor += end + 1

        text = data[:end].decode("utf-8", errors="replace")
        lines = [line.strip() for line in text.split("\n")]
        lines = [line for line in lines if line]
        if lines:
            self.lines_ready.emit(lines)
        return lines

    def _on_file_changed(self, path: str):
        if self._path is not None and path == str(self._path):
            self.read_new()
