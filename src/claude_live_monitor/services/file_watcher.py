"""File system watcher with debounced change signals."""

import logging
import os

from PySide6.QtCore import QObject, Signal, QFileSystemWatcher, QTimer

logger = logging.getLogger(__name__)

DEBOUNCE_MS = 100


class FileWatcher(QObject):
    """Watches session log files and descriptor directories for changes."""

    file_changed = Signal(str)       # file_path
    directory_changed = Signal(str)  # directory_path

    def __init__(self, parent=None, debounce_ms: int = DEBOUNCE_MS):
        super().__init__(parent)
        self._watcher = QFileSystemWatcher(self)
        self._debounce_ms = debounce_ms
        self._debounce_timers: dict[str, QTimer] = {}
        self._watched_files: set[str] = set()
        self._watched_dirs: set[str] = set()

        self._watcher.fileChanged.connect(self._on_file_changed)
        self._watcher.directoryChanged.connect(self._on_directory_changed)

    def watch_file(self, file_path: str):
        if file_path not in self._watched_files:
            if not self._watcher.addPath(file_path):
                logger.debug("Could not watch file %s", file_path)
            self._watched_files.add(file_path)

    def unwatch_file(self, file_path: str):
        if file_path in self._watched_files:
            self._watcher.removePath(file_path)
            self._watched_files.discard(file_path)
            self._cancel_debounce(file_path)

    def watch_directory(self, dir_path: str):
        if dir_path not in self._watched_dirs and os.path.isdir(dir_path):
            self._watcher.addPath(dir_path)
            self._watched_dirs.add(dir_path)

    def unwatch_directory(self, dir_path: str):
        if dir_path in self._watched_dirs:
            self._watcher.removePath(dir_path)
            self._watched_dirs.discard(dir_path)
            self._cancel_debounce(dir_path)

    def stop(self):
        """Stop all file watching."""
        if self._watcher.files():
            self._watcher.removePaths(self._watcher.files())
        if self._watcher.directories():
            self._watcher.removePaths(self._watcher.directories())
        self._watched_files.clear()
        self._watched_dirs.clear()
        for key in list(self._debounce_timers):
            self._cancel_debounce(key)

    def _on_file_changed(self, path: str):
        self._debounce(path, lambda: self._emit_file_changed(path))

    def _on_directory_changed(self, path: str):
        self._debounce(path, lambda: self._emit_directory_changed(path))

    def _debounce(self, key: str, callback):
        """Collapse bursts of notifications for one path into a single emit.

        Each path always maps to the same callback, so the timer is wired
        once and restarting it pushes the emit back.
        """
        timer = self._debounce_timers.get(key)
        if timer is None:
            timer = QTimer(self)
            timer.setSingleShot(True)
            timer.timeout.connect(callback)
            self._debounce_timers[key] = timer
        timer.start(self._debounce_ms)

    def _cancel_debounce(self, key: str):
        timer = self._debounce_timers.pop(key, None)
        if timer is not None:
            timer.stop()
            timer.deleteLater()

    def _emit_file_changed(self, path: str):
        if path not in self._watched_files:
            return
        # Qt drops a file from the watcher when it is replaced on disk
        if os.path.exists(path) and path not in self._watcher.files():
            self._watcher.addPath(path)
        self.file_changed.emit(path)

    def _emit_directory_changed(self, path: str):
        if path in self._watched_dirs:
            self.directory_changed.emit(path)
