"""Monitor preferences persisted through QSettings."""

import logging
from pathlib import Path
from typing import Any

from PySide6.QtCore import QObject, Signal, Slot, QSettings

from claude_live_monitor.types.usage import REFRESH_INTERVALS, RefreshMode

logger = logging.getLogger(__name__)

DEFAULTS = {
    "general/claudeDir": "~/.claude",
    "usage/enabled": False,
    "usage/refreshMode": RefreshMode.SMART.value,
    "usage/refreshInterval": 180,
    "advanced/debugLogging": False,
}

_TRUE_STRINGS = ("true", "1", "yes")


def _to_bool(value: Any) -> bool:
    # INI-backed settings hand booleans back as strings
    if isinstance(value, str):
        return value.lower() in _TRUE_STRINGS
    return bool(value)


class ConfigManager(QObject):
    """Typed access to the monitor's preferences.

    Every write emits settings_changed(key) so services can pick up new
    values without a restart.
    """

    settings_changed = Signal(str)  # key

    def __init__(self, settings: QSettings | None = None, parent=None):
        super().__init__(parent)
        self._settings = settings or QSettings()

    def _value(self, key: str, fallback: Any) -> Any:
        return self._settings.value(key, DEFAULTS.get(key, fallback))

    def _store(self, key: str, value: Any):
        self._settings.setValue(key, value)
        logger.debug("Setting %s = %r", key, value)
        self.settings_changed.emit(key)

    @Slot(str, result=str)
    def get_string(self, key: str) -> str:
        return str(self._value(key, ""))

    @Slot(str, result=int)
    def get_int(self, key: str) -> int:
        raw = self._value(key, 0)
        try:
            return int(raw)
        except (ValueError, TypeError):
            logger.warning("Setting %s is not an integer: %r", key, raw)
            return DEFAULTS.get(key, 0)

    @Slot(str, result=bool)
    def get_bool(self, key: str) -> bool:
        return _to_bool(self._value(key, False))

    @Slot(str, str)
    def set_string(self, key: str, value: str):
        self._store(key, value)

    @Slot(str, int)
    def set_int(self, key: str, value: int):
        self._store(key, value)

    @Slot(str, bool)
    def set_bool(self, key: str, value: bool):
        self._store(key, value)

    @Slot(str)
    def reset(self, key: str):
        """Drop a stored value so the default applies again."""
        self._settings.remove(key)
        self.settings_changed.emit(key)

    def claude_dir(self) -> Path:
        return Path(self.get_string("general/claudeDir")).expanduser()

    def usage_enabled(self) -> bool:
        return self.get_bool("usage/enabled")

    def debug_logging(self) -> bool:
        return self.get_bool("advanced/debugLogging")

    def refresh_mode(self) -> RefreshMode:
        try:
            return RefreshMode(self.get_string("usage/refreshMode").lower())
        except ValueError:
            return RefreshMode.SMART

    def refresh_interval(self) -> int:
        seconds = self.get_int("usage/refreshInterval")
        if seconds not in REFRESH_INTERVALS:
            logger.warning("Ignoring invalid refresh interval %r", seconds)
            return DEFAULTS["usage/refreshInterval"]
        return seconds
