"""Named secret storage for the usage API credentials."""

import logging

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

SERVICE_ID = "claude-live-monitor"

SESSION_KEY = "claudeSessionKey"
ORGANIZATION_ID = "claudeOrganizationId"
CF_CLEARANCE = "claudeCfClearance"

CREDENTIAL_NAMES = (SESSION_KEY, ORGANIZATION_ID, CF_CLEARANCE)


class CredentialStore:
    """get/set/delete of named secrets, scoped by a service identifier.

    Backed by a dedicated QSettings file so credentials never mix with
    regular preferences.
    """

    def __init__(self, service: str = SERVICE_ID, settings: QSettings | None = None):
        self._service = service
        self._settings = settings or QSettings(
            QSettings.IniFormat, QSettings.UserScope, service, "credentials",
        )

    def _key(self, name: str) -> str:
        return f"{self._service}/{name}"

    def get(self, name: str) -> str | None:
        value = self._settings.value(self._key(name))
        if value is None:
            return None
        value = str(value)
        return value or None

    def set(self, name: str, value: str | None) -> bool:
        """Store a secret; an empty value deletes it."""
        if not value:
            return self.delete(name)
        self._settings.setValue(self._key(name), value)
        self._settings.sync()
        ok = self._settings.status() == QSettings.NoError
        if not ok:
            logger.error("Failed to store credential %s", name)
        return ok

    def delete(self, name: str) -> bool:
        """Remove a secret. Deleting a missing secret succeeds."""
        self._settings.remove(self._key(name))
        self._settings.sync()
        return self._settings.status() == QSettings.NoError

    def exists(self, name: str) -> bool:
        return self.get(name) is not None
