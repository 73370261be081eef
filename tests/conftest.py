"""Shared test fixtures for Claude Live Monitor."""

import os
import sys
from pathlib import Path

import pytest


@pytest.fixture(scope="session")
def qapp():
    """Create a QCoreApplication for tests that need Qt."""
    os.environ["QT_QPA_PLATFORM"] = "offscreen"
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv or ["test"])
    yield app


@pytest.fixture
def isolated_settings(qapp, tmp_path):
    """Redirect QSettings to an INI file under tmp_path."""
    from PySide6.QtCore import QSettings
    QSettings.setDefaultFormat(QSettings.IniFormat)
    QSettings.setPath(QSettings.IniFormat, QSettings.UserScope, str(tmp_path / "config"))
    return tmp_path / "config"


@pytest.fixture
def claude_dir(tmp_path) -> Path:
    """Create a temporary ~/.claude directory structure."""
    root = tmp_path / ".claude"
    (root / "ide").mkdir(parents=True)
    (root / "projects").mkdir()
    return root


@pytest.fixture
def project_dir(claude_dir) -> Path:
    """Log directory for the workspace /home/wiz/projects/my.app."""
    path = claude_dir / "projects" / "-home-wiz-projects-my-app"
    path.mkdir()
    return path
