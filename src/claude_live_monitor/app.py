"""Application entry point: headless service wiring and event loop."""

import logging
import signal
import sys

from PySide6.QtCore import QCoreApplication
from PySide6.QtNetwork import QLocalSocket, QLocalServer

from claude_live_monitor.services.config_manager import ConfigManager
from claude_live_monitor.services.credential_store import CredentialStore
from claude_live_monitor.services.session_monitor import SessionMonitor
from claude_live_monitor.services.usage_poller import UsagePoller
from claude_live_monitor.types import SessionState, TodoStatus, UsageSnapshot

logger = logging.getLogger(__name__)

SOCKET_NAME = "claude-live-monitor-instance"


def _check_single_instance() -> QLocalServer | None:
    """Enforce single instance via QLocalSocket. Returns server if we're the first instance."""
    socket = QLocalSocket()
    socket.connectToServer(SOCKET_NAME)
    if socket.waitForConnected(500):
        # Another instance is running
        socket.close()
        return None

    server = QLocalServer()
    server.removeServer(SOCKET_NAME)
    server.listen(SOCKET_NAME)
    return server


def _configure_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def describe_state(state: SessionState) -> str:
    """One-line summary of a session state for the log."""
    if not state.is_connected:
        return "not connected"
    parts = [
        state.model or "unknown model",
        f"ctx {state.context_percentage:.0f}%",
        f"{len(state.active_tools)} running",
    ]
    if state.current_tool_name:
        parts.append(f"tool {state.current_tool_name}")
    if state.todos:
        done = sum(1 for t in state.todos if t.status == TodoStatus.COMPLETED)
        parts.append(f"todos {done}/{len(state.todos)}")
    if state.git_branch:
        parts.append(f"on {state.git_branch}")
    return ", ".join(parts)


def describe_usage(usage: UsageSnapshot) -> str:
    limits = [
        ("5h", usage.five_hour),
        ("7d", usage.seven_day),
        ("7d apps", usage.seven_day_oauth_apps),
        ("opus", usage.opus),
        ("sonnet", usage.sonnet),
    ]
    parts = [
        f"{label} {limit.formatted_percentage} (resets in {limit.formatted_remaining()})"
        for label, limit in limits if limit is not None
    ]
    if usage.extra_usage is not None and usage.extra_usage.used is not None:
        parts.append(f"extra {usage.extra_usage.used:.2f} {usage.extra_usage.currency}")
    return ", ".join(parts) or "no limits reported"


def _log_usage_error(error):
    if error is not None:
        logger.warning("Usage: %s", error)


def run() -> int:
    """Launch the monitor."""
    app = QCoreApplication(sys.argv)
    app.setApplicationName("Claude Live Monitor")
    app.setOrganizationName("claude-live-monitor")
    app.setOrganizationDomain("claude.local")

    config = ConfigManager()
    _configure_logging(config.debug_logging())

    # Single instance check
    instance_server = _check_single_instance()
    if instance_server is None:
        print("Another instance is already running.", file=sys.stderr)
        return 0

    # Allow Ctrl+C to kill the app
    signal.signal(signal.SIGINT, signal.SIG_DFL)

    credentials = CredentialStore()
    monitor = SessionMonitor(claude_dir=config.claude_dir())
    poller = UsagePoller(credentials, config=config)

    monitor.state_changed.connect(lambda state: logger.info("Session: %s", describe_state(state)))
    monitor.agent_completed.connect(
        lambda agent: logger.info("Agent completed: %s: %s", agent.name, agent.description)
    )
    monitor.daily_stats_changed.connect(
        lambda stats: logger.info(
            "Today (%s): %d messages, %d tool calls, %d tokens",
            stats.date, stats.message_count, stats.tool_call_count, stats.tokens_used,
        )
    )
    poller.usage_changed.connect(lambda usage: logger.info("Usage: %s", describe_usage(usage)))
    poller.error_changed.connect(_log_usage_error)

    monitor.start()
    if config.usage_enabled():
        poller.start_polling()

    ret = app.exec()
    poller.cleanup()
    monitor.cleanup()
    instance_server.close()
    return ret
