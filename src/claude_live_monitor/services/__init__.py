"""Services for Claude Live Monitor."""

from claude_live_monitor.services.session_monitor import SessionMonitor
from claude_live_monitor.services.session_registry import SessionRegistry
from claude_live_monitor.services.log_tailer import LogTailer
from claude_live_monitor.services.file_watcher import FileWatcher
from claude_live_monitor.services.state_reconciler import SessionStateReconciler
from claude_live_monitor.services.event_parser import parse_line
from claude_live_monitor.services.usage_poller import UsagePoller
from claude_live_monitor.services.usage_api import UsageApiClient
from claude_live_monitor.services.adaptive_scheduler import AdaptiveScheduler
from claude_live_monitor.services.config_manager import ConfigManager
from claude_live_monitor.services.credential_store import CredentialStore
from claude_live_monitor.services.stats_cache import load_daily_stats

__all__ = [
    "SessionMonitor",
    "SessionRegistry",
    "LogTailer",
    "FileWatcher",
    "SessionStateReconciler",
    "parse_line",
    "UsagePoller",
    "UsageApiClient",
    "AdaptiveScheduler",
    "ConfigManager",
    "CredentialStore",
    "load_daily_stats",
]
