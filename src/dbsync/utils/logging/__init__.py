"""
Structured logging for the table synchronizer.

Modules log through ``logging.getLogger(__name__)``; the poller uses
ContextLogger so every record carries the table name. Hosts configure
output once at startup.

Usage:
    from dbsync.utils.logging import configure_from_env

    # Reads DBSYNC_LOG_LEVEL, DBSYNC_LOG_FILE, DBSYNC_LOG_JSON, DBSYNC_LOG_CONSOLE
    configure_from_env()
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
