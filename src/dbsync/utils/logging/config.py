"""
Logging setup for hosts embedding the synchronizer.

The library itself only logs through module loggers; a host calls
``setup_logging`` (or ``configure_from_env``) once at startup.
"""

import logging
import logging.handlers
import os
import sys
from collections.abc import Mapping

from .formatters import ConsoleFormatter, JSONFormatter

_TRUE = ("true", "1", "yes")


def _formatter(json_format: bool, app_name: str, console: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter(include_hostname=True, app_name=app_name)
    if console:
        return ConsoleFormatter(use_colors=True)
    return logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = "dbsync",
    max_bytes: int = 50 * 1024 * 1024,  # 50MB
    backup_count: int = 5,
) -> None:
    """
    Replace the root handlers with console and/or rotating file output.

    Args:
        level: Log level name; unknown names fall back to INFO
        log_file: Path of the rotating log file; None disables file output
        console_output: Whether to log to stderr
        json_format: Write JSON records instead of text
        app_name: ``app`` field of JSON records
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = []
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(_formatter(json_format, app_name, console=True))
        handlers.append(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(_formatter(json_format, app_name, console=False))
        handlers.append(file_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    # Exporter retries are noisy when no collector is running
    logging.getLogger("opentelemetry").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging initialized: level={level}, file={log_file or 'none'}, "
        f"console={console_output}, json={json_format}"
    )


def configure_from_env(prefix: str = "DBSYNC_", environ: Mapping[str, str] | None = None) -> None:
    """
    Configure logging from environment variables.

    Environment variables (shown with the default prefix):
        DBSYNC_LOG_LEVEL: Log level (default: INFO)
        DBSYNC_LOG_FILE: Log file path (default: none)
        DBSYNC_LOG_JSON: Use JSON format (default: false)
        DBSYNC_LOG_CONSOLE: Enable console output (default: true)
    """
    env = os.environ if environ is None else environ

    def flag(name: str, default: str) -> bool:
        return env.get(f"{prefix}{name}", default).strip().lower() in _TRUE

    setup_logging(
        level=env.get(f"{prefix}LOG_LEVEL", "INFO"),
        log_file=env.get(f"{prefix}LOG_FILE") or None,
        console_output=flag("LOG_CONSOLE", "true"),
        json_format=flag("LOG_JSON", "false"),
    )
