"""
Logger adapter carrying per-table context into every record.
"""

import logging
from typing import Any

# Keyword arguments Logger.log handles itself
_LOG_KWARGS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})


class ContextLogger(logging.LoggerAdapter):
    """
    Adds bound context and per-call keyword fields to each record.

    The fields become LogRecord attributes, which JSONFormatter writes under
    ``context`` and ConsoleFormatter appends as ``[key=value]``.

    Usage:
        log = ContextLogger("dbsync.poller", table_name="employee")
        log.info("Batch fetched", row_count=500)
        log.bind(docid="1/last_01").warning("Skipping document")
    """

    def __init__(self, name: str, **context: Any):
        super().__init__(logging.getLogger(name), context)

    @property
    def context(self) -> dict[str, Any]:
        return dict(self.extra)

    def bind(self, **context: Any) -> "ContextLogger":
        """Return a logger with added context; this one is unchanged."""
        return ContextLogger(self.logger.name, **{**self.extra, **context})

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOG_KWARGS}
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {}), **fields}
        return msg, kwargs
