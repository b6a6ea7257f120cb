"""
Connector configuration and feed mode classification.

Settings are read once per poll; the feed mode is derived from them by a
pure function rather than stored globally.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from dbsync.errors import ConfigurationError

logger = logging.getLogger(__name__)


class FeedMode(str, Enum):
    """How rows are turned into documents."""

    METADATA = "metadata"
    LARGE_OBJECT = "large_object"
    URL_COMPLETE = "url_complete"
    URL_BASE = "url_base"


def _split_list(value: str | list[str] | tuple[str, ...] | None) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    return [item.strip() for item in value if item and item.strip()]


# Converters for min_value read from text, by type name
MIN_VALUE_TYPES: dict[str, Callable[[str], Any]] = {
    "str": str,
    "int": int,
    "float": float,
    "decimal": Decimal,
    "date": date.fromisoformat,
    "datetime": datetime.fromisoformat,
}


def parse_min_value(value: str, type_name: str = "str") -> Any:
    """
    Convert a textual min_value to the key column's type.

    Args:
        value: Text of the value
        type_name: One of the MIN_VALUE_TYPES names (case-insensitive)

    Returns:
        The converted value

    Raises:
        ConfigurationError: If the type is unknown or the value does not convert
    """
    converter = MIN_VALUE_TYPES.get(type_name.strip().lower())
    if converter is None:
        raise ConfigurationError(
            f"Unknown min_value type {type_name!r}; expected one of {', '.join(MIN_VALUE_TYPES)}"
        )
    try:
        return converter(value.strip())
    except (ValueError, ArithmeticError) as e:
        raise ConfigurationError(f"min_value {value!r} is not a valid {type_name}") from e


@dataclass
class SyncConfig:
    """
    Settings for synchronizing one table.

    ``primary_keys`` and the MIME type lists accept either a list or a
    comma-separated string. Setting ``key_column`` selects key-continuation
    paging; otherwise rows are paged by offset. ``title_column`` and
    ``last_modified_column`` name columns whose values become the document
    title and modification time; ``fetch_url_column`` (large-object mode
    only) names a column holding the display URL.
    """

    table: str
    primary_keys: list[str] | str
    query: str | None = None
    page_size: int = 500
    key_column: str | None = None
    min_value: Any = None
    lob_column: str | None = None
    url_column: str | None = None
    base_url: str | None = None
    document_id_column: str | None = None
    title_column: str | None = None
    last_modified_column: str | None = None
    fetch_url_column: str | None = None
    max_document_size: int = 30 * 1024 * 1024
    supported_mime_types: list[str] | str = field(default_factory=lambda: ["*/*"])
    excluded_mime_types: list[str] | str = field(default_factory=list)
    state_dir: str = "./dbsync_state"

    def __post_init__(self):
        if not self.table or not self.table.strip():
            raise ConfigurationError("table is required")

        self.primary_keys = _split_list(self.primary_keys)
        if not self.primary_keys:
            raise ConfigurationError(f"No primary keys configured for table {self.table}")

        self.supported_mime_types = _split_list(self.supported_mime_types)
        self.excluded_mime_types = _split_list(self.excluded_mime_types)

        if self.query is None:
            self.query = f"SELECT * FROM {self.table}"

        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) or self.page_size < 1:
            raise ConfigurationError(f"page_size must be a positive integer, got {self.page_size!r}")

        if not isinstance(self.max_document_size, int) or self.max_document_size < 0:
            raise ConfigurationError(
                f"max_document_size must be a non-negative integer, got {self.max_document_size!r}"
            )

        if self.min_value is not None and not self.key_column:
            raise ConfigurationError("min_value requires key_column")

        if bool(self.base_url) != bool(self.document_id_column):
            raise ConfigurationError("base_url and document_id_column must be set together")

        if self.fetch_url_column and not self.lob_column:
            raise ConfigurationError("fetch_url_column requires lob_column")

        modes = [
            name
            for name, value in (
                ("lob_column", self.lob_column),
                ("url_column", self.url_column),
                ("base_url", self.base_url),
            )
            if value
        ]
        if len(modes) > 1:
            raise ConfigurationError(f"Conflicting feed settings: {', '.join(modes)}")

    @property
    def uses_key_continuation(self) -> bool:
        return bool(self.key_column)

    @classmethod
    def from_env(cls, prefix: str = "DBSYNC_", environ: dict | None = None) -> "SyncConfig":
        """
        Build a configuration from environment variables.

        Variables are named after the fields with the given prefix, e.g.
        ``DBSYNC_TABLE``, ``DBSYNC_PRIMARY_KEYS``, ``DBSYNC_PAGE_SIZE``.
        ``DBSYNC_MIN_VALUE`` is converted by ``DBSYNC_MIN_VALUE_TYPE`` (one of
        ``str``, ``int``, ``float``, ``decimal``, ``date``, ``datetime``;
        default ``str``) so it compares correctly with the key column.

        Raises:
            ConfigurationError: If a value is missing or malformed
        """
        env = os.environ if environ is None else environ

        def get(name: str, default=None):
            value = env.get(f"{prefix}{name}")
            return default if value in (None, "") else value

        def get_int(name: str, default: int) -> int:
            value = get(name)
            if value is None:
                return default
            try:
                return int(value)
            except ValueError as e:
                raise ConfigurationError(f"{prefix}{name} must be an integer, got {value!r}") from e

        def get_min_value():
            value = get("MIN_VALUE")
            if value is None:
                return None
            try:
                return parse_min_value(value, get("MIN_VALUE_TYPE", "str"))
            except ConfigurationError as e:
                raise ConfigurationError(f"{prefix}MIN_VALUE: {e}") from e

        kwargs = {
            "table": get("TABLE", ""),
            "primary_keys": get("PRIMARY_KEYS", ""),
            "query": get("QUERY"),
            "page_size": get_int("PAGE_SIZE", 500),
            "key_column": get("KEY_COLUMN"),
            "min_value": get_min_value(),
            "lob_column": get("LOB_COLUMN"),
            "url_column": get("URL_COLUMN"),
            "base_url": get("BASE_URL"),
            "document_id_column": get("DOCUMENT_ID_COLUMN"),
            "title_column": get("TITLE_COLUMN"),
            "last_modified_column": get("LAST_MODIFIED_COLUMN"),
            "fetch_url_column": get("FETCH_URL_COLUMN"),
            "max_document_size": get_int("MAX_DOCUMENT_SIZE", 30 * 1024 * 1024),
            "supported_mime_types": get("SUPPORTED_MIME_TYPES", "*/*"),
            "excluded_mime_types": get("EXCLUDED_MIME_TYPES", ""),
            "state_dir": get("STATE_DIR", "./dbsync_state"),
        }
        config = cls(**kwargs)
        logger.info(f"Loaded configuration for table {config.table} from environment")
        return config


def classify_feed_mode(config: SyncConfig) -> FeedMode:
    """
    Decide how rows of the configured table become documents.

    Args:
        config: Validated configuration

    Returns:
        LARGE_OBJECT when a LOB column is set, URL_COMPLETE when a URL
        column is set, URL_BASE when a base URL and id column are set,
        METADATA otherwise
    """
    if config.lob_column:
        return FeedMode.LARGE_OBJECT
    if config.url_column:
        return FeedMode.URL_COMPLETE
    if config.base_url and config.document_id_column:
        return FeedMode.URL_BASE
    return FeedMode.METADATA
