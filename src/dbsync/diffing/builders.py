"""
Row to document builders, one per feed mode.

Each builder turns a row into a live Snapshot. The document itself is built
only if the change decision asks for it.
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any
from urllib.parse import quote

from dbsync.config import FeedMode, SyncConfig, classify_feed_mode
from dbsync.diffing.checksum import row_checksum
from dbsync.diffing.content import LazyContent, MimeTypePolicy, detect_mime_type
from dbsync.diffing.snapshot import ChangeType, Document, DocumentHolder, Snapshot
from dbsync.errors import RowConversionError
from dbsync.identity.codec import encode_docid
from dbsync.rows import find_column

logger = logging.getLogger(__name__)


def _property_value(value: Any) -> str:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _column_value(row: Mapping[str, Any], column: str) -> Any:
    name = find_column(row, column)
    if name is None:
        raise RowConversionError(f"Column {column!r} is not in the row")
    return row[name]


class RowDocumentHolder(DocumentHolder):
    """Defers document building for one row to its builder."""

    def __init__(self, builder: "DocumentBuilder", docid: str, row: Mapping[str, Any]):
        self.builder = builder
        self.docid = docid
        self.row = row
        self._document: Document | None = None

    def get_document(self, change: ChangeType) -> Document:
        if self._document is None or change == ChangeType.UPDATE:
            self._document = self.builder.make_document(self.docid, self.row, change)
        return self._document


class DocumentBuilder(ABC):
    """Base class for row to document conversion."""

    mode: FeedMode

    def __init__(self, config: SyncConfig):
        self.config = config
        self.primary_keys = list(config.primary_keys)

    def build(self, row: Mapping[str, Any]) -> Snapshot | None:
        """
        Build the live snapshot for a row.

        Returns:
            The snapshot, or None if the row yields no document

        Raises:
            InputError: If the primary keys do not match the row
            RowConversionError: If this row cannot be converted
        """
        docid = encode_docid(self.primary_keys, row)
        return Snapshot(docid, self.checksum(row), RowDocumentHolder(self, docid, row))

    def checksum(self, row: Mapping[str, Any]) -> str:
        return row_checksum(row, self.primary_keys)

    def title(self, row: Mapping[str, Any]) -> str | None:
        if not self.config.title_column:
            return None
        value = _column_value(row, self.config.title_column)
        return None if value is None else _property_value(value)

    def last_modified(self, row: Mapping[str, Any]) -> str | None:
        """Return the modification time column as ISO text, if it holds one."""
        if not self.config.last_modified_column:
            return None
        value = _column_value(row, self.config.last_modified_column)
        if value is None:
            return None
        if not isinstance(value, (date, datetime)):
            logger.warning(
                f"Column {self.config.last_modified_column} holds "
                f"{type(value).__name__}, not a date; no modification time"
            )
            return None
        return value.isoformat()

    def skipped_columns(self) -> tuple[str, ...]:
        """Columns kept out of the document properties."""
        if self.config.last_modified_column:
            return (self.config.last_modified_column,)
        return ()

    def properties(self, row: Mapping[str, Any], exclude: tuple[str, ...] = ()) -> dict[str, str]:
        """Render non-null columns as document properties."""
        skipped = {name.casefold() for name in exclude + self.skipped_columns()}
        return {
            name: _property_value(value)
            for name, value in row.items()
            if value is not None and name.casefold() not in skipped
        }

    @abstractmethod
    def make_document(self, docid: str, row: Mapping[str, Any], change: ChangeType) -> Document:
        pass


class MetadataDocumentBuilder(DocumentBuilder):
    """Indexes the row itself, rendered as JSON text."""

    mode = FeedMode.METADATA

    def make_document(self, docid, row, change):
        skipped = {name.casefold() for name in self.skipped_columns()}
        fields = {name: value for name, value in row.items() if name.casefold() not in skipped}
        content = json.dumps(fields, default=_property_value, ensure_ascii=False)
        return Document(
            docid=docid,
            properties=self.properties(row),
            content=content.encode("utf-8"),
            mime_type="text/plain",
            change=change,
            title=self.title(row),
            last_modified=self.last_modified(row),
        )


class LargeObjectDocumentBuilder(DocumentBuilder):
    """Indexes the content of a BLOB/CLOB column, other columns as properties."""

    mode = FeedMode.LARGE_OBJECT

    def __init__(
        self,
        config: SyncConfig,
        detector: Callable[[bytes], str] = detect_mime_type,
    ):
        super().__init__(config)
        self.lob_column = config.lob_column
        self.detector = detector
        self.policy = MimeTypePolicy.from_lists(
            config.supported_mime_types, config.excluded_mime_types
        )

    def payload(self, row: Mapping[str, Any]) -> bytes | None:
        value = _column_value(row, self.lob_column)
        if value is None:
            return None
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        raise RowConversionError(
            f"Column {self.lob_column!r} holds {type(value).__name__}, not text or bytes"
        )

    def checksum(self, row):
        return row_checksum(
            row, self.primary_keys, exclude=(self.lob_column,), payload=self.payload(row)
        )

    def display_url(self, row: Mapping[str, Any]) -> str | None:
        """Return the trimmed fetch URL column value, if it holds one."""
        if not self.config.fetch_url_column:
            return None
        value = _column_value(row, self.config.fetch_url_column)
        if value is None:
            return None
        return str(value).strip() or None

    def make_document(self, docid, row, change):
        content = LazyContent(
            docid,
            self.payload(row),
            self.policy,
            detector=self.detector,
            max_document_size=self.config.max_document_size,
        )
        classified = content.classify()
        display_url = self.display_url(row)
        # An empty fetch URL stays an ordinary property
        exclude = (self.lob_column,)
        if display_url is not None:
            exclude += (self.config.fetch_url_column,)
        return Document(
            docid=docid,
            properties=self.properties(row, exclude=exclude),
            content=classified.content,
            mime_type=classified.mime_type,
            change=change,
            content_status=classified.status,
            display_url=display_url,
            title=self.title(row),
            last_modified=self.last_modified(row),
        )


class UrlDocumentBuilder(DocumentBuilder):
    """
    Points the document at a URL taken from the row.

    In URL_COMPLETE mode the URL column holds the whole URL; in URL_BASE
    mode the id column value is appended to the configured base URL.
    """

    def __init__(self, config: SyncConfig, mode: FeedMode):
        super().__init__(config)
        self.mode = mode

    def url(self, row: Mapping[str, Any]) -> str | None:
        if self.mode == FeedMode.URL_COMPLETE:
            value = _column_value(row, self.config.url_column)
            return None if value is None else str(value)

        value = _column_value(row, self.config.document_id_column)
        if value is None:
            return None
        return f"{self.config.base_url}{quote(_property_value(value), safe='')}"

    def build(self, row):
        if self.url(row) is None:
            logger.debug(f"Row of {self.config.table} has no URL; no document")
            return None
        return super().build(row)

    def make_document(self, docid, row, change):
        return Document(
            docid=docid,
            properties=self.properties(row),
            url=self.url(row),
            change=change,
            title=self.title(row),
            last_modified=self.last_modified(row),
        )


def builder_for(
    config: SyncConfig,
    mode: FeedMode | None = None,
    detector: Callable[[bytes], str] | None = None,
) -> DocumentBuilder:
    """
    Return the builder for a feed mode.

    Args:
        config: Validated configuration
        mode: Feed mode; classified from ``config`` when omitted
        detector: MIME type detector for large-object content

    Returns:
        DocumentBuilder instance
    """
    if mode is None:
        mode = classify_feed_mode(config)

    if mode == FeedMode.LARGE_OBJECT:
        return LargeObjectDocumentBuilder(config, detector or detect_mime_type)
    if mode in (FeedMode.URL_COMPLETE, FeedMode.URL_BASE):
        return UrlDocumentBuilder(config, mode)
    return MetadataDocumentBuilder(config)
