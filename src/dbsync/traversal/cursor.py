"""
Resumable traversal of a table in batches.

The cursor reads one page per call and converts each row to a live
snapshot. Paging state advances after every non-empty page and returns to
the cycle start on an empty page (the table has been fully read) or when
the repository cannot be reached. The cursor never retries.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from dbsync.config import SyncConfig
from dbsync.diffing.builders import DocumentBuilder
from dbsync.diffing.snapshot import Snapshot
from dbsync.errors import ConnectivityError, RepositoryUnreachableError, RowConversionError
from dbsync.rows import find_column
from dbsync.traversal.source import RowSource
from dbsync.utils.metrics import get_or_create_metric
from dbsync.utils.tracing import add_span_event, trace_operation

logger = logging.getLogger(__name__)


# Metrics
BATCHES_FETCHED = get_or_create_metric(
    lambda: Counter("dbsync_batches_fetched_total", "Batches fetched", ["table"]),
    "dbsync_batches_fetched_total",
)

ROWS_FETCHED = get_or_create_metric(
    lambda: Counter("dbsync_rows_fetched_total", "Rows fetched", ["table"]),
    "dbsync_rows_fetched_total",
)

CURSOR_RESETS = get_or_create_metric(
    lambda: Counter(
        "dbsync_cursor_resets_total",
        "Cursor returns to the cycle start",
        ["table", "reason"],  # reason: cycle_end, unreachable, failed_cycle, explicit
    ),
    "dbsync_cursor_resets_total",
)

CONVERSION_FAILURES = get_or_create_metric(
    lambda: Counter(
        "dbsync_row_conversion_failures_total",
        "Rows skipped because they could not be converted",
        ["table"],
    ),
    "dbsync_row_conversion_failures_total",
)

BATCH_FETCH_TIME = get_or_create_metric(
    lambda: Histogram(
        "dbsync_batch_fetch_seconds",
        "Time to fetch and convert one batch",
        ["table"],
        buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
    ),
    "dbsync_batch_fetch_seconds",
)


class PaginationStrategy(ABC):
    """Paging state for one traversal cycle."""

    def __init__(self, page_size: int):
        if page_size < 1:
            raise ValueError(f"page_size must be positive, got {page_size}")
        self.page_size = page_size

    @abstractmethod
    def fetch(self, source: RowSource) -> list[Mapping[str, Any]]:
        """Read the next page from ``source``."""
        pass

    @abstractmethod
    def advance(self, rows: Sequence[Mapping[str, Any]]) -> None:
        """Move past ``rows``; an empty page restarts the cycle."""
        pass

    @abstractmethod
    def reset(self) -> None:
        pass

    @property
    @abstractmethod
    def state(self) -> dict[str, Any]:
        pass


class OffsetPagination(PaginationStrategy):
    """Pages by row offset."""

    def __init__(self, page_size: int):
        super().__init__(page_size)
        self.skip = 0

    def fetch(self, source):
        return source.fetch_page(self.skip, self.page_size)

    def advance(self, rows):
        if rows:
            self.skip += len(rows)
        else:
            self.reset()

    def reset(self):
        self.skip = 0

    @property
    def state(self):
        return {"skip": self.skip, "page_size": self.page_size}


class KeyContinuationPagination(PaginationStrategy):
    """
    Pages by key value: each page holds rows with key greater than the
    largest key of the previous page.
    """

    def __init__(self, page_size: int, key_column: str, min_value: Any = None):
        super().__init__(page_size)
        self.key_column = key_column
        self.min_value = min_value
        self.last_key = min_value
        self.stalled = False

    def fetch(self, source):
        if self.stalled:
            # A page without keys cannot move the position
            return []
        return source.fetch_after(self.key_column, self.last_key, self.page_size)

    def advance(self, rows):
        if not rows:
            self.reset()
            return

        keys = []
        for row in rows:
            column = find_column(row, self.key_column)
            if column is not None and row[column] is not None:
                keys.append(row[column])
        if keys:
            self.last_key = max(keys)
        else:
            logger.warning(f"No {self.key_column} values in page; ending cycle")
            self.stalled = True

    def reset(self):
        self.last_key = self.min_value
        self.stalled = False

    @property
    def state(self):
        return {"last_key": str(self.last_key), "page_size": self.page_size}


def pagination_from_config(config: SyncConfig) -> PaginationStrategy:
    if config.uses_key_continuation:
        return KeyContinuationPagination(config.page_size, config.key_column, config.min_value)
    return OffsetPagination(config.page_size)


class TraversalCursor:
    """
    Reads a table batch by batch, forever.

    Args:
        source: Row source for the table
        builder: Converts rows to live snapshots
        pagination: Offset or key-continuation paging state
        table: Table name for logs and metrics
    """

    def __init__(
        self,
        source: RowSource,
        builder: DocumentBuilder,
        pagination: PaginationStrategy,
        table: str = "",
    ):
        self.source = source
        self.builder = builder
        self.pagination = pagination
        self.table = table or builder.config.table
        self.cycle_rows = 0
        self.cycle_ended = False

    @property
    def reports_deletes(self) -> bool:
        """Whether one cycle covers the whole table, so unseen rows are deleted."""
        return isinstance(self.pagination, OffsetPagination)

    def reset(self, reason: str = "explicit") -> None:
        """Return to the start of the cycle."""
        self.pagination.reset()
        self.cycle_rows = 0
        CURSOR_RESETS.labels(table=self.table, reason=reason).inc()
        logger.debug(f"Cursor for {self.table} reset ({reason})")

    def fetch_next_batch(self) -> list[Snapshot]:
        """
        Fetch and convert the next page.

        Returns:
            Live snapshots for the page; empty when the cycle has ended

        Raises:
            RepositoryUnreachableError: If the source cannot be reached;
                the cursor is back at the cycle start
        """
        with trace_operation(
            "fetch_next_batch",
            kind=trace.SpanKind.CLIENT,
            table=self.table,
            **self.pagination.state,
        ):
            with BATCH_FETCH_TIME.labels(table=self.table).time():
                try:
                    rows = self.pagination.fetch(self.source)
                except ConnectivityError as e:
                    logger.warning(
                        f"Repository unreachable for {self.table} at {self.pagination.state}; "
                        f"restarting cycle: {e}"
                    )
                    self.reset(reason="unreachable")
                    self.cycle_ended = False
                    raise RepositoryUnreachableError(
                        f"Repository unreachable while reading {self.table}"
                    ) from e

                BATCHES_FETCHED.labels(table=self.table).inc()
                self.pagination.advance(rows)

                if not rows:
                    logger.info(f"Traversal cycle for {self.table} complete: {self.cycle_rows} rows")
                    add_span_event("cycle_complete", rows=self.cycle_rows)
                    self.cycle_rows = 0
                    self.cycle_ended = True
                    CURSOR_RESETS.labels(table=self.table, reason="cycle_end").inc()
                    return []

                self.cycle_ended = False
                self.cycle_rows += len(rows)
                ROWS_FETCHED.labels(table=self.table).inc(len(rows))
                return self._convert(rows)

    def _convert(self, rows: Sequence[Mapping[str, Any]]) -> list[Snapshot]:
        snapshots = []
        for row in rows:
            try:
                snapshot = self.builder.build(row)
            except RowConversionError as e:
                CONVERSION_FAILURES.labels(table=self.table).inc()
                logger.warning(f"Skipping row of {self.table}: {e}")
                continue
            if snapshot is not None:
                snapshots.append(snapshot)

        logger.debug(f"Batch of {len(rows)} rows from {self.table}: {len(snapshots)} snapshots")
        return snapshots
