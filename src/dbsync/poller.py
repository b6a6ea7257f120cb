"""
Polling consumer.

Drives one traversal cycle: every snapshot is diffed against the baseline,
added or updated documents go to the sink, and the baseline is brought up
to date. When a cycle covers the whole table, docids in the baseline that
were not seen are reported as deleted.
"""

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any, Protocol

from opentelemetry import trace
from prometheus_client import Counter, Histogram

from dbsync.baseline import BaselineStore
from dbsync.config import SyncConfig, classify_feed_mode
from dbsync.diffing.builders import builder_for
from dbsync.diffing.decision import diff
from dbsync.diffing.snapshot import ChangeType, Document, Snapshot
from dbsync.errors import ConnectivityError, ContentClassificationReject, RowConversionError
from dbsync.identity.ordering import DEFAULT_ORDERING, ValueOrdering, docid_sort_key
from dbsync.traversal.cursor import TraversalCursor, pagination_from_config
from dbsync.traversal.iterator import SnapshotIterator
from dbsync.traversal.source import RowSource
from dbsync.utils.logging import ContextLogger
from dbsync.utils.metrics import get_or_create_metric
from dbsync.utils.retry import retry_with_backoff
from dbsync.utils.tracing import add_span_attributes, trace_operation

logger = logging.getLogger(__name__)


# Metrics
POLL_CYCLES = get_or_create_metric(
    lambda: Counter("dbsync_poll_cycles_total", "Completed poll cycles", ["table"]),
    "dbsync_poll_cycles_total",
)

POLL_RETRIES = get_or_create_metric(
    lambda: Counter("dbsync_poll_retries_total", "Poll cycles retried", ["table"]),
    "dbsync_poll_retries_total",
)

DOCUMENTS_FED = get_or_create_metric(
    lambda: Counter(
        "dbsync_documents_fed_total",
        "Documents sent to the index",
        ["table", "action"],  # action: add, update, delete
    ),
    "dbsync_documents_fed_total",
)

POLL_TIME = get_or_create_metric(
    lambda: Histogram(
        "dbsync_poll_cycle_seconds",
        "Time to run one poll cycle",
        ["table"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
    ),
    "dbsync_poll_cycle_seconds",
)


class DocumentSink(Protocol):
    """Receives documents for the index."""

    def send(self, document: Document) -> None:
        ...

    def delete(self, docid: str) -> None:
        ...


@dataclass
class PollSummary:
    """Counts for one poll cycle."""

    table: str
    seen: int = 0
    added: int = 0
    updated: int = 0
    unchanged: int = 0
    deleted: int = 0
    skipped: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class Poller:
    """
    Feeds changes of one table to a sink.

    Args:
        iterator: Snapshot iterator over the table
        baseline: Baseline store for the table
        sink: Destination for documents and deletes
        ordering: Order in which deletes are reported
    """

    def __init__(
        self,
        iterator: SnapshotIterator,
        baseline: BaselineStore,
        sink: DocumentSink,
        ordering: ValueOrdering = DEFAULT_ORDERING,
    ):
        self.iterator = iterator
        self.baseline = baseline
        self.sink = sink
        self.ordering = ordering
        self.table = baseline.table
        self.log = ContextLogger(__name__, table_name=self.table)

    def poll_cycle(self) -> PollSummary:
        """
        Run one full traversal cycle.

        The baseline is saved even when the cycle fails part way, so rows
        already handled are not fed again. A failed cycle sends the cursor
        back to the table start, so the next call reads the whole table
        before it reports deletes.

        Returns:
            PollSummary with the cycle's counts

        Raises:
            RepositoryUnreachableError: If the repository cannot be reached
        """
        with trace_operation("poll_cycle", kind=trace.SpanKind.INTERNAL, table=self.table):
            with POLL_TIME.labels(table=self.table).time():
                summary = PollSummary(table=self.table)
                seen: set[str] = set()

                try:
                    for snapshot in self.iterator:
                        seen.add(snapshot.docid)
                        summary.seen += 1
                        self._handle(snapshot, summary)

                    if self.iterator.reports_deletes:
                        self._report_deletes(seen, summary)
                except Exception:
                    # A partly read cycle must not report deletes next time
                    self.iterator.restart(reason="failed_cycle")
                    raise
                finally:
                    self.baseline.save()

                POLL_CYCLES.labels(table=self.table).inc()
                add_span_attributes(**summary.to_dict())
                self.log.info(
                    f"Poll cycle complete: {summary.added} added, {summary.updated} updated, "
                    f"{summary.deleted} deleted, {summary.unchanged} unchanged",
                    **{k: v for k, v in summary.to_dict().items() if k != "table"},
                )
                return summary

    def poll_with_retry(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
    ) -> PollSummary:
        """Run poll_cycle, retrying with backoff while the repository is unreachable."""

        def on_retry(attempt: int, error: Exception, delay: float) -> None:
            POLL_RETRIES.labels(table=self.table).inc()

        @retry_with_backoff(
            max_retries=max_retries,
            base_delay=base_delay,
            max_delay=max_delay,
            retryable_exceptions=(ConnectivityError,),
            on_retry=on_retry,
        )
        def poll() -> PollSummary:
            return self.poll_cycle()

        return poll()

    def _handle(self, snapshot: Snapshot, summary: PollSummary) -> None:
        reference = self.baseline.get(snapshot.docid)
        decision = diff(snapshot, reference)

        if decision.change == ChangeType.NONE:
            summary.unchanged += 1
            return

        log = self.log.bind(docid=snapshot.docid)
        try:
            document = decision.document()
        except ContentClassificationReject as e:
            summary.skipped += 1
            log.info(str(e))
            if reference is not None:
                self._delete(snapshot.docid, summary)
            return
        except RowConversionError as e:
            summary.failed += 1
            log.warning(f"Skipping document {snapshot.docid}: {e}")
            return

        self.sink.send(document)
        self.baseline.put(decision.snapshot)

        if decision.change == ChangeType.ADD:
            summary.added += 1
        else:
            summary.updated += 1
        DOCUMENTS_FED.labels(table=self.table, action=decision.change.value).inc()

    def _report_deletes(self, seen: set[str], summary: PollSummary) -> None:
        missing = [docid for docid in self.baseline.docids() if docid not in seen]
        for docid in sorted(missing, key=docid_sort_key(self.ordering)):
            self._delete(docid, summary)

    def _delete(self, docid: str, summary: PollSummary) -> None:
        self.sink.delete(docid)
        self.baseline.remove(docid)
        summary.deleted += 1
        DOCUMENTS_FED.labels(table=self.table, action="delete").inc()


def create_poller(
    config: SyncConfig,
    source: RowSource,
    sink: DocumentSink,
    detector: Callable[[bytes], str] | None = None,
    ordering: ValueOrdering = DEFAULT_ORDERING,
) -> Poller:
    """
    Wire a poller for the configured table.

    Args:
        config: Validated configuration
        source: Row source for the table
        sink: Destination for documents and deletes
        detector: MIME type detector for large-object content
        ordering: Order in which deletes are reported

    Returns:
        Poller instance
    """
    mode = classify_feed_mode(config)
    builder = builder_for(config, mode, detector=detector)
    cursor = TraversalCursor(source, builder, pagination_from_config(config), table=config.table)
    baseline = BaselineStore(config.state_dir, config.table)

    logger.info(f"Created poller for {config.table} in {mode.value} mode")
    return Poller(SnapshotIterator(cursor), baseline, sink, ordering=ordering)
