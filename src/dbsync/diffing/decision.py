"""
Per-row change decisions.

Given the live snapshot of a row and the snapshot recorded in the baseline
for the same docid, decide whether the index needs nothing, an add, or an
update.
"""

import logging
from dataclasses import dataclass

from prometheus_client import Counter

from dbsync.diffing.snapshot import ChangeType, Document, Snapshot
from dbsync.errors import SnapshotContractError
from dbsync.utils.metrics import get_or_create_metric

logger = logging.getLogger(__name__)


# Metrics
CHANGE_DECISIONS = get_or_create_metric(
    lambda: Counter(
        "dbsync_change_decisions_total",
        "Per-row change decisions",
        ["change"],
    ),
    "dbsync_change_decisions_total",
)


@dataclass(frozen=True)
class ChangeDecision:
    """
    Outcome of comparing a live snapshot with its reference.

    ``snapshot`` is the live snapshot, to be persisted as the new baseline
    entry once the document has been handled.
    """

    change: ChangeType
    snapshot: Snapshot

    @property
    def docid(self) -> str:
        return self.snapshot.docid

    @property
    def needs_document(self) -> bool:
        return self.change != ChangeType.NONE

    def document(self) -> Document:
        """
        Materialize the document for an ADD or UPDATE.

        Raises:
            SnapshotContractError: For a NONE decision
            ContentClassificationReject: If the content type is excluded
        """
        if self.change == ChangeType.NONE:
            raise SnapshotContractError(f"No document to send for unchanged {self.docid!r}")
        return self.snapshot.get_document(self.change)


def diff(live: Snapshot, reference: Snapshot | None = None) -> ChangeDecision:
    """
    Decide what the index needs for one row.

    Args:
        live: Snapshot built from the row just read
        reference: Baseline snapshot for the same docid, or None

    Returns:
        ADD without a reference, NONE if the serialized forms or the
        checksums match, UPDATE otherwise

    Raises:
        SnapshotContractError: If ``live`` is historical or the docids differ
    """
    if not live.is_live:
        raise SnapshotContractError(f"Cannot diff historical snapshot {live.docid!r}")

    if reference is None:
        change = ChangeType.ADD
    elif reference.docid != live.docid:
        raise SnapshotContractError(
            f"Reference docid {reference.docid!r} does not match {live.docid!r}"
        )
    elif reference.serialize() == live.serialize() or reference.checksum == live.checksum:
        change = ChangeType.NONE
    else:
        change = ChangeType.UPDATE

    logger.debug(f"Change decision for {live.docid}: {change.value}")
    CHANGE_DECISIONS.labels(change=change.value).inc()
    return ChangeDecision(change, live)
