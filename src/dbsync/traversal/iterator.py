"""
Pull interface over the traversal cursor.
"""

import logging
from collections.abc import Iterator

from dbsync.diffing.snapshot import Snapshot
from dbsync.errors import EndOfBatchError
from dbsync.traversal.cursor import TraversalCursor

logger = logging.getLogger(__name__)


class SnapshotIterator:
    """
    Buffers one batch of snapshots and pulls the next batch when the buffer
    runs out.

    ``has_next()`` returns False when the cursor reports the end of a
    cycle. That is not permanent: the next call starts a new cycle.
    Connectivity errors from the cursor propagate unchanged.
    """

    def __init__(self, cursor: TraversalCursor):
        self.cursor = cursor
        self._batch: list[Snapshot] = []
        self._position = 0

    @property
    def reports_deletes(self) -> bool:
        return self.cursor.reports_deletes

    def restart(self, reason: str = "explicit") -> None:
        """Drop the buffered batch and return the cursor to the cycle start."""
        self._batch = []
        self._position = 0
        self.cursor.reset(reason=reason)

    def has_next(self) -> bool:
        # A page whose rows were all skipped is not the end of the cycle
        while self._position >= len(self._batch):
            self._batch = self.cursor.fetch_next_batch()
            self._position = 0
            if not self._batch and self.cursor.cycle_ended:
                return False
        return True

    def next_snapshot(self) -> Snapshot:
        """
        Return the next buffered snapshot.

        Raises:
            EndOfBatchError: If the buffer is exhausted; call has_next() first
        """
        if self._position >= len(self._batch):
            raise EndOfBatchError("No more snapshots in the current batch")
        snapshot = self._batch[self._position]
        self._position += 1
        return snapshot

    def __iter__(self) -> Iterator[Snapshot]:
        while self.has_next():
            yield self.next_snapshot()
