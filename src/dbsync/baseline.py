"""
File-backed baseline of serialized snapshots.

The baseline records what the index is believed to hold for one table: the
serialized snapshot of every docid fed so far. It is kept in memory and
written back as one JSON file per table.
"""

import json
import logging
import os
import re
from datetime import UTC, datetime
from pathlib import Path

from opentelemetry import trace
from prometheus_client import Counter

from dbsync.diffing.snapshot import Snapshot
from dbsync.errors import DecodeError
from dbsync.utils.metrics import get_or_create_metric
from dbsync.utils.tracing import trace_operation

logger = logging.getLogger(__name__)


# Metrics
BASELINE_OPERATIONS = get_or_create_metric(
    lambda: Counter(
        "dbsync_baseline_operations_total",
        "Baseline state file operations",
        ["operation"],  # load, save
    ),
    "dbsync_baseline_operations_total",
)


class BaselineStore:
    """
    Persisted snapshots for one table.

    Changes made with put() and remove() are held in memory until save().
    """

    def __init__(self, state_dir: str, table: str):
        """
        Initialize the store and load any saved state.

        Args:
            state_dir: Directory to store state files
            table: Table name
        """
        self.state_dir = Path(state_dir)
        self.state_dir.mkdir(parents=True, exist_ok=True)
        self.table = table
        self.dirty = False
        self._entries: dict[str, str] = self._load()
        logger.info(f"Loaded baseline for {table}: {len(self._entries)} snapshots")

    @property
    def state_file(self) -> Path:
        safe_table_name = re.sub(r'[/\\:*?"<>|]', "_", self.table)
        return self.state_dir / f"{safe_table_name}_baseline.json"

    def get(self, docid: str) -> Snapshot | None:
        """
        Return the historical snapshot recorded for ``docid``.

        An unreadable entry is logged and treated as absent.
        """
        text = self._entries.get(docid)
        if text is None:
            return None
        try:
            return Snapshot.parse(text)
        except DecodeError as e:
            logger.warning(f"Discarding unreadable baseline entry for {docid}: {e}")
            return None

    def put(self, snapshot: Snapshot) -> None:
        self._entries[snapshot.docid] = snapshot.serialize()
        self.dirty = True

    def remove(self, docid: str) -> None:
        if self._entries.pop(docid, None) is not None:
            self.dirty = True

    def docids(self) -> list[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, docid: object) -> bool:
        return docid in self._entries

    def save(self) -> None:
        """
        Write the baseline to disk.

        The file is replaced atomically so a failed save leaves the previous
        state intact.
        """
        if not self.dirty:
            return

        with trace_operation("save_baseline", kind=trace.SpanKind.INTERNAL, table=self.table):
            state = {
                "table": self.table,
                "saved_at": datetime.now(UTC).isoformat(),
                "snapshots": self._entries,
            }
            tmp_file = self.state_file.with_suffix(".json.tmp")
            try:
                with open(tmp_file, "w", encoding="utf-8") as f:
                    json.dump(state, f, indent=2, ensure_ascii=False)
                os.replace(tmp_file, self.state_file)
            except OSError as e:
                logger.error(f"Failed to save baseline for {self.table}: {e}")
                raise

            self.dirty = False
            BASELINE_OPERATIONS.labels(operation="save").inc()
            logger.info(f"Saved baseline for {self.table}: {len(self._entries)} snapshots")

    def clear(self) -> None:
        """Forget every snapshot and delete the state file."""
        self._entries = {}
        self.dirty = False
        if self.state_file.exists():
            self.state_file.unlink()
            logger.info(f"Cleared baseline for table {self.table}")

    def _load(self) -> dict[str, str]:
        state_file = self.state_file
        if not state_file.exists():
            logger.debug(f"No previous baseline for table {self.table}")
            return {}

        try:
            with open(state_file, encoding="utf-8") as f:
                state = json.load(f)
            snapshots = state["snapshots"]
            if not isinstance(snapshots, dict):
                raise ValueError("snapshots is not an object")
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Failed to load baseline for {self.table}, starting empty: {e}")
            return {}

        BASELINE_OPERATIONS.labels(operation="load").inc()
        return {str(docid): str(text) for docid, text in snapshots.items()}
