"""
Incremental synchronization of database tables into a search index.

Rows are identified by docids built from their primary keys, compared with
a persisted baseline by checksum, and read in resumable batches that cycle
over the table indefinitely.
"""

from .config import FeedMode, SyncConfig, classify_feed_mode
from .diffing import ChangeDecision, ChangeType, Document, Snapshot, builder_for, diff
from .identity import compare_docids, decode_docid, encode_docid, legacy_adapt
from .poller import Poller, PollSummary, create_poller
from .traversal import DbApiRowSource, SnapshotIterator, TraversalCursor

__version__ = "1.0.0"

__all__ = [
    "SyncConfig",
    "FeedMode",
    "classify_feed_mode",
    "encode_docid",
    "decode_docid",
    "legacy_adapt",
    "compare_docids",
    "Snapshot",
    "Document",
    "ChangeType",
    "ChangeDecision",
    "diff",
    "builder_for",
    "DbApiRowSource",
    "TraversalCursor",
    "SnapshotIterator",
    "Poller",
    "PollSummary",
    "create_poller",
]
