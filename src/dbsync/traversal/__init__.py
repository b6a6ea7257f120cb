"""
Batch traversal of a table: row sources, paging cursor and iterator.
"""

from .cursor import (
    KeyContinuationPagination,
    OffsetPagination,
    PaginationStrategy,
    TraversalCursor,
    pagination_from_config,
)
from .iterator import SnapshotIterator
from .source import DbApiRowSource, RowSource

__all__ = [
    "RowSource",
    "DbApiRowSource",
    "PaginationStrategy",
    "OffsetPagination",
    "KeyContinuationPagination",
    "pagination_from_config",
    "TraversalCursor",
    "SnapshotIterator",
]
