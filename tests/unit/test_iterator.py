"""
Unit tests for SnapshotIterator.
"""

import pytest

from dbsync.diffing.builders import MetadataDocumentBuilder, builder_for
from dbsync.errors import EndOfBatchError, RepositoryUnreachableError
from dbsync.traversal.cursor import OffsetPagination, TraversalCursor
from dbsync.traversal.iterator import SnapshotIterator


@pytest.fixture
def iterator(row_source, sync_config) -> SnapshotIterator:
    cursor = TraversalCursor(row_source, MetadataDocumentBuilder(sync_config), OffsetPagination(2))
    return SnapshotIterator(cursor)


class TestSnapshotIterator:
    """Test SnapshotIterator"""

    def test_iterates_one_cycle(self, iterator):
        docids = [snapshot.docid for snapshot in iterator]

        assert docids == ["1/last_01", "2/last_02", "3/last_03"]

    def test_next_cycle_after_end(self, iterator):
        """Test has_next() False is not permanent"""
        list(iterator)

        assert iterator.has_next() is True
        assert iterator.next_snapshot().docid == "1/last_01"

    def test_pull_interface(self, iterator):
        assert iterator.has_next() is True
        assert iterator.next_snapshot().docid == "1/last_01"
        assert iterator.next_snapshot().docid == "2/last_02"
        assert iterator.has_next() is True
        assert iterator.next_snapshot().docid == "3/last_03"
        assert iterator.has_next() is False

    def test_restart_drops_buffer(self, iterator):
        """Test a restart reads the cycle again from the first row"""
        assert iterator.has_next() is True
        iterator.next_snapshot()

        iterator.restart()

        assert [s.docid for s in iterator] == ["1/last_01", "2/last_02", "3/last_03"]

    def test_next_on_exhausted_buffer(self, iterator):
        with pytest.raises(EndOfBatchError):
            iterator.next_snapshot()

    def test_connectivity_failure_propagates(self, iterator, row_source, unreachable):
        row_source.failures.append(unreachable)

        with pytest.raises(RepositoryUnreachableError):
            iterator.has_next()

    def test_skipped_page_does_not_end_cycle(self, make_source, sync_config):
        """Test a page whose rows all yield no document is passed over"""
        source = make_source([
            {"id": 1, "lastName": "a", "url": None},
            {"id": 2, "lastName": "b", "url": None},
            {"id": 3, "lastName": "c", "url": "http://host/c"},
        ])
        sync_config.url_column = "url"

        cursor = TraversalCursor(source, builder_for(sync_config), OffsetPagination(2))

        assert [s.docid for s in SnapshotIterator(cursor)] == ["3/c"]
