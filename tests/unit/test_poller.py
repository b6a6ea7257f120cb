"""
Unit and end-to-end tests for the polling consumer.

Tests verify:
- ADD on first sight, NONE when unchanged, UPDATE on content change
- Deletes reported in docid order at cycle end
- Deliberate skips and per-row failures leave the baseline consistent
- Retry on connectivity loss
"""

from unittest.mock import patch

import pytest

from dbsync.baseline import BaselineStore
from dbsync.config import SyncConfig
from dbsync.diffing.snapshot import ChangeType, Document, DocumentHolder, Snapshot
from dbsync.errors import RepositoryUnreachableError, RowConversionError
from dbsync.poller import Poller, PollSummary, create_poller


class TestEndToEnd:
    """Rows through cursor, diff, sink and baseline"""

    def test_add_none_update(self, make_source, sink, sync_config):
        """Test the identity is stable and only the checksum tracks content"""
        rows = [{"id": 1, "lastName": "last_01", "email": "01@example.com"}]
        source = make_source(rows)
        poller = create_poller(sync_config, source, sink)

        first = poller.poll_cycle()

        assert first.added == 1
        assert [d.docid for d in sink.sent] == ["1/last_01"]
        assert sink.sent[0].change == ChangeType.ADD
        checksum = poller.baseline.get("1/last_01").checksum

        second = poller.poll_cycle()

        assert second.unchanged == 1
        assert second.added == second.updated == 0
        assert len(sink.sent) == 1

        rows[0]["email"] = "changed@example.com"
        third = poller.poll_cycle()

        assert third.updated == 1
        assert sink.sent[-1].docid == "1/last_01"
        assert sink.sent[-1].change == ChangeType.UPDATE
        assert poller.baseline.get("1/last_01").checksum != checksum

    def test_baseline_survives_restart(self, make_source, sink, sync_config, employee_rows):
        create_poller(sync_config, make_source(employee_rows), sink).poll_cycle()

        summary = create_poller(sync_config, make_source(employee_rows), sink).poll_cycle()

        assert summary.unchanged == 3
        assert summary.added == 0

    def test_deletes_in_docid_order(self, make_source, sink, sync_config):
        rows = [{"id": i, "lastName": "x", "email": "e"} for i in (1, 2, 10, 11)]
        source = make_source(rows)
        poller = create_poller(sync_config, source, sink)
        poller.poll_cycle()

        del rows[:]
        rows.append({"id": 2, "lastName": "x", "email": "e"})
        summary = poller.poll_cycle()

        assert sink.deleted == ["1/x", "10/x", "11/x"]
        assert summary.deleted == 3
        assert poller.baseline.docids() == ["2/x"]

    def test_no_deletes_in_key_continuation_mode(self, make_source, sink, tmp_path):
        config = SyncConfig(
            table="employee", primary_keys="id", key_column="id", state_dir=str(tmp_path)
        )
        rows = [{"id": 1, "name": "a"}, {"id": 2, "name": "b"}]
        poller = create_poller(config, make_source(rows), sink)
        poller.poll_cycle()

        rows.pop()
        summary = poller.poll_cycle()

        assert summary.deleted == 0
        assert sink.deleted == []

    def test_excluded_content_skipped(self, make_source, sink, tmp_path):
        config = SyncConfig(
            table="docs", primary_keys="id", lob_column="body",
            excluded_mime_types="text/*", state_dir=str(tmp_path),
        )
        poller = create_poller(config, make_source([{"id": 1, "body": b"hello"}]), sink)

        summary = poller.poll_cycle()

        assert summary.skipped == 1
        assert sink.sent == []
        assert "1" not in poller.baseline

    def test_connectivity_failure_keeps_handled_rows(
        self, make_source, sink, sync_config, employee_rows, unreachable
    ):
        """Test rows handled before the failure stay in the saved baseline"""
        source = make_source(employee_rows)
        poller = create_poller(sync_config, source, sink)
        original = source.fetch_page

        def fail_on_second_page(skip, limit):
            if skip > 0:
                raise unreachable
            return original(skip, limit)

        source.fetch_page = fail_on_second_page

        with pytest.raises(RepositoryUnreachableError):
            poller.poll_cycle()

        assert len(poller.baseline) == 2
        assert BaselineStore(sync_config.state_dir, "employee").docids() == ["1/last_01", "2/last_02"]
        assert sink.deleted == []

    def test_failed_cycle_restarts_from_top(self, make_source, sink, sync_config, employee_rows):
        """Test a cycle that fails part way does not make unread rows look deleted"""
        poller = create_poller(sync_config, make_source(employee_rows), sink)
        poller.poll_cycle()

        employee_rows[1]["email"] = "changed-02@example.com"
        employee_rows[2]["email"] = "changed-03@example.com"
        send = sink.send
        rejected = []

        def reject_first(document):
            if not rejected:
                rejected.append(document.docid)
                raise RuntimeError("index rejected document")
            send(document)

        sink.send = reject_first

        with pytest.raises(RuntimeError):
            poller.poll_cycle()

        summary = poller.poll_cycle()

        assert rejected == ["2/last_02"]
        assert sink.deleted == []
        assert summary.deleted == 0
        assert summary.seen == 3
        assert summary.updated == 2
        assert sorted(poller.baseline.docids()) == ["1/last_01", "2/last_02", "3/last_03"]

    def test_poll_with_retry(self, make_source, sink, sync_config, employee_rows, unreachable):
        source = make_source(employee_rows)
        source.failures.append(unreachable)
        poller = create_poller(sync_config, source, sink)

        with patch("time.sleep") as mock_sleep:
            summary = poller.poll_with_retry(max_retries=2, base_delay=0.1)

        assert summary.added == 3
        assert mock_sleep.call_count == 1

    def test_poll_with_retry_gives_up(self, make_source, sink, sync_config, employee_rows):
        source = make_source(employee_rows)
        source.failures = [RepositoryUnreachableError("down")] * 3
        poller = create_poller(sync_config, source, sink)

        with patch("time.sleep"):
            with pytest.raises(RepositoryUnreachableError):
                poller.poll_with_retry(max_retries=2, base_delay=0.1)


class FailingHolder(DocumentHolder):
    def get_document(self, change):
        raise RowConversionError("cannot render column")


class StaticHolder(DocumentHolder):
    def get_document(self, change):
        return Document("1", change=change)


class StaticIterator:
    def __init__(self, snapshots, reports_deletes=False):
        self.snapshots = snapshots
        self.reports_deletes = reports_deletes
        self.restarts = []

    def __iter__(self):
        return iter(self.snapshots)

    def restart(self, reason="explicit"):
        self.restarts.append(reason)


class TestPoller:
    """Test Poller against a fixed iterator"""

    def test_materialization_failure_leaves_baseline(self, sink, tmp_path):
        baseline = BaselineStore(str(tmp_path), "t")
        poller = Poller(StaticIterator([Snapshot("1", "abc", FailingHolder())]), baseline, sink)

        summary = poller.poll_cycle()

        assert summary.failed == 1
        assert baseline.get("1") is None
        assert sink.sent == []

    def test_failure_restarts_iterator(self, tmp_path):
        class BrokenSink:
            def send(self, document):
                raise RuntimeError("index unavailable")

            def delete(self, docid):
                pass

        iterator = StaticIterator([Snapshot("1", "abc", StaticHolder())], reports_deletes=True)
        poller = Poller(iterator, BaselineStore(str(tmp_path), "t"), BrokenSink())

        with pytest.raises(RuntimeError, match="index unavailable"):
            poller.poll_cycle()

        assert iterator.restarts == ["failed_cycle"]

    def test_summary_to_dict(self):
        summary = PollSummary(table="t", added=2)

        assert summary.to_dict() == {
            "table": "t", "seen": 0, "added": 2, "updated": 0, "unchanged": 0,
            "deleted": 0, "skipped": 0, "failed": 0,
        }
