"""
Unit tests for dbsync.utils.metrics
"""

import pytest
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram

from dbsync.diffing.decision import diff
from dbsync.diffing.snapshot import Snapshot
from dbsync.utils.metrics import get_or_create_metric


class TestGetOrCreateMetric:
    """Test get_or_create_metric"""

    def setup_method(self):
        self.registry = CollectorRegistry()

    def make_counter(self):
        return Counter(
            "dbsync_test_rows_total", "Rows seen in tests", ["table"], registry=self.registry
        )

    def test_creates_new_metric(self):
        counter = get_or_create_metric(self.make_counter, "dbsync_test_rows_total", self.registry)

        counter.labels(table="employee").inc()

        assert self.registry.get_sample_value(
            "dbsync_test_rows_total", {"table": "employee"}
        ) == 1.0

    def test_duplicate_registration_returns_existing(self):
        """Test a second import gets the metric registered by the first"""
        first = get_or_create_metric(self.make_counter, "dbsync_test_rows_total", self.registry)
        second = get_or_create_metric(self.make_counter, "dbsync_test_rows_total", self.registry)

        assert second is first

    def test_histogram_duplicate(self):
        def factory():
            return Histogram("dbsync_test_seconds", "Timing", registry=self.registry)

        first = get_or_create_metric(factory, "dbsync_test_seconds", self.registry)

        assert get_or_create_metric(factory, "dbsync_test_seconds", self.registry) is first

    def test_unrelated_value_error_propagates(self):
        def factory():
            raise ValueError("bad label")

        with pytest.raises(ValueError, match="bad label"):
            get_or_create_metric(factory, "dbsync_missing_total", self.registry)


class TestModuleMetrics:
    """Test metrics declared by the sync modules"""

    def test_decisions_counted_by_change(self):
        labels = {"change": "add"}
        before = REGISTRY.get_sample_value("dbsync_change_decisions_total", labels) or 0.0

        diff(Snapshot("metrics/1", "abc", object()))

        assert REGISTRY.get_sample_value("dbsync_change_decisions_total", labels) == before + 1
