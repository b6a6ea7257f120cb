"""
Unit tests for dbsync.utils.tracing

Spans are recorded with an in-memory exporter on a private provider, so the
global tracer provider is never replaced.
"""

import os
from datetime import date
from unittest.mock import Mock, patch

import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from dbsync.utils.tracing import (
    add_span_attributes,
    add_span_event,
    initialize_tracing,
    shutdown_tracing,
    trace_operation,
)
from dbsync.utils.tracing import tracer as tracer_module


@pytest.fixture
def exporter():
    span_exporter = InMemorySpanExporter()
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    with patch("dbsync.utils.tracing.context.get_tracer", return_value=provider.get_tracer("test")):
        yield span_exporter


class TestTraceOperation:
    """Test trace_operation context manager"""

    def test_span_named_with_namespaced_attributes(self, exporter):
        with trace_operation("fetch_batch", table="employee", page_size=500):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.name == "fetch_batch"
        assert span.attributes["dbsync.table"] == "employee"
        assert span.attributes["dbsync.page_size"] == 500
        assert "table" not in span.attributes

    def test_unsupported_values_sent_as_text(self, exporter):
        with trace_operation("fetch_batch", last_key=date(2024, 1, 2), state=None):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.attributes["dbsync.last_key"] == "2024-01-02"
        assert span.attributes["dbsync.state"] == "None"

    def test_error_recorded_and_reraised(self, exporter):
        with pytest.raises(ValueError, match="boom"):
            with trace_operation("poll_cycle"):
                raise ValueError("boom")

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.status.description == "boom"
        assert span.attributes["error.type"] == "ValueError"
        assert [event.name for event in span.events] == ["exception"]

    def test_success_leaves_status_unset(self, exporter):
        with trace_operation("poll_cycle"):
            pass

        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.UNSET

    def test_current_span_helpers(self, exporter):
        with trace_operation("poll_cycle"):
            add_span_attributes(added=3, table="employee")
            add_span_event("cycle_complete", rows=10)

        (span,) = exporter.get_finished_spans()
        assert span.attributes["dbsync.added"] == 3
        assert span.attributes["dbsync.table"] == "employee"
        assert span.events[0].name == "cycle_complete"
        assert span.events[0].attributes["dbsync.rows"] == 10

    def test_helpers_without_active_span(self):
        """Test helpers are no-ops outside a recording span"""
        add_span_attributes(added=1)
        add_span_event("ignored")


class TestInitializeTracing:
    """Test tracer setup and shutdown"""

    def setup_method(self):
        tracer_module._tracer = None
        tracer_module._is_initialized = False

    def teardown_method(self):
        tracer_module._tracer = None
        tracer_module._is_initialized = False

    @patch("dbsync.utils.tracing.tracer.trace.set_tracer_provider")
    def test_initialize_once(self, mock_set_provider):
        with patch.dict(os.environ, {}, clear=True):
            first = initialize_tracing(service_name="dbsync-test")
            second = initialize_tracing(service_name="dbsync-test")

        assert second is first
        mock_set_provider.assert_called_once()

    @patch("dbsync.utils.tracing.tracer.trace.set_tracer_provider")
    @patch("dbsync.utils.tracing.tracer.OTLPSpanExporter")
    def test_otlp_endpoint_from_environment(self, mock_exporter, mock_set_provider):
        with patch.dict(os.environ, {"OTLP_ENDPOINT": "collector:4317"}, clear=True):
            initialize_tracing()

        mock_exporter.assert_called_once_with(endpoint="collector:4317", insecure=True)

    @patch("dbsync.utils.tracing.tracer.trace.get_tracer_provider")
    def test_shutdown_flushes_provider(self, mock_get_provider):
        provider = Mock()
        mock_get_provider.return_value = provider
        tracer_module._is_initialized = True

        shutdown_tracing()

        provider.shutdown.assert_called_once()
        assert tracer_module._is_initialized is False

    @patch("dbsync.utils.tracing.tracer.trace.get_tracer_provider")
    def test_shutdown_when_not_initialized(self, mock_get_provider):
        shutdown_tracing()

        mock_get_provider.assert_not_called()
