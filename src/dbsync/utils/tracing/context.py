"""
Span helpers used around batch fetches, poll cycles and authorization.

Attributes are namespaced under ``dbsync.`` so they do not collide with
OpenTelemetry semantic conventions. Values keep their type when OpenTelemetry
accepts it (str, bool, int, float); anything else is sent as text.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from .tracer import get_tracer

ATTRIBUTE_PREFIX = "dbsync."


def _attributes(values: dict[str, Any]) -> dict[str, Any]:
    return {
        f"{ATTRIBUTE_PREFIX}{key}": (
            value if isinstance(value, (str, bool, int, float)) else str(value)
        )
        for key, value in values.items()
    }


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Run a block inside a span named after the operation.

    An exception leaves the span with ERROR status, an ``error.type``
    attribute and an exception event, then propagates.

    Args:
        operation_name: Span name
        kind: Span kind
        **attributes: Span attributes, stored as ``dbsync.<name>``

    Yields:
        The span

    Example:
        >>> with trace_operation("fetch_batch", table="employee", page_size=500):
        ...     rows = source.fetch_page(0, 500)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        operation_name,
        kind=kind,
        attributes=_attributes(attributes),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.set_attribute("error.type", type(e).__name__)
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    """Set ``dbsync.`` attributes on the current span, if one is recording."""
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.set_attributes(_attributes(attributes))


def add_span_event(name: str, **attributes):
    current_span = trace.get_current_span()
    if current_span.is_recording():
        current_span.add_event(name, attributes=_attributes(attributes))
