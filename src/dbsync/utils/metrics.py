"""
Prometheus metric helpers.

Metrics are declared at module level next to the code that updates them;
this module only guards against duplicate registration when a module is
imported twice (test reloads, embedded interpreters).
"""

from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under its name.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        BATCHES_TOTAL = get_or_create_metric(
            lambda: Counter("dbsync_batches_total", "Batches fetched", ["table"]),
            "dbsync_batches_total",
        )
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise
