"""
Utility modules for the table synchronizer

Provides:
- logging: structured logging setup and formatters
- tracing: OpenTelemetry span helpers
- metrics: safe Prometheus metric registration
- retry: exponential backoff for transient database failures
- sql_safety / database_types: identifier quoting and driver detection
"""

__all__ = ["logging", "tracing", "metrics", "retry", "sql_safety", "database_types"]
