"""
Row sources for the traversal cursor.

``DbApiRowSource`` wraps the configured query in a paging query over any
DB-API 2.0 connection (psycopg, pyodbc, sqlite3). Transient driver errors
surface as ConnectivityError so the cursor can reset its cycle.
"""

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from typing import Any, Protocol

from prometheus_client import Histogram

from dbsync.errors import ConnectivityError
from dbsync.rows import Row
from dbsync.utils.database_types import DatabaseType
from dbsync.utils.metrics import get_or_create_metric
from dbsync.utils.retry import is_retryable_db_exception
from dbsync.utils.sql_safety import quote_columns, quote_identifier, validate_window

logger = logging.getLogger(__name__)


# Metrics
SOURCE_QUERY_TIME = get_or_create_metric(
    lambda: Histogram(
        "dbsync_source_query_seconds",
        "Time to run one page query",
        ["method"],
        buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    ),
    "dbsync_source_query_seconds",
)


class RowSource(Protocol):
    """Supplies pages of rows to the traversal cursor."""

    def fetch_page(self, skip: int, limit: int) -> list[Mapping[str, Any]]:
        """Return up to ``limit`` rows after skipping ``skip`` rows."""
        ...

    def fetch_after(self, key_column: str, last_key: Any, limit: int) -> list[Mapping[str, Any]]:
        """
        Return up to ``limit`` rows with key greater than ``last_key``, in key
        order. Rows with a null key are never returned; ``last_key`` None
        means from the smallest key.
        """
        ...


class DbApiRowSource:
    """
    Row source over a DB-API 2.0 connection.

    Args:
        connection: Open DB-API connection
        query: SELECT statement producing the table's rows
        order_by: Columns giving a stable order for offset paging
        db_type: Database flavour; detected from the first cursor when omitted
    """

    def __init__(
        self,
        connection: Any,
        query: str,
        order_by: Sequence[str],
        db_type: DatabaseType | None = None,
    ):
        if not order_by:
            raise ValueError("order_by requires at least one column")
        self.connection = connection
        self.query = query.strip().rstrip(";")
        self.order_by = list(order_by)
        self.db_type = db_type

    def fetch_page(self, skip: int, limit: int) -> list[Row]:
        validate_window(skip, limit)

        def build(db_type: DatabaseType) -> tuple[str, tuple]:
            order = quote_columns(self.order_by, db_type)
            ordered = f"SELECT * FROM ({self.query}) AS dbsync_page ORDER BY {order}"
            return db_type.paginate(ordered, skip, limit)

        return self._run("fetch_page", build)

    def fetch_after(self, key_column: str, last_key: Any, limit: int) -> list[Row]:
        validate_window(0, limit)

        def build(db_type: DatabaseType) -> tuple[str, tuple]:
            key = quote_identifier(key_column, db_type)
            sql = f"SELECT * FROM ({self.query}) AS dbsync_page"
            params: tuple = ()
            if last_key is None:
                sql += f" WHERE {key} IS NOT NULL"
            else:
                sql += f" WHERE {key} > {db_type.placeholder}"
                params = (last_key,)
            paged, page_params = db_type.paginate(f"{sql} ORDER BY {key}", 0, limit)
            return paged, params + page_params

        return self._run("fetch_after", build)

    def _run(self, method: str, build: Callable[[DatabaseType], tuple[str, tuple]]) -> list[Row]:
        start = time.time()
        cursor = None
        try:
            cursor = self.connection.cursor()
            if self.db_type is None:
                self.db_type = DatabaseType.from_cursor(cursor)
                logger.debug(f"Detected database type: {self.db_type.value}")

            sql, params = build(self.db_type)
            cursor.execute(sql, params)
            description = cursor.description
            rows = [Row.from_cursor(description, values) for values in cursor.fetchall()]
        except Exception as e:
            if is_retryable_db_exception(e):
                logger.warning(f"Repository unreachable during {method}: {type(e).__name__}: {e}")
                raise ConnectivityError(f"Repository unreachable: {e}") from e
            raise
        finally:
            if cursor is not None:
                cursor.close()

        SOURCE_QUERY_TIME.labels(method=method).observe(time.time() - start)
        logger.debug(f"{method} returned {len(rows)} rows")
        return rows
