"""
Pytest configuration and fixtures for table synchronization tests.
Provides in-memory row sources, sinks and configuration fixtures.
"""

from collections.abc import Mapping
from typing import Any

import pytest

from dbsync.config import SyncConfig
from dbsync.errors import ConnectivityError


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


class ListRowSource:
    """
    Row source over a list of dicts, ordered by key.

    ``failures`` holds exceptions raised by the next calls, in order.
    """

    def __init__(self, rows: list[dict[str, Any]], key: str = "id"):
        self.rows = rows
        self.key = key
        self.failures: list[Exception] = []
        self.calls: list[tuple] = []

    def _check(self) -> None:
        if self.failures:
            raise self.failures.pop(0)

    def _ordered(self) -> list[Mapping[str, Any]]:
        return sorted(self.rows, key=lambda row: row[self.key])

    def fetch_page(self, skip: int, limit: int):
        self.calls.append(("fetch_page", skip, limit))
        self._check()
        return self._ordered()[skip:skip + limit]

    def fetch_after(self, key_column: str, last_key, limit: int):
        self.calls.append(("fetch_after", last_key, limit))
        self._check()
        rows = [
            row for row in self._ordered()
            if row[key_column] is not None
            and (last_key is None or row[key_column] > last_key)
        ]
        return rows[:limit]


class RecordingSink:
    """Sink that records documents and deletes."""

    def __init__(self):
        self.sent = []
        self.deleted = []

    def send(self, document) -> None:
        self.sent.append(document)

    def delete(self, docid: str) -> None:
        self.deleted.append(docid)


@pytest.fixture
def employee_rows() -> list[dict[str, Any]]:
    return [
        {"id": 1, "lastName": "last_01", "email": "01@example.com"},
        {"id": 2, "lastName": "last_02", "email": "02@example.com"},
        {"id": 3, "lastName": "last_03", "email": "03@example.com"},
    ]


@pytest.fixture
def row_source(employee_rows) -> ListRowSource:
    return ListRowSource(employee_rows)


@pytest.fixture
def make_source():
    """Factory for row sources over arbitrary rows."""
    return ListRowSource


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def sync_config(tmp_path) -> SyncConfig:
    return SyncConfig(
        table="employee",
        primary_keys=["id", "lastName"],
        page_size=2,
        state_dir=str(tmp_path / "state"),
    )


@pytest.fixture
def unreachable() -> ConnectivityError:
    return ConnectivityError("connection refused")
