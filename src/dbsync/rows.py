"""
Case-insensitive row mapping.

Column names returned by drivers do not always match the case a user typed
into the connector configuration, so rows are looked up without regard to
case while keeping the driver's spelling for iteration and rendering.
"""

from collections.abc import Iterator, Mapping
from typing import Any


class Row(Mapping):
    """
    Read-only mapping of column name to value with case-insensitive lookup.

    An exact-case match is preferred; otherwise the first column whose
    case-folded name matches is used.
    """

    __slots__ = ("_data", "_folded")

    def __init__(self, data: Mapping[str, Any] | None = None, **columns: Any):
        self._data: dict[str, Any] = dict(data or {}, **columns)
        self._folded: dict[str, str] = {}
        for name in self._data:
            self._folded.setdefault(name.casefold(), name)

    @classmethod
    def from_cursor(cls, description, values) -> "Row":
        """Build a row from a DB-API ``cursor.description`` and a result tuple."""
        return cls({column[0]: value for column, value in zip(description, values)})

    def column_name(self, name: str) -> str | None:
        """Return the row's own spelling of ``name``, or None if absent."""
        if name in self._data:
            return name
        return self._folded.get(name.casefold())

    def __getitem__(self, name: str) -> Any:
        column = self.column_name(name)
        if column is None:
            raise KeyError(name)
        return self._data[column]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.column_name(name) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Row({self._data!r})"


def find_column(row: Mapping[str, Any], name: str) -> str | None:
    """
    Find the column of ``row`` matching ``name`` case-insensitively.

    Works for plain dicts as well as :class:`Row`.
    """
    if isinstance(row, Row):
        return row.column_name(name)
    if name in row:
        return name
    folded = name.casefold()
    for column in row:
        if column.casefold() == folded:
            return column
    return None
