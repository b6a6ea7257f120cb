"""
Checks on the SQL text the row source builds around a configured query.

Only column names and paging numbers are spliced into statements; key
values always travel as bound parameters. Column names must be plain ASCII
identifiers and are quoted in the dialect of the connection.
"""

import re
from collections.abc import Iterable

from dbsync.utils.database_types import DatabaseType

# Letters, digits and underscores, not starting with a digit
_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def validate_identifier(identifier: str) -> None:
    """
    Reject anything but a plain ASCII column name.

    Raises:
        ValueError: If the name is empty or holds other characters
    """
    if not identifier:
        raise ValueError("SQL identifier cannot be empty")
    if not _IDENTIFIER.fullmatch(identifier):
        raise ValueError(
            f"Invalid SQL identifier: {identifier!r}. "
            "Use ASCII letters, digits and underscores, starting with a letter or underscore."
        )


def quote_identifier(identifier: str, db_type: DatabaseType) -> str:
    validate_identifier(identifier)
    return db_type.quote_identifier(identifier)


def quote_columns(columns: Iterable[str], db_type: DatabaseType) -> str:
    """
    Quote columns for an ORDER BY list.

    Args:
        columns: Column names, in order
        db_type: Dialect giving the quoting style

    Returns:
        The quoted names joined with ", "

    Raises:
        ValueError: If no column is given or a name is invalid
    """
    quoted = [quote_identifier(column, db_type) for column in columns]
    if not quoted:
        raise ValueError("At least one column is required")
    return ", ".join(quoted)


def _check_count(value: int, name: str, minimum: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"Invalid {name}: {value!r}. Must be an integer")
    if value < minimum:
        raise ValueError(f"Invalid {name}: {value}. Must be >= {minimum}")


def validate_window(skip: int, limit: int) -> None:
    """
    Check the row window of a page.

    Raises:
        ValueError: If skip is negative, limit is below 1, or either is not an int
    """
    _check_count(skip, "skip", 0)
    _check_count(limit, "limit", 1)
