"""
Document identifier (docid) encoding for database rows.

A docid is formed from the row's primary key values, in configured order,
separated by '/'. Numbers are written as base 10 text, dates, times and
timestamps in fixed ISO 8601 forms, and every other value is form-encoded
(space becomes '+', reserved characters become %XX). A null key leaves an
empty component so positions are preserved:

    keys ["id", "lastName"], row {"id": 1, "lastName": "last_01"}
        -> "1/last_01"
    keys ["PartNum", "Rev"], row {"PartNum": "A 7", "Rev": None}
        -> "A+7/"
"""

import logging
import numbers
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from typing import Any
from urllib.parse import quote_plus, unquote_to_bytes

from dbsync.errors import DecodeError, EmptyInputError, MissingKeyError
from dbsync.rows import find_column

logger = logging.getLogger(__name__)

PRIMARY_KEYS_SEPARATOR = "/"

_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def encode_docid(primary_keys: Sequence[str], row: Mapping[str, Any]) -> str:
    """
    Generate the docid for a database row.

    Args:
        primary_keys: Ordered primary key column names
        row: Mapping of column name to value

    Returns:
        Encoded primary key values separated by '/'

    Raises:
        EmptyInputError: If the key list or the row is None or empty
        MissingKeyError: If a key name matches no column, ignoring case
    """
    if not row:
        msg = "Database row is null or empty"
        logger.warning(msg)
        raise EmptyInputError(msg)
    if not primary_keys:
        msg = "List of primary keys is empty or null"
        logger.warning(msg)
        raise EmptyInputError(msg)

    components = []
    for primary_key in primary_keys:
        column = find_column(row, primary_key)
        if column is None:
            logger.warning(f"Primary key {primary_key!r} does not match any column")
            raise MissingKeyError(primary_key, row.keys())
        components.append(encode_value(row[column]))

    return PRIMARY_KEYS_SEPARATOR.join(components)


def encode_value(value: Any) -> str:
    """
    Encode a single primary key value as a docid component.

    Args:
        value: Primary key value as returned by the driver

    Returns:
        Text that contains no unescaped '/', '%' or '+'
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Number):
        # Decimal and float exponents print as "E+nn"; a '+' would decode
        # back to a space.
        return str(value).replace("+", "")
    if isinstance(value, datetime):
        return _format_timestamp(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return _format_time(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_plus(bytes(value), safe="")
    return quote_plus(str(value), safe="")


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(sep=" ", timespec="microseconds")


def _format_time(value: time) -> str:
    if value.tzinfo is not None:
        value = value.replace(tzinfo=None)
    if value.microsecond:
        return value.isoformat(timespec="microseconds")
    return value.isoformat(timespec="seconds")


def decode_docid(docid: str) -> list[str]:
    """
    Split a docid into its primary key values.

    Trailing empty components are kept, so a trailing null key is still
    counted. Components containing '%' or '+' are form-decoded; no attempt
    is made to restore the original types.

    Args:
        docid: Encoded docid

    Returns:
        One text value per primary key, in order

    Raises:
        DecodeError: If a component has a malformed escape or is not UTF-8
    """
    return [decode_component(token) for token in docid.split(PRIMARY_KEYS_SEPARATOR)]


def decode_component(token: str) -> str:
    """Form-decode one docid component if it carries escapes."""
    if "%" not in token and "+" not in token:
        return token
    if _MALFORMED_ESCAPE.search(token):
        raise DecodeError(f"Malformed escape sequence in docid component {token!r}")
    try:
        return unquote_to_bytes(token.replace("+", " ")).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Docid component {token!r} is not UTF-8 text") from e
