"""
Row checksum calculation.

Key columns are left out because they already form the docid; excluded
columns (such as a large-object column) contribute through ``payload``
instead so the document content is hashed as raw bytes.

The hashed text is a JSON array of ``[name, value]`` pairs, so column
boundaries survive any characters a value may contain.
"""

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any


def _render(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).hex()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def canonical_form(
    row: Mapping[str, Any],
    primary_keys: Iterable[str],
    exclude: Iterable[str] = (),
) -> str:
    """Render the checksummed columns as compact JSON, sorted by folded name."""
    skipped = {name.casefold() for name in primary_keys}
    skipped.update(name.casefold() for name in exclude)

    columns = sorted(
        (name for name in row if name.casefold() not in skipped),
        key=lambda name: (name.casefold(), name),
    )
    pairs = [[name.casefold(), _render(row[name])] for name in columns]
    return json.dumps(pairs, ensure_ascii=False, separators=(",", ":"))


def row_checksum(
    row: Mapping[str, Any],
    primary_keys: Iterable[str],
    exclude: Iterable[str] = (),
    payload: bytes | None = None,
) -> str:
    """
    Calculate the checksum of a row's content.

    Args:
        row: Mapping of column name to value
        primary_keys: Key columns to leave out (matched ignoring case)
        exclude: Further columns to leave out
        payload: Optional large-object bytes, hashed after the columns
            behind an 8-byte length prefix

    Returns:
        SHA256 checksum as hexadecimal string
    """
    hasher = hashlib.sha256()
    hasher.update(canonical_form(row, primary_keys, exclude).encode("utf-8"))
    if payload is not None:
        payload = bytes(payload)
        hasher.update(len(payload).to_bytes(8, "big"))
        hasher.update(payload)
    return hasher.hexdigest()
