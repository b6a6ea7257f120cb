"""
Deterministic ordering of docids.

Docids do not record the types of their components, so each decoded
component is classified by its shape: empty (null), numeric, date, time,
timestamp, or text. Components of the same class compare by value (numbers
numerically, temporal values in calendar order, text by code point or a
supplied collation key). Mismatched classes follow the precedence below:

    null vs. anything      -> by ValueOrdering.nulls_sort_low
    numeric vs. numeric    -> numerically, whatever the textual shape
    any other mismatch     -> as decoded text

A docid that is a prefix of another sorts first. Text that merely looks
like a number is compared as a number. Docids that still compare equal but
are not the same text are ordered by their raw text, so only identical
docids compare as 0.
"""

import functools
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from dbsync.errors import DecodeError
from dbsync.identity.codec import PRIMARY_KEYS_SEPARATOR, decode_component

_INTEGER = re.compile(r"^-?[0-9]+$")
_REAL = re.compile(r"^-?[0-9]*\.?[0-9]+([eE]-?[0-9]+)?$")
_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}(\.\d{1,6})?$")
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME = re.compile(r"^\d{2}:\d{2}:\d{2}(\.\d{1,6})?$")


class ComponentClass(str, Enum):
    NULL = "null"
    NUMERIC = "numeric"
    TIMESTAMP = "timestamp"
    DATE = "date"
    TIME = "time"
    TEXT = "text"


@dataclass(frozen=True)
class ValueOrdering:
    """
    Database-specific ordering rules.

    Attributes:
        nulls_sort_low: Whether null key values sort before all others
        collation_key: Optional key function applied to text values
    """

    nulls_sort_low: bool = True
    collation_key: Callable[[str], Any] | None = None


DEFAULT_ORDERING = ValueOrdering()


def classify_component(value: str) -> ComponentClass:
    """Classify a decoded docid component by its textual shape."""
    if value == "":
        return ComponentClass.NULL
    if _INTEGER.match(value) or _REAL.match(value):
        return ComponentClass.NUMERIC
    if _TIMESTAMP.match(value):
        return ComponentClass.TIMESTAMP
    if _DATE.match(value):
        return ComponentClass.DATE
    if _TIME.match(value):
        return ComponentClass.TIME
    return ComponentClass.TEXT


def _parse(value: str, kind: ComponentClass) -> Any:
    if kind == ComponentClass.NUMERIC:
        return Decimal(value)
    if kind == ComponentClass.TIMESTAMP:
        return datetime.fromisoformat(value)
    if kind == ComponentClass.DATE:
        return date.fromisoformat(value)
    if kind == ComponentClass.TIME:
        return time.fromisoformat(value)
    return value


def _sign(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def _compare_text(value1: str, value2: str, ordering: ValueOrdering) -> int:
    if ordering.collation_key is not None:
        return _sign(ordering.collation_key(value1), ordering.collation_key(value2))
    return _sign(value1, value2)


def compare_components(value1: str, value2: str, ordering: ValueOrdering = DEFAULT_ORDERING) -> int:
    """
    Compare two decoded docid components.

    Returns:
        -1, 0 or 1
    """
    kind1 = classify_component(value1)
    kind2 = classify_component(value2)

    if kind1 == ComponentClass.NULL or kind2 == ComponentClass.NULL:
        if kind1 == kind2:
            return 0
        low = -1 if ordering.nulls_sort_low else 1
        return low if kind1 == ComponentClass.NULL else -low

    if kind1 == kind2 and kind1 != ComponentClass.TEXT:
        try:
            return _sign(_parse(value1, kind1), _parse(value2, kind2))
        except (InvalidOperation, ValueError):
            # Shape matched but the value did not parse (e.g. month 13)
            pass

    return _compare_text(value1, value2, ordering)


def _tokens(docid: str) -> list[str]:
    tokens = []
    for token in docid.split(PRIMARY_KEYS_SEPARATOR):
        try:
            tokens.append(decode_component(token))
        except DecodeError:
            tokens.append(token)
    return tokens


def compare_docids(docid1: str, docid2: str, ordering: ValueOrdering = DEFAULT_ORDERING) -> int:
    """
    Compare two docids component by component.

    Args:
        docid1: First docid
        docid2: Second docid
        ordering: Null placement and text collation rules

    Returns:
        A negative integer, zero, or a positive integer as docid1 is less
        than, equal to, or greater than docid2
    """
    if docid1 == docid2:
        return 0

    tokens1 = _tokens(docid1)
    tokens2 = _tokens(docid2)

    for value1, value2 in zip(tokens1, tokens2):
        result = compare_components(value1, value2, ordering)
        if result != 0:
            return result

    result = _sign(len(tokens1), len(tokens2))
    if result != 0:
        return result

    # Equal by value (``007`` and ``7``) but distinct docids; order by raw text
    return _sign(docid1, docid2)


def docid_sort_key(ordering: ValueOrdering = DEFAULT_ORDERING):
    """Return a ``sorted`` key function ordering docids by :func:`compare_docids`."""
    return functools.cmp_to_key(functools.partial(compare_docids, ordering=ordering))
