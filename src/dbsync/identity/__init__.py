"""
Row identity: docid encoding, legacy reconciliation and ordering.
"""

from .codec import (
    PRIMARY_KEYS_SEPARATOR,
    decode_component,
    decode_docid,
    encode_docid,
    encode_value,
)
from .legacy import legacy_adapt, legacy_decode, legacy_encode, lookup_keys, resolve_matches
from .ordering import (
    DEFAULT_ORDERING,
    ComponentClass,
    ValueOrdering,
    classify_component,
    compare_components,
    compare_docids,
    docid_sort_key,
)

__all__ = [
    "PRIMARY_KEYS_SEPARATOR",
    "encode_docid",
    "encode_value",
    "decode_docid",
    "decode_component",
    "legacy_adapt",
    "legacy_decode",
    "legacy_encode",
    "lookup_keys",
    "resolve_matches",
    "ValueOrdering",
    "DEFAULT_ORDERING",
    "ComponentClass",
    "classify_component",
    "compare_components",
    "compare_docids",
    "docid_sort_key",
]
