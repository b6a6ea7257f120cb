"""
Reconciliation of legacy and current docid formats.

Older connector releases issued docids as URL-safe Base64 of the primary key
values joined with commas ("MSxKYW4" for 1,Jan). Documents indexed by those
releases keep their old docids, so lookups that arrive from the index (such
as authorization checks) can mix both formats in one batch. Both are reduced
to the comma-joined raw values, which is what lookup queries return.
"""

import base64
import binascii
import logging
from collections.abc import Iterable, Mapping

from dbsync.errors import DecodeError
from dbsync.identity.codec import PRIMARY_KEYS_SEPARATOR, decode_component, decode_docid

logger = logging.getLogger(__name__)

LEGACY_VALUES_SEPARATOR = ","


def legacy_encode(values: Iterable[object]) -> str:
    """
    Build a legacy docid from primary key values.

    Args:
        values: Primary key values, None for null keys

    Returns:
        Unpadded URL-safe Base64 of the comma-joined values
    """
    joined = LEGACY_VALUES_SEPARATOR.join("" if v is None else str(v) for v in values)
    return base64.urlsafe_b64encode(joined.encode("utf-8")).decode("ascii").rstrip("=")


def legacy_decode(docid: str) -> str:
    """
    Decode a legacy docid to its comma-joined values.

    Raises:
        DecodeError: If the docid is not canonical Base64 of UTF-8 text
    """
    padded = docid + "=" * (-len(docid) % 4)
    try:
        raw = base64.b64decode(padded, altchars=b"-_", validate=True)
        text = raw.decode("utf-8")
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Not a legacy docid: {docid!r}") from e

    if legacy_encode([text]) != docid.rstrip("="):
        raise DecodeError(f"Not a canonical legacy docid: {docid!r}")
    return text


def lookup_keys(docid: str) -> list[str]:
    """
    Return every comma-joined value reading of ``docid``.

    A separator-less docid may be either a legacy blob or a single-key
    current docid, so both readings are returned when both decode.

    Raises:
        DecodeError: If no reading decodes
    """
    if not docid:
        raise DecodeError("Empty docid")

    if PRIMARY_KEYS_SEPARATOR in docid:
        return [LEGACY_VALUES_SEPARATOR.join(decode_docid(docid))]

    keys = []
    errors = []
    for decode in (legacy_decode, decode_component):
        try:
            key = decode(docid)
        except DecodeError as e:
            errors.append(str(e))
            continue
        if key not in keys:
            keys.append(key)

    if not keys:
        raise DecodeError("; ".join(errors))
    return keys


def legacy_adapt(docids: Iterable[str]) -> dict[str, str]:
    """
    Map the comma-joined raw values of each docid to the docid itself.

    Identifiers that fail to decode are logged and left out of the map;
    callers treat them as absent. One bad identifier never aborts the batch.

    Args:
        docids: Docids in legacy or current format

    Returns:
        Dictionary of raw values to original docid
    """
    docid_map: dict[str, str] = {}
    for docid in docids:
        try:
            keys = lookup_keys(docid)
        except DecodeError as e:
            logger.warning(f"Error decoding docid {docid!r}: {e}")
            continue
        for key in keys:
            docid_map.setdefault(key, docid)
    return docid_map


def resolve_matches(docid_map: Mapping[str, str], matched_values: Iterable[str]) -> list[str]:
    """
    Translate values returned by a lookup query back to original docids.

    Args:
        docid_map: Result of :func:`legacy_adapt`
        matched_values: Comma-joined values the lookup matched

    Returns:
        Original docids in match order, without duplicates
    """
    resolved = []
    for value in matched_values:
        docid = docid_map.get(value)
        if docid is not None and docid not in resolved:
            resolved.append(docid)
    return resolved
