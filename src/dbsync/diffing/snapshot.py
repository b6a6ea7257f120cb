"""
Row snapshots and their serialized baseline form.

A live snapshot is built from a freshly read row and can materialize the
row's document. A historical snapshot is parsed back from the baseline and
carries only the docid and checksum.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from dbsync.diffing.content import ContentStatus
from dbsync.errors import DecodeError, SnapshotContractError


class ChangeType(str, Enum):
    NONE = "none"
    ADD = "add"
    UPDATE = "update"


@dataclass
class Document:
    """Document handed to the indexing service."""

    docid: str
    properties: dict[str, Any] = field(default_factory=dict)
    content: bytes | None = None
    mime_type: str | None = None
    url: str | None = None
    display_url: str | None = None
    title: str | None = None
    last_modified: str | None = None
    change: ChangeType = ChangeType.ADD
    content_status: ContentStatus = ContentStatus.ACCEPTED


class DocumentHolder(ABC):
    """Builds the document for a live snapshot on demand."""

    @abstractmethod
    def get_document(self, change: ChangeType) -> Document:
        """
        Materialize the document.

        Args:
            change: ADD or UPDATE; on UPDATE every lazily computed field is
                recomputed rather than taken from an earlier materialization

        Returns:
            The document
        """
        pass


class Snapshot:
    """Docid and checksum of one row as last seen."""

    __slots__ = ("docid", "checksum", "_holder", "_text")

    def __init__(
        self,
        docid: str,
        checksum: str,
        holder: DocumentHolder | None = None,
        text: str | None = None,
    ):
        self.docid = docid
        self.checksum = checksum
        self._holder = holder
        self._text = text

    @property
    def is_live(self) -> bool:
        return self._holder is not None

    def serialize(self) -> str:
        """
        Return the baseline form: compact JSON with sorted keys.

        Historical snapshots return the text they were parsed from.
        """
        if self._text is None:
            self._text = json.dumps(
                {"checksum": self.checksum, "docid": self.docid},
                sort_keys=True,
                separators=(",", ":"),
                ensure_ascii=False,
            )
        return self._text

    @classmethod
    def parse(cls, text: str) -> "Snapshot":
        """
        Parse a serialized snapshot into a historical snapshot.

        Raises:
            DecodeError: If the text is not a serialized snapshot
        """
        try:
            data = json.loads(text)
        except (TypeError, ValueError) as e:
            raise DecodeError(f"Invalid serialized snapshot: {text!r}") from e

        if not isinstance(data, dict):
            raise DecodeError(f"Serialized snapshot is not an object: {text!r}")

        docid = data.get("docid")
        checksum = data.get("checksum")
        if not isinstance(docid, str) or not isinstance(checksum, str):
            raise DecodeError(f"Serialized snapshot lacks docid or checksum: {text!r}")

        return cls(docid, checksum, text=text)

    def get_document(self, change: ChangeType) -> Document:
        """
        Raises:
            SnapshotContractError: If this is a historical snapshot
        """
        if self._holder is None:
            raise SnapshotContractError(
                f"Historical snapshot for {self.docid!r} cannot produce a document"
            )
        return self._holder.get_document(change)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return self.docid == other.docid and self.checksum == other.checksum

    def __hash__(self) -> int:
        return hash((self.docid, self.checksum))

    def __repr__(self) -> str:
        kind = "live" if self.is_live else "historical"
        return f"Snapshot({self.docid!r}, {self.checksum!r}, {kind})"
