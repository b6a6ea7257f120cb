"""
Lazy classification of large-object content.

Content is only inspected when a document is actually materialized (on the
ADD/UPDATE path), so unchanged rows never pay for MIME detection.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from dbsync.errors import ContentClassificationReject

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


class ContentStatus(str, Enum):
    ACCEPTED = "accepted"
    SKIPPED = "skipped"
    EMPTY = "empty"


def _normalize(mime_type: str) -> str:
    return mime_type.split(";", 1)[0].strip().lower()


def _matches(mime_type: str, pattern: str) -> bool:
    pattern = _normalize(pattern)
    if pattern in ("*", "*/*"):
        return True
    if pattern.endswith("/*"):
        return mime_type.startswith(pattern[:-1])
    return mime_type == pattern


@dataclass(frozen=True)
class MimeTypePolicy:
    """
    Supported and excluded MIME types.

    Entries may be exact types ("application/pdf") or wildcards
    ("image/*"). Exclusion wins over support.
    """

    supported: tuple[str, ...] = ("*/*",)
    excluded: tuple[str, ...] = ()

    @classmethod
    def from_lists(cls, supported: Iterable[str], excluded: Iterable[str]) -> "MimeTypePolicy":
        return cls(tuple(supported), tuple(excluded))

    def support_level(self, mime_type: str) -> int:
        """
        Return 1 for supported, 0 for unsupported and -1 for excluded types.
        """
        mime_type = _normalize(mime_type)
        if any(_matches(mime_type, pattern) for pattern in self.excluded):
            return -1
        if any(_matches(mime_type, pattern) for pattern in self.supported):
            return 1
        return 0


def detect_mime_type(content: bytes) -> str:
    """
    Minimal content sniffing used when no detector is supplied.

    Returns "text/plain" for UTF-8 text and the generic binary type
    otherwise.
    """
    try:
        content.decode("utf-8")
    except UnicodeDecodeError:
        return DEFAULT_MIME_TYPE
    return "text/plain"


@dataclass(frozen=True)
class ClassifiedContent:
    status: ContentStatus
    mime_type: str | None
    content: bytes | None


class LazyContent:
    """
    Large-object payload classified on first request.

    Args:
        docid: Document the payload belongs to, for logging and errors
        payload: Raw bytes, or None for a null LOB
        policy: Supported/excluded MIME types
        detector: Callable returning the MIME type of the payload
        max_document_size: Payloads larger than this are omitted
    """

    def __init__(
        self,
        docid: str,
        payload: bytes | None,
        policy: MimeTypePolicy,
        detector: Callable[[bytes], str] = detect_mime_type,
        max_document_size: int | None = None,
    ):
        self.docid = docid
        self.payload = payload
        self.policy = policy
        self.detector = detector
        self.max_document_size = max_document_size
        self._classified: ClassifiedContent | None = None

    @property
    def is_classified(self) -> bool:
        return self._classified is not None

    def classify(self) -> ClassifiedContent:
        """
        Classify the payload, once.

        Raises:
            ContentClassificationReject: If the MIME type is excluded
        """
        if self._classified is None:
            self._classified = self._classify()
        return self._classified

    def _classify(self) -> ClassifiedContent:
        if not self.payload:
            return ClassifiedContent(ContentStatus.EMPTY, None, None)

        mime_type = self.detector(self.payload) or DEFAULT_MIME_TYPE
        level = self.policy.support_level(mime_type)

        if level < 0:
            raise ContentClassificationReject(self.docid, mime_type)

        if level == 0:
            logger.warning(
                f"Content of document {self.docid} has unsupported MIME type "
                f"{mime_type}; sending metadata only"
            )
            return ClassifiedContent(ContentStatus.SKIPPED, mime_type, None)

        if self.max_document_size is not None and len(self.payload) > self.max_document_size:
            logger.warning(
                f"Content of document {self.docid} is {len(self.payload)} bytes, "
                f"larger than the {self.max_document_size} byte limit; sending metadata only"
            )
            return ClassifiedContent(ContentStatus.SKIPPED, mime_type, None)

        return ClassifiedContent(ContentStatus.ACCEPTED, mime_type, self.payload)
