"""
Change detection: snapshots, checksums, decisions and document builders.
"""

from .builders import (
    DocumentBuilder,
    LargeObjectDocumentBuilder,
    MetadataDocumentBuilder,
    UrlDocumentBuilder,
    builder_for,
)
from .checksum import row_checksum
from .content import ClassifiedContent, ContentStatus, LazyContent, MimeTypePolicy, detect_mime_type
from .decision import ChangeDecision, diff
from .snapshot import ChangeType, Document, DocumentHolder, Snapshot

__all__ = [
    "ChangeType",
    "ChangeDecision",
    "diff",
    "Snapshot",
    "Document",
    "DocumentHolder",
    "row_checksum",
    "ContentStatus",
    "ClassifiedContent",
    "LazyContent",
    "MimeTypePolicy",
    "detect_mime_type",
    "DocumentBuilder",
    "MetadataDocumentBuilder",
    "LargeObjectDocumentBuilder",
    "UrlDocumentBuilder",
    "builder_for",
]
