"""
Unit tests for MIME type policy and lazy content classification.
"""

import logging
from unittest.mock import Mock

import pytest

from dbsync.diffing.content import (
    ContentStatus,
    LazyContent,
    MimeTypePolicy,
    detect_mime_type,
)
from dbsync.errors import ContentClassificationReject


class TestMimeTypePolicy:
    """Test support levels"""

    def setup_method(self):
        self.policy = MimeTypePolicy(
            supported=("text/*", "application/pdf"),
            excluded=("text/x-secret", "image/*"),
        )

    @pytest.mark.parametrize(
        "mime_type, level",
        [
            ("text/plain", 1),
            ("TEXT/HTML; charset=utf-8", 1),
            ("application/pdf", 1),
            ("application/zip", 0),
            ("text/x-secret", -1),
            ("image/png", -1),
        ],
    )
    def test_support_level(self, mime_type, level):
        assert self.policy.support_level(mime_type) == level

    def test_default_supports_everything(self):
        assert MimeTypePolicy().support_level("application/x-anything") == 1

    def test_from_lists(self):
        policy = MimeTypePolicy.from_lists(["text/plain"], [])

        assert policy.supported == ("text/plain",)
        assert policy.excluded == ()


class TestDetectMimeType:
    def test_text(self):
        assert detect_mime_type(b"hello") == "text/plain"

    def test_binary(self):
        assert detect_mime_type(b"\xff\xfe\x00") == "application/octet-stream"


class TestLazyContent:
    """Test LazyContent classification"""

    def test_not_classified_until_requested(self):
        detector = Mock(return_value="text/plain")

        content = LazyContent("1", b"hello", MimeTypePolicy(), detector=detector)

        assert content.is_classified is False
        detector.assert_not_called()

    def test_accepted(self):
        content = LazyContent("1", b"hello", MimeTypePolicy())

        classified = content.classify()

        assert classified.status == ContentStatus.ACCEPTED
        assert classified.content == b"hello"
        assert classified.mime_type == "text/plain"

    def test_classified_once(self):
        detector = Mock(return_value="text/plain")
        content = LazyContent("1", b"hello", MimeTypePolicy(), detector=detector)

        content.classify()
        content.classify()

        assert detector.call_count == 1

    def test_soft_skip(self, caplog):
        """Test unsupported content is omitted with a warning"""
        policy = MimeTypePolicy(supported=("application/pdf",))
        content = LazyContent("1/a", b"hello", policy)

        with caplog.at_level(logging.WARNING):
            classified = content.classify()

        assert classified.status == ContentStatus.SKIPPED
        assert classified.content is None
        assert "1/a" in caplog.text

    def test_hard_skip(self):
        """Test excluded content rejects the whole document"""
        policy = MimeTypePolicy(excluded=("text/*",))
        content = LazyContent("1/a", b"hello", policy)

        with pytest.raises(ContentClassificationReject) as exc_info:
            content.classify()

        assert exc_info.value.docid == "1/a"
        assert exc_info.value.mime_type == "text/plain"

    def test_too_large(self):
        content = LazyContent("1", b"x" * 11, MimeTypePolicy(), max_document_size=10)

        classified = content.classify()

        assert classified.status == ContentStatus.SKIPPED
        assert classified.content is None

    @pytest.mark.parametrize("payload", [None, b""])
    def test_empty(self, payload):
        detector = Mock()
        content = LazyContent("1", payload, MimeTypePolicy(), detector=detector)

        assert content.classify().status == ContentStatus.EMPTY
        detector.assert_not_called()
