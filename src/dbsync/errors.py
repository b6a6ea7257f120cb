"""
Exception hierarchy for table synchronization.

Errors are grouped by how callers react to them:
- InputError: bad key or connector configuration; fatal, raised at setup.
- ConnectivityError: transient; the cursor resets and the caller retries.
- RowConversionError: isolated to one row; logged and skipped.
- DecodeError: isolated to one identifier or serialized snapshot.
- ContentClassificationReject: deliberate skip of a whole row.
"""


class SyncError(Exception):
    """Base exception for synchronization errors."""

    pass


class InputError(SyncError):
    """Raised for invalid primary key or connector configuration."""

    pass


class EmptyInputError(InputError):
    """Raised when the primary key list or the row is missing or empty."""

    pass


class MissingKeyError(InputError):
    """Raised when a primary key name matches no column of the row."""

    def __init__(self, key: str, columns):
        self.key = key
        self.columns = list(columns)
        super().__init__(
            f"Primary key {key!r} does not match any of the column names: "
            f"{', '.join(self.columns)}"
        )


class ConfigurationError(InputError):
    """Raised when connector settings are inconsistent."""

    pass


class ConnectivityError(SyncError):
    """Raised when the repository cannot be reached."""

    pass


class RepositoryUnreachableError(ConnectivityError):
    """Raised by the traversal cursor after resetting to the cycle start."""

    pass


class RowConversionError(SyncError):
    """Raised when a single row cannot be converted to a document."""

    pass


class DecodeError(SyncError):
    """Raised when an identifier or serialized snapshot cannot be decoded."""

    pass


class ContentClassificationReject(SyncError):
    """
    Raised when a document's content type is on the exclusion list.

    The whole row is skipped on purpose; callers should log it as a
    deliberate exclusion rather than a failure.
    """

    def __init__(self, docid: str, mime_type: str):
        self.docid = docid
        self.mime_type = mime_type
        super().__init__(
            f"Skipping the document with docid {docid!r} as the MIME type "
            f"{mime_type!r} is in the excluded MIME types list"
        )


class SnapshotContractError(SyncError):
    """Raised when a snapshot is used outside its contract."""

    pass


class EndOfBatchError(SyncError):
    """Raised when the next snapshot is requested from an exhausted batch."""

    pass
