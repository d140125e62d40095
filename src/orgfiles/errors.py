"""Exception types for the document manager."""


class DocumentStoreError(Exception):
    """Base exception for document store errors."""

    pass


class NotFoundError(DocumentStoreError, LookupError):
    """No index row matches the requested document id."""

    pass


class FileMissingError(NotFoundError):
    """An index row exists but its backing file does not.

    Also raised when a file disappears between listing and metadata
    extraction.
    """

    pass


class SourceNotFoundError(DocumentStoreError, FileNotFoundError):
    """The external source of a copy or append does not exist."""

    pass


class SourceNotAFileError(DocumentStoreError, ValueError):
    """The external source of a copy or append is not a regular file."""

    pass


class SchemaError(DocumentStoreError):
    """The index table could not be created or does not match the requested columns."""

    pass


class IndexStoreError(DocumentStoreError):
    """A statement against the index table failed."""

    pass


class DocumentIOError(DocumentStoreError, OSError):
    """Opening, copying, or removing a managed file failed."""

    pass
