"""Exception hierarchy for ragpack.

    RagPackError
    +-- StoreConnectionError    (store session could not be opened)
    +-- NotConnectedError       (store used before connect / after disconnect)
    +-- SchemaError             (table bootstrap failed)
    +-- DimensionMismatchError  (vector width differs from the store's)
    +-- StoreError              (any other failed store statement)
    |   +-- InsertError         (chunk batch or ledger write failed)
    +-- FetchError              (content source unreachable or denied)
    +-- EmbeddingError          (embedding model failed)
    +-- ContractViolationError  (embedder returned the wrong number of vectors)
    +-- ConfigurationError      (missing or invalid settings)
"""

from typing import Optional


class RagPackError(Exception):
    """Base class for all ragpack errors."""


class StoreConnectionError(RagPackError, ConnectionError):
    """The vector store could not establish a session."""


class NotConnectedError(RagPackError):
    """A store operation was called without a live connection."""

    def __init__(self, message: str = "Vector store is not connected; call connect() first"):
        super().__init__(message)


class SchemaError(RagPackError):
    """Creating the project tables failed."""


class DimensionMismatchError(RagPackError):
    """A vector's width does not match the store dimension."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected vector dimension {expected}, got {actual}")


class StoreError(RagPackError):
    """A store statement failed."""


class InsertError(StoreError):
    """A write to the chunk or ledger table failed.

    ``offset`` is the index (into the input sequence) of the first chunk of the
    batch that was rolled back, or ``None`` for ledger writes.
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        self.offset = offset
        super().__init__(message)


class FetchError(RagPackError):
    """A content source could not deliver the document."""


class EmbeddingError(RagPackError):
    """The embedding provider failed."""


class ContractViolationError(RagPackError):
    """A collaborator broke its contract (e.g. vector count != text count)."""


class ConfigurationError(RagPackError):
    """Required configuration is missing or invalid."""
