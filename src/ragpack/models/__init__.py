"""Data models for ragpack."""

from ragpack.models.auth import BasicAuth, ConfluenceCredentials
from ragpack.models.document import (
    ChunkRecord,
    ConsistencyIssue,
    DeletionOutcome,
    DeletionReport,
    IngestionResult,
    LedgerEntry,
    SimilarityResult,
)

__all__ = [
    "BasicAuth",
    "ConfluenceCredentials",
    "ChunkRecord",
    "ConsistencyIssue",
    "DeletionOutcome",
    "DeletionReport",
    "IngestionResult",
    "LedgerEntry",
    "SimilarityResult",
]
