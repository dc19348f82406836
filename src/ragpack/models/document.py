"""Core data models for chunks, ledger rows and pipeline results."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional

import numpy as np


@dataclass
class ChunkRecord:
    """One row of a project's chunk table."""

    file_id: str
    page_content: str
    metadata: dict[str, Any]
    vector: np.ndarray


@dataclass(frozen=True)
class LedgerEntry:
    """Per-document chunk count stored in the ``{project}_meta`` table."""

    file_id: str
    entries: int


@dataclass(frozen=True)
class SimilarityResult:
    """A chunk scored against a query vector."""

    similarity_score: float
    page_content: str
    metadata: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of ingesting one document."""

    file_id: str
    source_kind: str
    chunk_count: int


@dataclass(frozen=True)
class DeletionOutcome:
    """Result of deleting a single document."""

    file_id: str
    ok: bool
    error: Optional[str] = None


@dataclass
class DeletionReport:
    """Aggregated outcomes of a batch delete."""

    outcomes: list[DeletionOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> list[str]:
        return [o.file_id for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[str]:
        return [o.file_id for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": [
                {"file_id": o.file_id, "error": o.error}
                for o in self.outcomes
                if not o.ok
            ],
        }


@dataclass(frozen=True)
class ConsistencyIssue:
    """A document whose ledger count disagrees with its stored chunks.

    ``ledger_entries`` is None when chunks exist without any ledger row.
    """

    file_id: str
    ledger_entries: Optional[int]
    chunk_count: int
