"""Shared pytest fixtures for the ragpack test suite."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pytest

from ragpack.errors import FetchError
from ragpack.models import ChunkRecord
from ragpack.storage import VectorStore

DIM = 3


class FakeEmbedder:
    """Deterministic 3-d embeddings; known texts map to fixed vectors."""

    def __init__(self, vectors: Optional[dict[str, list[float]]] = None):
        self.vectors = vectors or {}
        self.calls: list[Any] = []

    @property
    def dimension(self) -> int:
        return DIM

    @property
    def model_name(self) -> str:
        return "fake-embedder"

    def _vector(self, text: str) -> list[float]:
        return self.vectors.get(text, [float(len(text)) + 1.0, 1.0, 0.5])

    def embed(self, texts):
        self.calls.append(texts)
        if isinstance(texts, str):
            return np.asarray(self._vector(texts), dtype=np.float32)
        return np.asarray([self._vector(t) for t in texts], dtype=np.float32).reshape(
            len(texts), DIM
        )


class FakeSource:
    """In-memory content source."""

    def __init__(self, documents: dict[str, str], source_kind: str = "fake"):
        self.documents = documents
        self.source_kind = source_kind
        self.calls: list[tuple[str, Any]] = []

    async def fetch(self, ref: str, credentials: Any = None) -> str:
        self.calls.append((ref, credentials))
        if ref not in self.documents:
            raise FetchError(f"Not found: {ref}")
        return self.documents[ref]


class PipeChunker:
    """Splits on '|' so tests control chunk boundaries exactly."""

    chunk_size = 1500
    chunk_overlap = 0

    def split(self, text: str) -> list[str]:
        return [part for part in text.split("|") if part.strip()]


def make_chunk(
    file_id: str = "doc",
    index: int = 0,
    vector: Optional[list[float]] = None,
    content: Optional[str] = None,
) -> ChunkRecord:
    return ChunkRecord(
        file_id=file_id,
        page_content=content if content is not None else f"{file_id} chunk {index}",
        metadata={"source": file_id, "chunkIndex": index},
        vector=np.asarray(vector if vector is not None else [1.0, 0.0, 0.0]),
    )


def read_rows(db_path: Path, table: str) -> list[sqlite3.Row]:
    """Read a table through an independent connection."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        return conn.execute(f'SELECT * FROM "{table}" ORDER BY rowid').fetchall()
    finally:
        conn.close()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "ragpack-test.db"


@pytest.fixture
def store(db_path: Path) -> VectorStore:
    """An unconnected store for project 'proj' with 3-d vectors."""
    return VectorStore(db_path, "proj", dimension=DIM)


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()
