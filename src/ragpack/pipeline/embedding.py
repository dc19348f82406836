"""Calling an embedding provider off the event loop, with contract checks."""

import asyncio

import numpy as np

from ragpack.errors import ContractViolationError, EmbeddingError, RagPackError
from ragpack.protocols import EmbeddingProvider


async def _embed(embedder: EmbeddingProvider, texts: str | list[str]) -> np.ndarray:
    try:
        return await asyncio.to_thread(embedder.embed, texts)
    except RagPackError:
        raise
    except Exception as exc:
        raise EmbeddingError(f"Embedding with {embedder.model_name} failed: {exc}") from exc


def _as_array(raw: object) -> np.ndarray:
    try:
        return np.asarray(raw, dtype=np.float32)
    except (TypeError, ValueError) as exc:
        raise ContractViolationError(
            f"Embedder returned vectors that do not form an array: {exc}"
        ) from exc


async def embed_batch(embedder: EmbeddingProvider, texts: list[str]) -> np.ndarray:
    """Embed ``texts`` and verify one vector came back per text, in order."""
    vectors = _as_array(await _embed(embedder, texts))
    count = vectors.shape[0] if vectors.ndim == 2 else 0
    if vectors.ndim != 2 or count != len(texts):
        raise ContractViolationError(
            f"Embedder returned {count} vectors for {len(texts)} texts"
        )
    return vectors


async def embed_query(embedder: EmbeddingProvider, text: str) -> np.ndarray:
    """Embed a single string into exactly one vector."""
    vector = _as_array(await _embed(embedder, text))
    if vector.ndim == 2 and vector.shape[0] == 1:
        vector = vector[0]
    if vector.ndim != 1 or vector.size == 0:
        raise ContractViolationError(
            f"Embedder returned shape {vector.shape} for a single query"
        )
    return vector
