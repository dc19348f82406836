"""Protocol definitions for extensible components."""

from ragpack.protocols.chunker import ChunkingStrategy
from ragpack.protocols.embedder import EmbeddingProvider
from ragpack.protocols.source import ContentSource

__all__ = ["ContentSource", "EmbeddingProvider", "ChunkingStrategy"]
