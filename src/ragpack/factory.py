"""Wire settings into concrete components."""

from dataclasses import dataclass

from ragpack.chunkers import RecursiveChunker
from ragpack.config import Settings
from ragpack.embedders import OpenAIEmbedder, SentenceTransformerEmbedder
from ragpack.pipeline import IngestionOrchestrator, RetrievalOrchestrator
from ragpack.protocols import EmbeddingProvider
from ragpack.sources import SourceRegistry, default_sources
from ragpack.storage import VectorStore


@dataclass
class Components:
    """Everything a server or CLI command needs, sharing one store."""

    store: VectorStore
    embedder: EmbeddingProvider
    sources: SourceRegistry
    ingestion: IngestionOrchestrator
    retrieval: RetrievalOrchestrator

    async def aclose(self) -> None:
        """Close HTTP clients held by the sources and embedder, then the store."""
        await self.sources.aclose()
        close = getattr(self.embedder, "close", None)
        if close is not None:
            close()
        await self.store.disconnect()


def build_embedder(settings: Settings) -> EmbeddingProvider:
    if settings.embedding_provider == "openai":
        return OpenAIEmbedder(
            api_key=settings.openai_api_key,
            model_name=settings.embedding_model,
            base_url=settings.openai_base_url or None,
            dimension=settings.embedding_dimension,
            timeout=settings.http_timeout,
        )
    return SentenceTransformerEmbedder(settings.embedding_model)


def build_components(settings: Settings, embedder: EmbeddingProvider | None = None) -> Components:
    """Create the store, embedder, sources and both orchestrators.

    The store is not connected yet; call ``await components.store.connect()``.
    """
    embedder = embedder or build_embedder(settings)
    dimension = settings.embedding_dimension or embedder.dimension
    store = VectorStore(
        settings.db_path,
        settings.project_id,
        dimension=dimension,
        batch_size=settings.batch_size,
    )
    sources = default_sources(timeout=settings.http_timeout)
    chunker = RecursiveChunker(settings.chunk_size, settings.chunk_overlap)
    return Components(
        store=store,
        embedder=embedder,
        sources=sources,
        ingestion=IngestionOrchestrator(store, embedder, chunker, sources),
        retrieval=RetrievalOrchestrator(
            store, embedder, top_k=settings.top_k, min_score=settings.min_score
        ),
    )
