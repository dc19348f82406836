"""Answer a text query with the most similar stored chunks."""

from ragpack.models import SimilarityResult
from ragpack.pipeline.embedding import embed_query
from ragpack.protocols import EmbeddingProvider
from ragpack.storage import VectorStore


class RetrievalOrchestrator:
    """Embeds a query and delegates ranking to the vector store."""

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        top_k: int = VectorStore.DEFAULT_TOP_K,
        min_score: float = VectorStore.DEFAULT_MIN_SCORE,
    ):
        self.store = store
        self.embedder = embedder
        self.top_k = top_k
        self.min_score = min_score

    async def query(self, text: str) -> list[SimilarityResult]:
        """Return ranked chunks scoring above ``min_score``.

        Empty text is passed to the embedder unchanged; what it returns for
        an empty string is up to the embedding model.
        """
        vector = await embed_query(self.embedder, text)
        return await self.store.similarity_search(
            vector, top_k=self.top_k, min_score=self.min_score
        )
