"""SentenceTransformer-based embedding provider."""

from typing import Union

import numpy as np
from sentence_transformers import SentenceTransformer

from ragpack.errors import EmbeddingError


class SentenceTransformerEmbedder:
    """Embedding provider using sentence-transformers library.

    Uses all-MiniLM-L6-v2 by default - a fast, lightweight model
    that runs locally without credentials.
    """

    DEFAULT_MODEL = "all-MiniLM-L6-v2"

    def __init__(self, model_name: str | None = None):
        """Initialize the embedder.

        Args:
            model_name: Name of the sentence-transformers model to use.
                       Defaults to all-MiniLM-L6-v2.
        """
        self._model_name = model_name or self.DEFAULT_MODEL
        self._model: SentenceTransformer | None = None

    @property
    def model(self) -> SentenceTransformer:
        """Lazy-load the model on first access."""
        if self._model is None:
            try:
                self._model = SentenceTransformer(self._model_name)
            except Exception as exc:
                raise EmbeddingError(
                    f"Cannot load embedding model {self._model_name}: {exc}"
                ) from exc
        return self._model

    @property
    def dimension(self) -> int:
        """Return the embedding dimension."""
        return self.model.get_sentence_embedding_dimension()

    @property
    def model_name(self) -> str:
        """Return identifier for the model used."""
        return self._model_name

    def embed(self, texts: Union[str, list[str]]) -> np.ndarray:
        """Generate embeddings for one text or a batch of texts.

        Args:
            texts: A string, or a list of strings to embed in order

        Returns:
            A vector for a single string, otherwise an array of
            shape (len(texts), embedding_dim)
        """
        if isinstance(texts, list) and not texts:
            return np.empty((0, self.dimension), dtype=np.float32)

        try:
            return self.model.encode(
                texts,
                convert_to_numpy=True,
                normalize_embeddings=True,  # For cosine similarity
            )
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Embedding with {self._model_name} failed: {exc}") from exc
