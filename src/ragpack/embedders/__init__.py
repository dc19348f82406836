"""Embedding providers for vector generation."""

from ragpack.embedders.openai_embedder import OpenAIEmbedder
from ragpack.embedders.sentence_transformer import SentenceTransformerEmbedder

__all__ = ["OpenAIEmbedder", "SentenceTransformerEmbedder"]
