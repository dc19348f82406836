"""Ingestion and retrieval pipelines over a vector store."""

from ragpack.pipeline.ingestion import IngestionOrchestrator
from ragpack.pipeline.retrieval import RetrievalOrchestrator

__all__ = ["IngestionOrchestrator", "RetrievalOrchestrator"]
