"""Fetch, chunk, embed and persist documents; delete them again."""

import asyncio
import logging
from typing import Any, Iterable, Optional

from ragpack.chunkers import RecursiveChunker
from ragpack.models import ChunkRecord, DeletionOutcome, DeletionReport, IngestionResult
from ragpack.pipeline.embedding import embed_batch
from ragpack.protocols import ChunkingStrategy, EmbeddingProvider
from ragpack.sources import SourceRegistry, default_sources
from ragpack.storage import VectorStore
from ragpack.utils import clean_text

logger = logging.getLogger(__name__)


class IngestionOrchestrator:
    """Turns one external document into chunk rows plus one ledger row.

    Chunks and the ledger row are separate writes: a failure after the chunks
    are committed leaves them in place without a ledger entry. Call
    ``delete`` for the document before retrying to avoid duplicate chunks.
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        chunker: Optional[ChunkingStrategy] = None,
        sources: Optional[SourceRegistry] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.chunker = chunker or RecursiveChunker()
        self.sources = sources or default_sources()

    async def ingest(
        self,
        source_ref: str,
        source_kind: str = "url",
        credentials: Optional[Any] = None,
    ) -> IngestionResult:
        """Ingest the document ``source_ref`` from the ``source_kind`` source.

        Args:
            source_ref: URL or content-system document id; becomes the file id
            source_kind: Registered source kind ('url', 'confluence', ...)
            credentials: Passed through to the content source

        Returns:
            IngestionResult with the number of chunks stored
        """
        source = self.sources.get(source_kind)
        raw = await source.fetch(source_ref, credentials)
        texts = self.chunker.split(clean_text(raw))

        records: list[ChunkRecord] = []
        if texts:
            vectors = await embed_batch(self.embedder, texts)
            records = [
                ChunkRecord(
                    file_id=source_ref,
                    page_content=text,
                    metadata={"source": source_ref, "chunkIndex": index},
                    vector=vector,
                )
                for index, (text, vector) in enumerate(zip(texts, vectors))
            ]
            await self.store.insert_chunks(records)
        else:
            logger.warning(f"No text extracted from {source_ref}; recording an empty document")

        await self.store.insert_ledger_entry(source_ref, len(records))
        logger.info(f"Ingested {source_kind} {source_ref}: {len(records)} chunks")
        return IngestionResult(
            file_id=source_ref, source_kind=source_kind, chunk_count=len(records)
        )

    async def delete(self, file_ids: Iterable[str]) -> DeletionReport:
        """Delete documents concurrently, collecting per-id outcomes.

        A failure for one id never stops the others.
        """
        unique_ids = list(dict.fromkeys(file_ids))
        outcomes = await asyncio.gather(*(self._delete_one(fid) for fid in unique_ids))
        report = DeletionReport(outcomes=list(outcomes))
        if report.failed:
            logger.warning(
                f"Deleted {len(report.succeeded)} documents, {len(report.failed)} failed: {report.failed}"
            )
        else:
            logger.info(f"Deleted {len(report.succeeded)} documents")
        return report

    async def _delete_one(self, file_id: str) -> DeletionOutcome:
        results = await asyncio.gather(
            self.store.delete_document(file_id),
            self.store.delete_ledger_entry(file_id),
            return_exceptions=True,
        )
        errors = [r for r in results if isinstance(r, BaseException)]
        for error in errors:
            if not isinstance(error, Exception):
                raise error
        if errors:
            return DeletionOutcome(
                file_id=file_id, ok=False, error="; ".join(str(e) for e in errors)
            )
        return DeletionOutcome(file_id=file_id, ok=True)
