"""Tool handlers: invoke the pipelines and shape success or error payloads."""

import asyncio
import functools
import logging
from typing import Any, Awaitable, Callable, Optional

from ragpack.errors import RagPackError
from ragpack.factory import Components
from ragpack.models import BasicAuth, ConfluenceCredentials

logger = logging.getLogger(__name__)

Payload = dict[str, Any]


def error_payload(exc: Exception) -> Payload:
    return {"status": "error", "error": type(exc).__name__, "message": str(exc)}


def guarded(fn: Callable[..., Awaitable[Payload]]) -> Callable[..., Awaitable[Payload]]:
    """Turn any exception escaping a handler into an error payload."""

    @functools.wraps(fn)
    async def wrapper(*args: Any, **kwargs: Any) -> Payload:
        try:
            return await fn(*args, **kwargs)
        except RagPackError as exc:
            logger.warning(f"{fn.__name__} failed: {type(exc).__name__}: {exc}")
            return error_payload(exc)
        except Exception as exc:
            logger.exception(f"{fn.__name__} failed unexpectedly")
            return error_payload(exc)

    return wrapper


class RagTools:
    """The operations served over MCP, independent of the transport.

    The store is connected on first use and stays connected for the life of
    the process.
    """

    def __init__(self, components: Components):
        self.components = components
        self._connect_lock = asyncio.Lock()

    async def _ready(self) -> None:
        if self.components.store.connected:
            return
        async with self._connect_lock:
            if not self.components.store.connected:
                await self.components.store.connect()

    @guarded
    async def fetch_relevant_documents(self, query: str) -> Payload:
        await self._ready()
        results = await self.components.retrieval.query(query)
        return {"status": "ok", "documents": [r.to_dict() for r in results]}

    @guarded
    async def list_ingested_documents(self) -> Payload:
        await self._ready()
        file_ids = await self.components.store.list_ingested_file_ids()
        return {"status": "ok", "documents": file_ids}

    @guarded
    async def ingest_file_url(
        self,
        data: str,
        auth: Optional[dict[str, str]] = None,
        name: Optional[str] = None,
    ) -> Payload:
        await self._ready()
        credentials = BasicAuth(auth["username"], auth["password"]) if auth else None
        result = await self.components.ingestion.ingest(data, "url", credentials)
        label = f"{name} ({data})" if name else data
        return {
            "status": "ok",
            "message": f"File {label} ingested successfully.",
            "file_id": result.file_id,
            "chunks": result.chunk_count,
        }

    @guarded
    async def ingest_confluence_page(
        self, baseurl: str, pageId: str, auth: dict[str, str]
    ) -> Payload:
        await self._ready()
        credentials = ConfluenceCredentials(
            username=auth["username"], password=auth["password"], base_url=baseurl
        )
        result = await self.components.ingestion.ingest(pageId, "confluence", credentials)
        return {
            "status": "ok",
            "message": f"Confluence page {pageId} ingested successfully.",
            "file_id": result.file_id,
            "chunks": result.chunk_count,
        }

    @guarded
    async def delete_document(self, fileIds: list[str]) -> Payload:
        await self._ready()
        report = await self.components.ingestion.delete(fileIds)
        return {"status": "ok" if report.ok else "partial", **report.to_dict()}
