"""Content source for documents reachable by URL."""

import logging
from typing import Optional

import httpx

from ragpack.models import BasicAuth
from ragpack.sources import http_client
from ragpack.sources.extract import extract_text

logger = logging.getLogger(__name__)


class UrlContentSource:
    """Downloads a URL (optionally with basic auth) and extracts its text.

    Handles PDF, Word, Excel, PowerPoint, HTML/XHTML and plain-text
    documents.
    """

    source_kind = "url"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = http_client.DEFAULT_TIMEOUT,
    ):
        self._client = client or http_client.make_client(timeout)

    async def fetch(self, ref: str, credentials: Optional[BasicAuth] = None) -> str:
        """Fetch ``ref`` and return its plain text.

        Args:
            ref: Absolute http(s) URL of the document
            credentials: Optional basic-auth username/password

        Returns:
            Extracted text (possibly empty)
        """
        response = await http_client.get(self._client, ref, credentials)
        text = extract_text(
            ref,
            response.headers.get("content-type"),
            response.content,
            encoding=response.charset_encoding,
        )
        logger.info(f"Fetched {ref}: {len(text)} characters")
        return text

    async def aclose(self) -> None:
        await self._client.aclose()
