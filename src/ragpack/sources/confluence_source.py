"""Content source for Confluence pages."""

import logging
from typing import Optional
from urllib.parse import quote

import httpx

from ragpack.errors import FetchError
from ragpack.models import ConfluenceCredentials
from ragpack.sources import http_client
from ragpack.sources.extract import html_to_text

logger = logging.getLogger(__name__)


def confluence_api_base(base_url: str) -> str:
    """Normalize a site URL to the root the REST API hangs off.

    Atlassian Cloud serves Confluence under ``/wiki``.
    """
    base = base_url.rstrip("/")
    if "atlassian.net" in base and not base.endswith("/wiki"):
        base = f"{base}/wiki"
    return base


class ConfluenceContentSource:
    """Reads a page's storage-format body through the Confluence REST API."""

    source_kind = "confluence"

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = http_client.DEFAULT_TIMEOUT,
    ):
        self._client = client or http_client.make_client(timeout)

    async def fetch(
        self, ref: str, credentials: Optional[ConfluenceCredentials] = None
    ) -> str:
        """Fetch page ``ref`` and return its title and body as plain text."""
        if credentials is None or not credentials.base_url:
            raise FetchError("Confluence pages need credentials with a base_url")

        url = f"{confluence_api_base(credentials.base_url)}/rest/api/content/{quote(ref, safe='')}"
        response = await http_client.get(
            self._client, url, credentials, params={"expand": "body.storage"}
        )
        try:
            page = response.json()
        except ValueError as exc:
            raise FetchError(f"Confluence returned a non-JSON body for page {ref}") from exc

        body = ((page.get("body") or {}).get("storage") or {}).get("value") or ""
        title = page.get("title") or ""
        text = html_to_text(body) if body.strip() else ""
        logger.info(f"Fetched Confluence page {ref} ({title!r}): {len(text)} characters")
        if title:
            return f"{title}\n\n{text}".strip()
        return text

    async def aclose(self) -> None:
        await self._client.aclose()
