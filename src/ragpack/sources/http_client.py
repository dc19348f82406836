"""Shared HTTP plumbing for content sources."""

from typing import Any, Optional

import httpx

from ragpack.errors import FetchError
from ragpack.models import BasicAuth

DEFAULT_TIMEOUT = 30.0
DEFAULT_HEADERS = {
    "User-Agent": "ragpack/0.1",
    "Accept": "*/*",
}


def make_client(timeout: float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout),
        headers=DEFAULT_HEADERS,
        follow_redirects=True,
    )


async def get(
    client: httpx.AsyncClient,
    url: str,
    credentials: Optional[BasicAuth] = None,
    **kwargs: Any,
) -> httpx.Response:
    """GET ``url``, mapping every transport or status failure to FetchError."""
    auth = httpx.BasicAuth(credentials.username, credentials.password) if credentials else None
    try:
        response = await client.get(url, auth=auth, **kwargs)
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        raise FetchError(f"Timeout fetching {url}: {exc}") from exc
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        if status in (401, 403):
            raise FetchError(f"Access denied ({status}) for {url}") from exc
        raise FetchError(f"HTTP {status} for {url}") from exc
    except httpx.HTTPError as exc:
        raise FetchError(f"HTTP error fetching {url}: {exc}") from exc
    return response
