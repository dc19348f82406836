"""Embedding provider for OpenAI-compatible /embeddings endpoints."""

import logging
from typing import Union

import httpx
import numpy as np

from ragpack.errors import EmbeddingError

logger = logging.getLogger(__name__)

# Output widths of the hosted OpenAI models
KNOWN_DIMENSIONS = {
    "text-embedding-3-large": 3072,
    "text-embedding-3-small": 1536,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbedder:
    """Embedding provider backed by an OpenAI-compatible HTTP API.

    Defaults to text-embedding-3-large (3072 dimensions). Other models or
    gateways (Azure, OpenRouter, local servers) need ``dimension`` when the
    width is not in KNOWN_DIMENSIONS.
    """

    DEFAULT_MODEL = "text-embedding-3-large"
    DEFAULT_BASE_URL = "https://api.openai.com/v1"

    def __init__(
        self,
        api_key: str,
        model_name: str | None = None,
        base_url: str | None = None,
        dimension: int | None = None,
        timeout: float = 60.0,
        client: httpx.Client | None = None,
    ):
        self._model_name = model_name or self.DEFAULT_MODEL
        self._dimension = dimension or KNOWN_DIMENSIONS.get(self._model_name)
        if self._dimension is None:
            raise ValueError(
                f"Unknown dimension for model {self._model_name}; pass dimension="
            )
        self._base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, texts: Union[str, list[str]]) -> np.ndarray:
        """Embed one string or a list of strings, preserving input order."""
        single = isinstance(texts, str)
        inputs = [texts] if single else list(texts)
        if not inputs:
            return np.empty((0, self._dimension), dtype=np.float32)

        try:
            response = self._client.post(
                f"{self._base_url}/embeddings",
                json={"model": self._model_name, "input": inputs},
            )
            response.raise_for_status()
            data = response.json()["data"]
        except httpx.HTTPStatusError as exc:
            raise EmbeddingError(
                f"Embedding API returned {exc.response.status_code}: {exc.response.text}"
            ) from exc
        except httpx.HTTPError as exc:
            raise EmbeddingError(
                f"Failed to reach embedding API at {self._base_url}: {exc}"
            ) from exc
        except (KeyError, ValueError) as exc:
            raise EmbeddingError(f"Malformed embedding API response: {exc}") from exc

        # The API tags each vector with the position of its input
        data = sorted(data, key=lambda item: item.get("index", 0))
        vectors = np.asarray([item["embedding"] for item in data], dtype=np.float32)
        logger.debug(f"Embedded {len(inputs)} texts with {self._model_name}")
        return vectors[0] if single and len(vectors) == 1 else vectors

    def close(self) -> None:
        self._client.close()
