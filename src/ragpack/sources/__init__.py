"""Content sources that ingestion pulls documents from."""

from typing import Optional

from ragpack.errors import FetchError
from ragpack.protocols import ContentSource
from ragpack.sources.confluence_source import ConfluenceContentSource
from ragpack.sources.url_source import UrlContentSource


class SourceRegistry:
    """Maps a source kind (e.g. 'url') to the adapter that fetches it."""

    def __init__(self, sources: Optional[list[ContentSource]] = None):
        self._sources: dict[str, ContentSource] = {}
        for source in sources or []:
            self.register(source)

    def register(self, source: ContentSource) -> None:
        """Register a source, replacing any previous one of the same kind."""
        self._sources[source.source_kind] = source

    def get(self, kind: str) -> ContentSource:
        try:
            return self._sources[kind]
        except KeyError:
            raise FetchError(
                f"Unknown source kind {kind!r}; available: {sorted(self._sources)}"
            ) from None

    @property
    def kinds(self) -> list[str]:
        return sorted(self._sources)

    async def aclose(self) -> None:
        for source in self._sources.values():
            close = getattr(source, "aclose", None)
            if close is not None:
                await close()


def default_sources(timeout: float = 30.0) -> SourceRegistry:
    """Registry with the built-in URL and Confluence sources."""
    return SourceRegistry(
        [
            UrlContentSource(timeout=timeout),
            ConfluenceContentSource(timeout=timeout),
        ]
    )


__all__ = [
    "ConfluenceContentSource",
    "SourceRegistry",
    "UrlContentSource",
    "default_sources",
]
