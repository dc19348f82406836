"""Protocol for external content sources."""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class ContentSource(Protocol):
    """Protocol for systems that documents are pulled from.

    Uses structural subtyping - no inheritance required.
    """

    @property
    def source_kind(self) -> str:
        """Return identifier for this source (e.g., 'url', 'confluence')."""
        ...

    async def fetch(self, ref: str, credentials: Optional[Any] = None) -> str:
        """Return the plain text of the document identified by ``ref``.

        Raises FetchError when the source is unreachable or denies access.
        """
        ...
