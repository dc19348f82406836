"""Protocol for text chunking strategies."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChunkingStrategy(Protocol):
    """Protocol for text chunking strategies.

    Implementations are pure: the same text always yields the same chunks.
    """

    @property
    def chunk_size(self) -> int:
        """Target maximum length of a chunk, in characters."""
        ...

    @property
    def chunk_overlap(self) -> int:
        """Number of characters shared by consecutive chunks."""
        ...

    def split(self, text: str) -> list[str]:
        """Split text into an ordered list of overlapping chunks."""
        ...
