"""Recursive character chunking with overlap."""

from langchain_text_splitters import RecursiveCharacterTextSplitter


class RecursiveChunker:
    """Default chunking: 1500-character chunks sharing 200 characters.

    Splits on paragraph breaks first, then lines, then words, and only
    hard-splits inside a word when nothing else fits.
    """

    DEFAULT_CHUNK_SIZE = 1500
    DEFAULT_CHUNK_OVERLAP = 200

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
    ):
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
        )

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    def split(self, text: str) -> list[str]:
        """Split text into ordered, overlapping chunks.

        Args:
            text: Cleaned document text

        Returns:
            List of chunk strings, empty for blank input
        """
        if not text or not text.strip():
            return []
        return self._splitter.split_text(text)
