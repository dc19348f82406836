"""Chunking strategies for splitting cleaned text."""

from ragpack.chunkers.recursive_chunker import RecursiveChunker

__all__ = ["RecursiveChunker"]
