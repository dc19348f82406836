"""Project-scoped vector storage."""

from ragpack.storage.schema import TableNames, table_names
from ragpack.storage.store import VectorStore

__all__ = ["VectorStore", "TableNames", "table_names"]
