"""Table naming and DDL for a project's vector store."""

import re
from dataclasses import dataclass

from ragpack.errors import SchemaError

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

META_SUFFIX = "_meta"


@dataclass(frozen=True)
class TableNames:
    """Physical table names derived from a project id."""

    chunks: str
    meta: str


def table_names(project_id: str) -> TableNames:
    """Derive the chunk and ledger table names for a project.

    This is the only place identifiers are built; they are interpolated into
    SQL text, never bound as parameters, so they must be validated here.
    """
    if not project_id or not _IDENTIFIER.match(project_id):
        raise SchemaError(
            f"Invalid project id {project_id!r}: use letters, digits and "
            "underscores, not starting with a digit"
        )
    return TableNames(chunks=project_id, meta=f"{project_id}{META_SUFFIX}")


TABLE_EXISTS = "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?"

CHUNK_TABLE = """
CREATE TABLE "{table}" (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    file_id TEXT NOT NULL,
    page_content TEXT NOT NULL,
    metadata TEXT NOT NULL,
    vector BLOB NOT NULL
)
"""

CHUNK_INDEX = 'CREATE INDEX IF NOT EXISTS "idx_{table}_file" ON "{table}"(file_id)'

META_TABLE = """
CREATE TABLE "{table}" (
    file_id TEXT PRIMARY KEY,
    entries INTEGER NOT NULL
)
"""
