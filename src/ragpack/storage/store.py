"""SQLite-backed, project-scoped vector store."""

import asyncio
import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, Optional, Sequence, TypeVar

import numpy as np

from ragpack.errors import (
    DimensionMismatchError,
    InsertError,
    NotConnectedError,
    SchemaError,
    StoreConnectionError,
    StoreError,
)
from ragpack.models import ChunkRecord, ConsistencyIssue, LedgerEntry, SimilarityResult
from ragpack.storage.schema import (
    CHUNK_INDEX,
    CHUNK_TABLE,
    META_TABLE,
    TABLE_EXISTS,
    table_names,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class VectorStore:
    """Chunk and ledger tables for one project, with cosine similarity search.

    A single sqlite3 connection is shared by every operation of an instance.
    Statements are serialized by a per-instance lock that is taken inside the
    worker thread, so an abandoned await still lets the running transaction
    finish before the connection is used again. Separate instances share
    nothing and run in parallel.
    """

    DEFAULT_BATCH_SIZE = 1000
    DEFAULT_TOP_K = 5
    DEFAULT_MIN_SCORE = 0.4

    def __init__(
        self,
        path: Path | str,
        project_id: str,
        dimension: int,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.path = Path(path)
        self.project_id = project_id
        self.tables = table_names(project_id)
        self.dimension = dimension
        self.batch_size = batch_size
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()

    async def __aenter__(self) -> "VectorStore":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.disconnect()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    # Connection lifecycle

    async def connect(self) -> None:
        """Open the connection and create both tables if they are absent."""
        await asyncio.to_thread(self._connect)
        logger.info(
            f"Connected to {self.path} (tables {self.tables.chunks}, {self.tables.meta})"
        )

    def _connect(self) -> None:
        with self._lock:
            fresh = self._conn is None
            if fresh:
                try:
                    conn = sqlite3.connect(
                        str(self.path), isolation_level=None, check_same_thread=False
                    )
                except sqlite3.Error as exc:
                    raise StoreConnectionError(
                        f"Cannot open vector store at {self.path}: {exc}"
                    ) from exc
                conn.row_factory = sqlite3.Row
                self._conn = conn
            try:
                self._ensure_schema(self._conn)
            except SchemaError:
                if fresh:
                    self._conn.close()
                    self._conn = None
                raise

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        for ddl, table in (
            (CHUNK_TABLE, self.tables.chunks),
            (META_TABLE, self.tables.meta),
        ):
            if conn.execute(TABLE_EXISTS, (table,)).fetchone() is not None:
                continue
            try:
                conn.execute(ddl.format(table=table))
                if table == self.tables.chunks:
                    conn.execute(CHUNK_INDEX.format(table=table))
            except sqlite3.Error as exc:
                # Another process may have created it since the lookup
                if conn.execute(TABLE_EXISTS, (table,)).fetchone() is not None:
                    continue
                raise SchemaError(f"Cannot create table {table}: {exc}") from exc
            logger.info(f"Created table {table}")

    async def disconnect(self) -> None:
        """Close the connection. Safe to call more than once."""
        await asyncio.to_thread(self._disconnect)

    def _disconnect(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
                logger.info(f"Disconnected from {self.path}")

    def _require(self) -> sqlite3.Connection:
        if self._conn is None:
            raise NotConnectedError()
        return self._conn

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        return await asyncio.to_thread(self._locked, fn, *args)

    def _locked(self, fn: Callable[..., T], *args: Any) -> T:
        with self._lock:
            conn = self._require()
            try:
                return fn(conn, *args)
            except sqlite3.Error as exc:
                raise StoreError(f"Statement failed on {self.project_id}: {exc}") from exc

    @staticmethod
    @contextmanager
    def _transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
        """Explicit BEGIN/COMMIT, rolling back on any exception."""
        conn.execute("BEGIN")
        try:
            yield conn
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            raise

    # Reads

    async def list_ingested_file_ids(self) -> list[str]:
        """Return the distinct file ids recorded in the ledger table."""
        return await self._run(self._list_ingested_file_ids)

    def _list_ingested_file_ids(self, conn: sqlite3.Connection) -> list[str]:
        cursor = conn.execute(
            f'SELECT DISTINCT file_id FROM "{self.tables.meta}" ORDER BY file_id'
        )
        return [row["file_id"] for row in cursor]

    async def similarity_search(
        self,
        query_vector: Sequence[float] | np.ndarray,
        top_k: int = DEFAULT_TOP_K,
        min_score: float = DEFAULT_MIN_SCORE,
    ) -> list[SimilarityResult]:
        """Find the ``top_k`` chunks whose cosine similarity exceeds ``min_score``.

        The threshold is strict: a score equal to ``min_score`` is excluded.
        Results are ordered by score descending; ties keep insertion order.
        """
        return await self._run(self._similarity_search, query_vector, top_k, min_score)

    def _similarity_search(
        self,
        conn: sqlite3.Connection,
        query_vector: Sequence[float] | np.ndarray,
        top_k: int,
        min_score: float,
    ) -> list[SimilarityResult]:
        query = np.asarray(query_vector, dtype=np.float64)
        if query.ndim != 1 or query.shape[0] != self.dimension:
            raise DimensionMismatchError(self.dimension, int(query.size))
        if top_k <= 0:
            return []

        rows = conn.execute(
            f'SELECT page_content, metadata, vector FROM "{self.tables.chunks}" ORDER BY id'
        ).fetchall()
        if not rows:
            return []

        matrix = np.vstack(
            [np.frombuffer(row["vector"], dtype=np.float32) for row in rows]
        ).astype(np.float64)
        scores = self._cosine_similarities(matrix, query)
        order = np.argsort(-scores, kind="stable")

        results = []
        for i in order:
            score = float(scores[i])
            if not score > min_score:
                break
            row = rows[i]
            results.append(
                SimilarityResult(
                    similarity_score=score,
                    page_content=row["page_content"],
                    metadata=json.loads(row["metadata"]),
                )
            )
            if len(results) == top_k:
                break
        return results

    @staticmethod
    def _cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
        """Cosine similarity of each row of ``matrix`` with ``query``."""
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        with np.errstate(divide="ignore", invalid="ignore"):
            scores = np.where(norms == 0, 0.0, dots / norms)
        return np.clip(scores, -1.0, 1.0)

    async def count_chunks(self, file_id: Optional[str] = None) -> int:
        """Count chunk rows, for one document or the whole project."""
        return await self._run(self._count_chunks, file_id)

    def _count_chunks(self, conn: sqlite3.Connection, file_id: Optional[str]) -> int:
        if file_id is None:
            row = conn.execute(f'SELECT COUNT(*) FROM "{self.tables.chunks}"').fetchone()
        else:
            row = conn.execute(
                f'SELECT COUNT(*) FROM "{self.tables.chunks}" WHERE file_id = ?',
                (file_id,),
            ).fetchone()
        return int(row[0])

    async def get_ledger_entry(self, file_id: str) -> Optional[LedgerEntry]:
        return await self._run(self._get_ledger_entry, file_id)

    def _get_ledger_entry(
        self, conn: sqlite3.Connection, file_id: str
    ) -> Optional[LedgerEntry]:
        row = conn.execute(
            f'SELECT file_id, entries FROM "{self.tables.meta}" WHERE file_id = ?',
            (file_id,),
        ).fetchone()
        return LedgerEntry(row["file_id"], row["entries"]) if row else None

    async def find_inconsistencies(self) -> list[ConsistencyIssue]:
        """List documents whose ledger count differs from their chunk rows."""
        return await self._run(self._find_inconsistencies)

    def _find_inconsistencies(self, conn: sqlite3.Connection) -> list[ConsistencyIssue]:
        chunks, meta = self.tables.chunks, self.tables.meta
        issues = [
            ConsistencyIssue(row["file_id"], row["entries"], row["chunk_count"])
            for row in conn.execute(
                f"""SELECT m.file_id, m.entries, COUNT(c.id) AS chunk_count
                    FROM "{meta}" m LEFT JOIN "{chunks}" c ON c.file_id = m.file_id
                    GROUP BY m.file_id, m.entries
                    HAVING m.entries != COUNT(c.id)
                    ORDER BY m.file_id"""
            )
        ]
        issues.extend(
            ConsistencyIssue(row["file_id"], None, row["chunk_count"])
            for row in conn.execute(
                f"""SELECT file_id, COUNT(*) AS chunk_count FROM "{chunks}"
                    WHERE file_id NOT IN (SELECT file_id FROM "{meta}")
                    GROUP BY file_id ORDER BY file_id"""
            )
        )
        return issues

    # Writes

    async def insert_chunks(self, chunks: Sequence[ChunkRecord]) -> int:
        """Persist chunks in sequential, individually atomic batches.

        A failing batch is rolled back and raises InsertError with the batch's
        starting offset; batches committed before it stay committed.
        Returns the number of rows inserted.
        """
        self._require()
        inserted = 0
        for offset in range(0, len(chunks), self.batch_size):
            batch = chunks[offset : offset + self.batch_size]
            await self._run(self._insert_batch, batch, offset)
            inserted += len(batch)
            logger.debug(
                f"Committed chunks {offset}-{offset + len(batch) - 1} into {self.tables.chunks}"
            )
        return inserted

    def _insert_batch(
        self, conn: sqlite3.Connection, batch: Sequence[ChunkRecord], offset: int
    ) -> None:
        try:
            with self._transaction(conn):
                rows = [
                    (
                        chunk.file_id,
                        chunk.page_content,
                        json.dumps(chunk.metadata),
                        self._vector_bytes(chunk.vector),
                    )
                    for chunk in batch
                ]
                conn.executemany(
                    f"""INSERT INTO "{self.tables.chunks}"
                        (file_id, page_content, metadata, vector)
                        VALUES (?, ?, ?, ?)""",
                    rows,
                )
        except (sqlite3.Error, DimensionMismatchError, TypeError, ValueError) as exc:
            raise InsertError(
                f"Batch starting at offset {offset} rolled back: {exc}", offset=offset
            ) from exc

    def _vector_bytes(self, vector: Sequence[float] | np.ndarray) -> bytes:
        arr = np.asarray(vector, dtype=np.float32)
        if arr.ndim != 1 or arr.shape[0] != self.dimension:
            raise DimensionMismatchError(self.dimension, int(arr.size))
        return arr.tobytes()

    async def insert_ledger_entry(self, file_id: str, chunk_count: int) -> None:
        """Record how many chunks a document produced."""
        await self._run(self._insert_ledger_entry, file_id, chunk_count)

    def _insert_ledger_entry(
        self, conn: sqlite3.Connection, file_id: str, chunk_count: int
    ) -> None:
        try:
            conn.execute(
                f'INSERT INTO "{self.tables.meta}" (file_id, entries) VALUES (?, ?)',
                (file_id, chunk_count),
            )
        except sqlite3.Error as exc:
            raise InsertError(f"Cannot record ledger entry for {file_id}: {exc}") from exc

    async def delete_document(self, file_id: str) -> int:
        """Delete every chunk of a document. Returns the number of rows removed."""
        return await self._run(self._delete_where, self.tables.chunks, file_id)

    async def delete_ledger_entry(self, file_id: str) -> int:
        """Delete a document's ledger row. Returns 0 or 1."""
        return await self._run(self._delete_where, self.tables.meta, file_id)

    @staticmethod
    def _delete_where(conn: sqlite3.Connection, table: str, file_id: str) -> int:
        cursor = conn.execute(f'DELETE FROM "{table}" WHERE file_id = ?', (file_id,))
        return cursor.rowcount
