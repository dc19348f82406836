"""Unit tests for the SQLite vector store.

Covers schema bootstrap, connection lifecycle, batched transactional inserts,
similarity search thresholds and ranking, deletes and the ledger count check.
"""

from __future__ import annotations

import asyncio
import json
import sqlite3

import numpy as np
import pytest

from ragpack.errors import (
    DimensionMismatchError,
    InsertError,
    NotConnectedError,
    SchemaError,
    StoreConnectionError,
)
from ragpack.storage import VectorStore, table_names
from tests.conftest import DIM, make_chunk, read_rows


def _tables(db_path) -> set[str]:
    conn = sqlite3.connect(db_path)
    try:
        return {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    finally:
        conn.close()


class TestTableNames:
    def test_derives_chunk_and_meta_names(self) -> None:
        names = table_names("handbook_2024")
        assert names.chunks == "handbook_2024"
        assert names.meta == "handbook_2024_meta"

    @pytest.mark.parametrize("project_id", ["", "1abc", 'x"; DROP TABLE y; --', "a-b", "a b"])
    def test_rejects_unsafe_identifiers(self, project_id: str) -> None:
        with pytest.raises(SchemaError):
            table_names(project_id)

    def test_store_rejects_bad_project_id(self, db_path) -> None:
        with pytest.raises(SchemaError):
            VectorStore(db_path, "bad name", dimension=DIM)


class TestConnectionLifecycle:
    @pytest.mark.asyncio
    async def test_connect_creates_both_tables(self, store, db_path) -> None:
        await store.connect()
        assert {"proj", "proj_meta"} <= _tables(db_path)
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_connect_twice_keeps_existing_data(self, store, db_path) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", i) for i in range(3)])
        await store.insert_ledger_entry("doc", 3)

        await store.connect()
        other = VectorStore(db_path, "proj", dimension=DIM)
        await other.connect()

        assert await store.count_chunks("doc") == 3
        assert await other.count_chunks("doc") == 3
        assert await other.list_ingested_file_ids() == ["doc"]
        await other.disconnect()
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_operations_before_connect_raise(self, store) -> None:
        with pytest.raises(NotConnectedError):
            await store.list_ingested_file_ids()
        with pytest.raises(NotConnectedError):
            await store.similarity_search([1.0, 0.0, 0.0])
        with pytest.raises(NotConnectedError):
            await store.insert_chunks([])
        with pytest.raises(NotConnectedError):
            await store.insert_ledger_entry("doc", 1)
        with pytest.raises(NotConnectedError):
            await store.delete_document("doc")
        with pytest.raises(NotConnectedError):
            await store.delete_ledger_entry("doc")

    @pytest.mark.asyncio
    async def test_disconnect_is_idempotent(self, store) -> None:
        await store.connect()
        await store.disconnect()
        await store.disconnect()
        assert not store.connected
        with pytest.raises(NotConnectedError):
            await store.count_chunks()

    @pytest.mark.asyncio
    async def test_unreachable_path_raises_connection_error(self, tmp_path) -> None:
        store = VectorStore(tmp_path / "missing" / "dir" / "x.db", "proj", dimension=DIM)
        with pytest.raises(StoreConnectionError) as exc_info:
            await store.connect()
        assert isinstance(exc_info.value, ConnectionError)
        assert not store.connected

    @pytest.mark.asyncio
    async def test_table_creation_failure_raises_schema_error(self, db_path) -> None:
        # An index already owns the name the chunk table needs
        conn = sqlite3.connect(db_path)
        conn.execute("CREATE TABLE other (x INTEGER)")
        conn.execute('CREATE INDEX "proj" ON other(x)')
        conn.commit()
        conn.close()

        store = VectorStore(db_path, "proj", dimension=DIM)
        with pytest.raises(SchemaError):
            await store.connect()
        assert not store.connected

    @pytest.mark.asyncio
    async def test_async_context_manager(self, db_path) -> None:
        async with VectorStore(db_path, "proj", dimension=DIM) as store:
            assert store.connected
        assert not store.connected


class TestInsertChunks:
    @pytest.mark.asyncio
    async def test_rows_keep_input_order(self, store, db_path) -> None:
        await store.connect()
        inserted = await store.insert_chunks([make_chunk("doc", i) for i in range(5)])

        rows = read_rows(db_path, "proj")
        assert inserted == 5
        assert [json.loads(r["metadata"])["chunkIndex"] for r in rows] == [0, 1, 2, 3, 4]
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_empty_input_is_noop(self, store) -> None:
        await store.connect()
        assert await store.insert_chunks([]) == 0
        assert await store.count_chunks() == 0
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_failed_batch_rolls_back_alone(self, store, db_path) -> None:
        await store.connect()
        chunks = [make_chunk("doc", i) for i in range(2500)]
        # NOT NULL violation in the middle of the second batch (rows 1000-1999)
        chunks[1500].page_content = None

        with pytest.raises(InsertError) as exc_info:
            await store.insert_chunks(chunks)

        assert exc_info.value.offset == 1000
        rows = read_rows(db_path, "proj")
        assert len(rows) == 1000
        assert [json.loads(r["metadata"])["chunkIndex"] for r in rows] == list(range(1000))
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_wrong_vector_dimension_fails_its_batch(self, db_path) -> None:
        store = VectorStore(db_path, "proj", dimension=DIM, batch_size=10)
        await store.connect()
        chunks = [make_chunk("doc", i) for i in range(25)]
        chunks[23].vector = np.asarray([1.0, 2.0])

        with pytest.raises(InsertError) as exc_info:
            await store.insert_chunks(chunks)

        assert exc_info.value.offset == 20
        assert isinstance(exc_info.value.__cause__, DimensionMismatchError)
        assert await store.count_chunks() == 20
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_duplicate_ledger_entry_raises(self, store) -> None:
        await store.connect()
        await store.insert_ledger_entry("doc", 2)
        with pytest.raises(InsertError) as exc_info:
            await store.insert_ledger_entry("doc", 2)
        assert exc_info.value.offset is None
        assert await store.get_ledger_entry("doc") is not None
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_duplicate_ingestion_accumulates_chunks(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", i) for i in range(2)])
        await store.insert_chunks([make_chunk("doc", i) for i in range(2)])
        assert await store.count_chunks("doc") == 4
        await store.disconnect()


class TestSimilaritySearch:
    @pytest.mark.asyncio
    async def test_threshold_is_strict(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", 0, [1.0, 2.0, 3.0])])

        excluded = await store.similarity_search([1.0, 2.0, 3.0], min_score=1.0)
        included = await store.similarity_search([1.0, 2.0, 3.0], min_score=0.999999)

        assert excluded == []
        assert len(included) == 1
        assert included[0].similarity_score == pytest.approx(1.0)
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_score_equal_to_min_score_is_excluded(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", 0, [0.0, 1.0, 0.0])])
        # Orthogonal vectors score exactly 0.0
        assert await store.similarity_search([1.0, 0.0, 0.0], min_score=0.0) == []
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_returns_top_k_in_descending_order(self, store) -> None:
        await store.connect()
        await store.insert_chunks(
            [
                make_chunk("a", 0, [0.0, 1.0, 0.0], content="far"),
                make_chunk("b", 0, [1.0, 0.0, 0.0], content="closest"),
                make_chunk("c", 0, [0.8, 0.6, 0.0], content="close"),
            ]
        )

        results = await store.similarity_search([1.0, 0.1, 0.0], top_k=2, min_score=0.0)

        assert [r.page_content for r in results] == ["closest", "close"]
        assert results[0].similarity_score > results[1].similarity_score
        assert results[0].metadata == {"source": "b", "chunkIndex": 0}
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_defaults_limit_to_five_above_point_four(self, store) -> None:
        await store.connect()
        chunks = [make_chunk("doc", i, [1.0, 0.0, 0.0]) for i in range(7)]
        chunks.append(make_chunk("low", 0, [0.3, 1.0, 0.0]))
        await store.insert_chunks(chunks)

        results = await store.similarity_search([1.0, 0.0, 0.0])

        assert len(results) == 5
        assert all(r.metadata["source"] == "doc" for r in results)
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_ties_keep_insertion_order(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", i, [2.0, 0.0, 0.0]) for i in range(4)])
        results = await store.similarity_search([1.0, 0.0, 0.0], top_k=4)
        assert [r.metadata["chunkIndex"] for r in results] == [0, 1, 2, 3]
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_zero_vector_scores_zero(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("doc", 0, [0.0, 0.0, 0.0])])
        assert await store.similarity_search([1.0, 0.0, 0.0], min_score=-0.5) != []
        assert await store.similarity_search([1.0, 0.0, 0.0], min_score=0.0) == []
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, store) -> None:
        await store.connect()
        with pytest.raises(DimensionMismatchError) as exc_info:
            await store.similarity_search([1.0, 0.0])
        assert exc_info.value.expected == DIM
        assert exc_info.value.actual == 2
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_empty_store_returns_nothing(self, store) -> None:
        await store.connect()
        assert await store.similarity_search([1.0, 0.0, 0.0]) == []
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_projects_are_isolated(self, db_path) -> None:
        first = VectorStore(db_path, "first", dimension=DIM)
        second = VectorStore(db_path, "second", dimension=DIM)
        await first.connect()
        await second.connect()
        await first.insert_chunks([make_chunk("doc", 0)])

        assert len(await first.similarity_search([1.0, 0.0, 0.0])) == 1
        assert await second.similarity_search([1.0, 0.0, 0.0]) == []
        await first.disconnect()
        await second.disconnect()


class TestDeletes:
    @pytest.mark.asyncio
    async def test_delete_missing_document_is_noop(self, store, db_path) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("keep", i) for i in range(2)])

        assert await store.delete_document("X") == 0
        assert await store.delete_ledger_entry("X") == 0
        assert len(read_rows(db_path, "proj")) == 2
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_delete_removes_only_that_document(self, store) -> None:
        await store.connect()
        await store.insert_chunks(
            [make_chunk("a", i) for i in range(3)] + [make_chunk("b", i) for i in range(2)]
        )
        await store.insert_ledger_entry("a", 3)
        await store.insert_ledger_entry("b", 2)

        assert await store.delete_document("a") == 3
        assert await store.delete_ledger_entry("a") == 1
        assert await store.count_chunks("a") == 0
        assert await store.count_chunks("b") == 2
        assert await store.list_ingested_file_ids() == ["b"]
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_concurrent_deletes_are_serialized(self, store) -> None:
        await store.connect()
        ids = [f"doc{i}" for i in range(10)]
        for file_id in ids:
            await store.insert_chunks([make_chunk(file_id, 0)])
            await store.insert_ledger_entry(file_id, 1)

        await asyncio.gather(
            *(store.delete_document(f) for f in ids),
            *(store.delete_ledger_entry(f) for f in ids),
        )

        assert await store.count_chunks() == 0
        assert await store.list_ingested_file_ids() == []
        await store.disconnect()


class TestConsistencyCheck:
    @pytest.mark.asyncio
    async def test_reports_mismatched_and_orphaned_documents(self, store) -> None:
        await store.connect()
        await store.insert_chunks([make_chunk("ok", i) for i in range(2)])
        await store.insert_ledger_entry("ok", 2)
        await store.insert_chunks([make_chunk("short", 0)])
        await store.insert_ledger_entry("short", 3)
        await store.insert_chunks([make_chunk("orphan", i) for i in range(4)])

        issues = {i.file_id: i for i in await store.find_inconsistencies()}

        assert set(issues) == {"short", "orphan"}
        assert issues["short"].ledger_entries == 3
        assert issues["short"].chunk_count == 1
        assert issues["orphan"].ledger_entries is None
        assert issues["orphan"].chunk_count == 4
        await store.disconnect()

    @pytest.mark.asyncio
    async def test_empty_document_ledger_is_consistent(self, store) -> None:
        await store.connect()
        await store.insert_ledger_entry("empty", 0)
        assert await store.find_inconsistencies() == []
        await store.disconnect()
