"""Unit tests for fragment serialization."""

import io

import pyarrow as pa
import pyarrow.parquet as pq
import pytest

from vectorlake.core.exceptions import EmptyBatchError, StorageReadError, StorageWriteError
from vectorlake.core.fragment_writer import (
    FRAGMENT_ID_METADATA_KEY,
    FragmentReader,
    FragmentRef,
    FragmentWriter,
    rows_to_table,
)
from vectorlake.core.schema import Column, ColumnType, define, vector_schema


class TestRowsToTable:
    """Test suite for rows_to_table()."""

    def test_rows_to_table_keeps_order_and_nulls(self, schema, make_row) -> None:
        rows = [make_row([1, 2, 3, 4], "a"), make_row([0.5, None, 0, 1], "b")]

        table = rows_to_table(schema, rows)

        assert table.num_rows == 2
        assert table.column("description").to_pylist() == ["a", "b"]
        assert table.column("vector").to_pylist()[1] == [0.5, None, 0.0, 1.0]


class TestFragmentWriter:
    """Test suite for FragmentWriter and FragmentReader."""

    @pytest.mark.asyncio
    async def test_write_then_read_returns_same_rows(self, memory_store, schema, make_row) -> None:
        """Test fragment contents survive a write/read cycle."""
        # Arrange
        writer = FragmentWriter(memory_store, "t")
        reader = FragmentReader(memory_store, "t")
        rows = [make_row([i, i, i, i], f"row-{i}") for i in range(3)]

        # Act
        ref = await writer.write(schema, rows)
        table = await reader.read(ref, schema)

        # Assert
        assert ref.num_rows == 3
        assert ref.path == f"fragments/{ref.id}.parquet"
        assert await memory_store.exists(f"t/{ref.path}")
        assert table.column("description").to_pylist() == ["row-0", "row-1", "row-2"]
        assert table.schema.metadata[FRAGMENT_ID_METADATA_KEY] == ref.id.encode()

    @pytest.mark.asyncio
    async def test_each_write_uses_a_fresh_key(self, memory_store, schema, make_row) -> None:
        writer = FragmentWriter(memory_store, "t")

        first = await writer.write(schema, [make_row([0, 0, 0, 0])])
        second = await writer.write(schema, [make_row([0, 0, 0, 0])])

        assert first.id != second.id
        assert len(await memory_store.list("t/fragments/")) == 2

    @pytest.mark.asyncio
    async def test_write_rejects_empty_batch(self, memory_store, schema) -> None:
        writer = FragmentWriter(memory_store, "t")

        with pytest.raises(EmptyBatchError):
            await writer.write(schema, [])

        assert await memory_store.list("") == []

    @pytest.mark.asyncio
    async def test_write_wraps_serialization_errors(self, memory_store, schema) -> None:
        writer = FragmentWriter(memory_store, "t")
        rows = [{"vector": ["x", "y", "z", "w"], "location": "l", "description": "d"}]

        with pytest.raises(StorageWriteError):
            await writer.write(schema, rows)

    @pytest.mark.asyncio
    async def test_write_wraps_integer_overflow(self, memory_store) -> None:
        """Test an unvalidated int64 overflow surfaces as a storage error, not OverflowError."""
        # Arrange
        counted = define([Column.vector("vector", 2), Column.scalar("count", ColumnType.INT64)])
        writer = FragmentWriter(memory_store, "t")

        # Act
        with pytest.raises(StorageWriteError) as exc_info:
            await writer.write(counted, [{"vector": [0.0, 0.0], "count": 2**70}])

        # Assert
        assert isinstance(exc_info.value.__cause__, (OverflowError, pa.ArrowException))
        assert await memory_store.list("t/") == []

    @pytest.mark.asyncio
    async def test_read_rejects_schema_mismatch(self, memory_store, schema, make_row) -> None:
        ref = await FragmentWriter(memory_store, "t").write(schema, [make_row([0, 0, 0, 0])])
        other = vector_schema(4, "location", "caption")

        with pytest.raises(StorageReadError, match="different schema"):
            await FragmentReader(memory_store, "t").read(ref, other)

    @pytest.mark.asyncio
    async def test_read_rejects_fragment_without_schema_metadata(self, memory_store, schema) -> None:
        buffer = io.BytesIO()
        pq.write_table(pa.table({"vector": [[0.0] * 4]}), buffer)
        await memory_store.put("t/fragments/bare.parquet", buffer.getvalue())
        ref = FragmentRef(
            id="bare", path="fragments/bare.parquet", num_rows=1, size_bytes=len(buffer.getvalue())
        )

        with pytest.raises(StorageReadError, match="no readable schema"):
            await FragmentReader(memory_store, "t").read(ref, schema)

    @pytest.mark.asyncio
    async def test_read_rejects_corrupt_fragment(self, memory_store, schema) -> None:
        await memory_store.put("t/fragments/bad.parquet", b"not parquet")
        ref = FragmentRef(id="bad", path="fragments/bad.parquet", num_rows=1, size_bytes=11)

        with pytest.raises(StorageReadError, match="Corrupt fragment"):
            await FragmentReader(memory_store, "t").read(ref, schema)

    @pytest.mark.asyncio
    async def test_read_rejects_row_count_mismatch(self, memory_store, schema, make_row) -> None:
        ref = await FragmentWriter(memory_store, "t").write(schema, [make_row([0, 0, 0, 0])])
        wrong = ref.model_copy(update={"num_rows": 5})

        with pytest.raises(StorageReadError, match="manifest says 5"):
            await FragmentReader(memory_store, "t").read(wrong, schema)

    def test_fragment_ref_requires_rows(self) -> None:
        with pytest.raises(ValueError):
            FragmentRef(id="x", path="fragments/x.parquet", num_rows=0, size_bytes=1)


def test_vector_column_is_fixed_size_float32(schema, make_row) -> None:
    table = rows_to_table(schema, [make_row([1, 2, 3, 4])])

    assert table.schema.field("vector").type == pa.list_(
        pa.field("item", pa.float32(), nullable=True), 4
    )
