"""
Fragment writer and reader.

A fragment is one immutable Parquet file holding every column of a batch of
rows. Fragments are written once under a fresh uuid key and never modified;
they become visible only when a manifest references them.

Dependencies: pyarrow, pydantic
System role: Columnar serialization of row batches to durable storage
"""

import io
import logging
import uuid
from typing import Any, Sequence

import pyarrow as pa
import pyarrow.parquet as pq
from pydantic import BaseModel, ConfigDict, Field

from vectorlake.boundary.storage.base import ObjectStore, join_key
from vectorlake.core.exceptions import (
    EmptyBatchError,
    SchemaMismatchError,
    StorageReadError,
    StorageWriteError,
)
from vectorlake.core.schema import Schema

logger = logging.getLogger(__name__)

FRAGMENTS_DIR = "fragments"
FRAGMENT_SUFFIX = ".parquet"
FRAGMENT_ID_METADATA_KEY = b"vectorlake.fragment_id"


class FragmentRef(BaseModel):
    """Reference to a durably written fragment."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique fragment identifier (uuid4 hex)")
    path: str = Field(description="Key of the fragment file relative to the table root")
    num_rows: int = Field(description="Number of rows stored", ge=1)
    size_bytes: int = Field(description="Size of the fragment file in bytes", ge=0)


def fragment_path(fragment_id: str) -> str:
    return f"{FRAGMENTS_DIR}/{fragment_id}{FRAGMENT_SUFFIX}"


def rows_to_table(schema: Schema, rows: Sequence[dict[str, Any]]) -> pa.Table:
    """Build an Arrow table, column by column, from validated rows."""
    arrow_schema = schema.to_arrow()
    arrays = [
        pa.array([row.get(field.name) for row in rows], type=field.type)
        for field in arrow_schema
    ]
    return pa.Table.from_arrays(arrays, schema=arrow_schema)


class FragmentWriter:
    """Serializes row batches into fragment files under one table root."""

    def __init__(self, store: ObjectStore, table_prefix: str) -> None:
        """
        Initialize fragment writer.

        Args:
            store: Object store holding the table
            table_prefix: Key prefix of the table (``<name>``)
        """
        self._store = store
        self._table_prefix = table_prefix

    async def write(self, schema: Schema, rows: Sequence[dict[str, Any]]) -> FragmentRef:
        """
        Write one fragment containing all rows.

        Rows must already be validated against the schema.

        Args:
            schema: Table schema
            rows: Non-empty ordered batch of rows

        Returns:
            FragmentRef: Reference to the durable fragment

        Raises:
            EmptyBatchError: If rows is empty
            StorageWriteError: If serialization or the upload fails
        """
        if not rows:
            raise EmptyBatchError("Cannot write a fragment with zero rows")

        fragment_id = uuid.uuid4().hex
        path = fragment_path(fragment_id)

        try:
            table = rows_to_table(schema, rows)
            metadata = dict(table.schema.metadata or {})
            metadata[FRAGMENT_ID_METADATA_KEY] = fragment_id.encode("utf-8")
            table = table.replace_schema_metadata(metadata)

            buffer = io.BytesIO()
            pq.write_table(table, buffer)
            data = buffer.getvalue()
        except (pa.ArrowException, ValueError, TypeError, OverflowError) as e:
            logger.error("%s:write - %s: %s", __name__, type(e).__name__, e)
            raise StorageWriteError(
                f"Failed to serialize fragment {fragment_id}: {e}", key=path
            ) from e

        await self._store.put(join_key(self._table_prefix, path), data)

        logger.info(
            "%s:write - Wrote fragment",
            __name__,
            extra={"fragment_id": fragment_id, "num_rows": len(rows), "size_bytes": len(data)},
        )
        return FragmentRef(id=fragment_id, path=path, num_rows=len(rows), size_bytes=len(data))


class FragmentReader:
    """Loads fragment files back into Arrow tables."""

    def __init__(self, store: ObjectStore, table_prefix: str) -> None:
        self._store = store
        self._table_prefix = table_prefix

    async def read(self, ref: FragmentRef, schema: Schema) -> pa.Table:
        """
        Read a fragment and check it against the table it belongs to.

        Args:
            ref: Manifest reference to the fragment
            schema: Schema recorded in the manifest

        Returns:
            pa.Table: Fragment rows in storage order

        Raises:
            StorageReadError: If the object is missing or unreadable, or if its
                row count or embedded schema disagrees with the manifest
        """
        key = join_key(self._table_prefix, ref.path)
        data = await self._store.get(key)
        try:
            table = pq.read_table(io.BytesIO(data))
        except pa.ArrowException as e:
            raise StorageReadError(f"Corrupt fragment {ref.id}: {e}", key=key) from e

        if table.num_rows != ref.num_rows:
            raise StorageReadError(
                f"Fragment {ref.id} holds {table.num_rows} rows, manifest says {ref.num_rows}",
                key=key,
            )

        try:
            stored_schema = Schema.from_arrow(table.schema)
        except (SchemaMismatchError, ValueError) as e:
            raise StorageReadError(f"Fragment {ref.id} has no readable schema: {e}", key=key) from e
        if stored_schema != schema:
            logger.error(
                "%s:read - Schema mismatch",
                __name__,
                extra={"fragment_id": ref.id, "stored_columns": stored_schema.names},
            )
            raise StorageReadError(
                f"Fragment {ref.id} was written with a different schema than the manifest",
                key=key,
            )
        return table
