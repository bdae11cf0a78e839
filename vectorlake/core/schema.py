"""
Schema registry for vector tables.

Defines the fixed column layout of a table (one fixed-width float32 vector
column plus scalar columns) and validates incoming rows against it. Schemas
are pydantic models so they serialize into manifests unchanged, and convert
to pyarrow schemas for fragment files.

Dependencies: pydantic, pyarrow, numpy
System role: Column layout definition and row validation
"""

import json
import math
from enum import Enum
from typing import Any, Iterable, Sequence

import numpy as np
import pyarrow as pa
from pydantic import BaseModel, ConfigDict, Field

from vectorlake.core.exceptions import SchemaMismatchError

SCHEMA_METADATA_KEY = b"vectorlake.schema"

FLOAT32_MAX = float(np.finfo(np.float32).max)
# largest integers Arrow converts exactly into float32 and float64 columns
FLOAT32_EXACT_INT = 2**24
FLOAT64_EXACT_INT = 2**53
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1


class ColumnType(str, Enum):
    """Semantic column types supported by fragment files."""

    VECTOR = "vector"
    STRING = "string"
    INT64 = "int64"
    FLOAT64 = "float64"
    BOOL = "bool"


_ARROW_SCALAR_TYPES = {
    ColumnType.STRING: pa.string(),
    ColumnType.INT64: pa.int64(),
    ColumnType.FLOAT64: pa.float64(),
    ColumnType.BOOL: pa.bool_(),
}


class Column(BaseModel):
    """Single column definition."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Column name, unique within a schema")
    type: ColumnType = Field(description="Semantic column type")
    nullable: bool = Field(default=False, description="Whether the value may be absent")
    dimension: int | None = Field(default=None, description="Vector width (vector columns only)")
    nullable_elements: bool = Field(
        default=False,
        description="Whether individual vector elements may be null (vector columns only)",
    )

    @classmethod
    def vector(cls, name: str, dimension: int, nullable_elements: bool = False) -> "Column":
        return cls(
            name=name,
            type=ColumnType.VECTOR,
            dimension=dimension,
            nullable_elements=nullable_elements,
        )

    @classmethod
    def scalar(cls, name: str, type: ColumnType | str, nullable: bool = False) -> "Column":
        return cls(name=name, type=ColumnType(type), nullable=nullable)

    def to_arrow(self) -> pa.Field:
        if self.type == ColumnType.VECTOR:
            item = pa.field("item", pa.float32(), nullable=self.nullable_elements)
            return pa.field(self.name, pa.list_(item, self.dimension), nullable=self.nullable)
        return pa.field(self.name, _ARROW_SCALAR_TYPES[self.type], nullable=self.nullable)


class Schema(BaseModel):
    """Ordered column layout of a table. Build with ``define``."""

    model_config = ConfigDict(frozen=True)

    columns: tuple[Column, ...]

    @property
    def names(self) -> list[str]:
        return [column.name for column in self.columns]

    @property
    def vector_column(self) -> Column:
        return next(c for c in self.columns if c.type == ColumnType.VECTOR)

    @property
    def dimension(self) -> int:
        return self.vector_column.dimension

    @property
    def scalar_columns(self) -> list[Column]:
        return [c for c in self.columns if c.type != ColumnType.VECTOR]

    def column(self, name: str) -> Column:
        for column in self.columns:
            if column.name == name:
                return column
        raise SchemaMismatchError(f"Unknown column: {name}", column=name)

    def to_arrow(self) -> pa.Schema:
        """Convert to a pyarrow schema, embedding the JSON definition as metadata."""
        return pa.schema(
            [column.to_arrow() for column in self.columns],
            metadata={SCHEMA_METADATA_KEY: self.model_dump_json().encode("utf-8")},
        )

    @classmethod
    def from_arrow(cls, arrow_schema: pa.Schema) -> "Schema":
        metadata = arrow_schema.metadata or {}
        if SCHEMA_METADATA_KEY not in metadata:
            raise SchemaMismatchError("Arrow schema carries no vectorlake schema metadata")
        return define(cls.model_validate(json.loads(metadata[SCHEMA_METADATA_KEY])).columns)


def define(columns: Iterable[Column]) -> Schema:
    """
    Build a validated schema.

    Args:
        columns: Column definitions in storage order

    Returns:
        Schema: Immutable schema

    Raises:
        SchemaMismatchError: No columns, duplicate or empty names, not exactly
            one vector column, or a non-positive vector dimension
    """
    columns = tuple(columns)
    if not columns:
        raise SchemaMismatchError("Schema must declare at least one column")

    seen: set[str] = set()
    for column in columns:
        if not column.name:
            raise SchemaMismatchError("Column names must be non-empty")
        if column.name in seen:
            raise SchemaMismatchError(f"Duplicate column name: {column.name}", column=column.name)
        seen.add(column.name)

    vectors = [c for c in columns if c.type == ColumnType.VECTOR]
    if len(vectors) != 1:
        raise SchemaMismatchError(
            f"Schema must declare exactly one vector column, found {len(vectors)}",
            details={"vector_columns": [c.name for c in vectors]},
        )
    dimension = vectors[0].dimension
    if not isinstance(dimension, int) or isinstance(dimension, bool) or dimension <= 0:
        raise SchemaMismatchError(
            f"Vector dimension must be a positive integer, got {dimension!r}",
            column=vectors[0].name,
        )
    for column in columns:
        if column.type != ColumnType.VECTOR and (column.dimension or column.nullable_elements):
            raise SchemaMismatchError(
                "Only vector columns take a dimension or nullable elements", column=column.name
            )

    return Schema(columns=columns)


def vector_schema(dimension: int, *string_columns: str, vector_name: str = "vector") -> Schema:
    """Schema of one vector column (nullable elements) followed by string columns."""
    return define(
        [Column.vector(vector_name, dimension, nullable_elements=True)]
        + [Column.scalar(name, ColumnType.STRING) for name in string_columns]
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _fits_float32(value: int | float) -> bool:
    if isinstance(value, int):
        return abs(value) <= FLOAT32_EXACT_INT
    return math.isfinite(value) and abs(value) <= FLOAT32_MAX


def _fits_float64(value: Any) -> bool:
    if not _is_number(value):
        return False
    if isinstance(value, int):
        return abs(value) <= FLOAT64_EXACT_INT
    return True


def _fits_int64(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and INT64_MIN <= value <= INT64_MAX


def _validate_vector(column: Column, value: Any, row_index: int | None) -> None:
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
        raise SchemaMismatchError(
            f"Column {column.name} expects a sequence of floats, got {type(value).__name__}",
            column=column.name,
            row_index=row_index,
        )
    if len(value) != column.dimension:
        raise SchemaMismatchError(
            f"Vector length {len(value)} does not match dimension {column.dimension}",
            column=column.name,
            row_index=row_index,
            details={"expected": column.dimension, "actual": len(value)},
        )
    for position, element in enumerate(value):
        if element is None:
            if not column.nullable_elements:
                raise SchemaMismatchError(
                    f"Column {column.name} does not allow null elements",
                    column=column.name,
                    row_index=row_index,
                    details={"position": position},
                )
        elif not _is_number(element) or not _fits_float32(element):
            raise SchemaMismatchError(
                f"Vector element {position} is not a finite float32 value: {element!r}",
                column=column.name,
                row_index=row_index,
                details={"position": position},
            )


_SCALAR_CHECKS = {
    ColumnType.STRING: lambda v: isinstance(v, str),
    ColumnType.INT64: _fits_int64,
    ColumnType.FLOAT64: _fits_float64,
    ColumnType.BOOL: lambda v: isinstance(v, bool),
}


def validate(schema: Schema, row: dict[str, Any], row_index: int | None = None) -> None:
    """
    Check a row against a schema.

    Args:
        schema: Target schema
        row: Mapping of column name to value
        row_index: Position within the batch, for error reporting

    Raises:
        SchemaMismatchError: On the first violation found
    """
    if not isinstance(row, dict):
        raise SchemaMismatchError(
            f"Row must be a mapping, got {type(row).__name__}", row_index=row_index
        )

    unknown = set(row) - set(schema.names)
    if unknown:
        raise SchemaMismatchError(
            f"Row has columns not in schema: {sorted(unknown)}",
            row_index=row_index,
        )

    for column in schema.columns:
        value = row.get(column.name)
        if value is None:
            if not column.nullable:
                raise SchemaMismatchError(
                    f"Column {column.name} is required", column=column.name, row_index=row_index
                )
            continue
        if column.type == ColumnType.VECTOR:
            _validate_vector(column, value, row_index)
        elif not _SCALAR_CHECKS[column.type](value):
            raise SchemaMismatchError(
                f"Column {column.name} expects {column.type.value}, got {type(value).__name__}",
                column=column.name,
                row_index=row_index,
            )


def validate_batch(schema: Schema, rows: Sequence[dict[str, Any]]) -> None:
    """Validate every row of a batch, reporting the failing row index."""
    for index, row in enumerate(rows):
        validate(schema, row, row_index=index)
