"""Unit tests for schema definition and row validation."""

import pyarrow as pa
import pytest

from vectorlake.core.exceptions import SchemaMismatchError
from vectorlake.core.schema import (
    Column,
    ColumnType,
    Schema,
    define,
    validate,
    validate_batch,
    vector_schema,
)


class TestDefine:
    """Test suite for define()."""

    def test_define_should_accept_one_vector_and_scalars(self, schema: Schema) -> None:
        assert schema.names == ["vector", "location", "description"]
        assert schema.dimension == 4
        assert schema.vector_column.name == "vector"
        assert [c.name for c in schema.scalar_columns] == ["location", "description"]

    def test_define_should_reject_no_vector_column(self) -> None:
        with pytest.raises(SchemaMismatchError, match="exactly one vector column"):
            define([Column.scalar("location", ColumnType.STRING)])

    def test_define_should_reject_two_vector_columns(self) -> None:
        with pytest.raises(SchemaMismatchError):
            define([Column.vector("a", 2), Column.vector("b", 2)])

    @pytest.mark.parametrize("dimension", [0, -3, None])
    def test_define_should_reject_non_positive_dimension(self, dimension) -> None:
        with pytest.raises(SchemaMismatchError, match="positive integer"):
            define([Column(name="vector", type=ColumnType.VECTOR, dimension=dimension)])

    def test_define_should_reject_duplicate_names(self) -> None:
        with pytest.raises(SchemaMismatchError, match="Duplicate"):
            define(
                [
                    Column.vector("vector", 2),
                    Column.scalar("name", ColumnType.STRING),
                    Column.scalar("name", ColumnType.INT64),
                ]
            )

    def test_define_should_reject_empty_schema(self) -> None:
        with pytest.raises(SchemaMismatchError):
            define([])

    def test_vector_schema_builds_string_columns(self) -> None:
        schema = vector_schema(8, "location", "description")

        assert schema.dimension == 8
        assert schema.vector_column.nullable_elements is True
        assert all(c.type == ColumnType.STRING for c in schema.scalar_columns)


class TestArrowConversion:
    """Test suite for pyarrow schema conversion."""

    def test_to_arrow_uses_fixed_size_list(self, schema: Schema) -> None:
        arrow_schema = schema.to_arrow()

        vector_type = arrow_schema.field("vector").type
        assert pa.types.is_fixed_size_list(vector_type)
        assert vector_type.list_size == 4
        assert vector_type.value_type == pa.float32()
        assert arrow_schema.field("location").type == pa.string()

    def test_from_arrow_restores_schema(self, schema: Schema) -> None:
        assert Schema.from_arrow(schema.to_arrow()) == schema

    def test_from_arrow_requires_metadata(self) -> None:
        with pytest.raises(SchemaMismatchError):
            Schema.from_arrow(pa.schema([pa.field("x", pa.string())]))


class TestValidate:
    """Test suite for validate()."""

    def test_validate_accepts_matching_row(self, schema: Schema, make_row) -> None:
        validate(schema, make_row([0.1, 0.2, 0.3, 0.4]))

    def test_validate_accepts_int_elements_and_null_elements(self, schema: Schema, make_row) -> None:
        validate(schema, make_row([1, None, 0, 2.5]))

    @pytest.mark.parametrize("length", [0, 1, 3, 5, 1024])
    def test_validate_rejects_wrong_vector_length(self, schema: Schema, make_row, length: int) -> None:
        with pytest.raises(SchemaMismatchError) as exc_info:
            validate(schema, make_row([0.0] * length))

        assert exc_info.value.details["expected"] == 4
        assert exc_info.value.details["actual"] == length

    def test_validate_rejects_null_elements_when_not_allowed(self, make_row) -> None:
        strict = define(
            [
                Column.vector("vector", 4),
                Column.scalar("location", ColumnType.STRING),
                Column.scalar("description", ColumnType.STRING),
            ]
        )
        with pytest.raises(SchemaMismatchError, match="null elements"):
            validate(strict, make_row([0.1, None, 0.3, 0.4]))

    def test_validate_rejects_missing_required_column(self, schema: Schema) -> None:
        with pytest.raises(SchemaMismatchError, match="description is required") as exc_info:
            validate(schema, {"vector": [0.0] * 4, "location": "x"})

        assert exc_info.value.details["column"] == "description"

    def test_validate_rejects_none_for_required_column(self, schema: Schema, make_row) -> None:
        row = make_row([0.0] * 4)
        row["location"] = None

        with pytest.raises(SchemaMismatchError):
            validate(schema, row)

    def test_validate_allows_missing_nullable_column(self) -> None:
        schema = define(
            [
                Column.vector("vector", 2),
                Column.scalar("note", ColumnType.STRING, nullable=True),
            ]
        )
        validate(schema, {"vector": [1.0, 2.0]})

    def test_validate_rejects_unknown_columns(self, schema: Schema, make_row) -> None:
        row = make_row([0.0] * 4)
        row["extra"] = 1

        with pytest.raises(SchemaMismatchError, match="not in schema"):
            validate(schema, row)

    def test_validate_rejects_wrong_scalar_type(self, schema: Schema, make_row) -> None:
        row = make_row([0.0] * 4)
        row["description"] = 42

        with pytest.raises(SchemaMismatchError, match="expects string"):
            validate(schema, row)

    @pytest.mark.parametrize("element", ["1.0", True, float("inf"), float("nan")])
    def test_validate_rejects_non_numeric_elements(self, schema: Schema, make_row, element) -> None:
        with pytest.raises(SchemaMismatchError):
            validate(schema, make_row([0.0, element, 0.0, 0.0]))

    @pytest.mark.parametrize("element", [16777217, -(2**40), 1e39, -3.5e38])
    def test_validate_rejects_elements_outside_float32(self, schema: Schema, make_row, element) -> None:
        with pytest.raises(SchemaMismatchError, match="float32") as exc_info:
            validate(schema, make_row([0.0, 0.0, element, 0.0]))

        assert exc_info.value.details["position"] == 2

    @pytest.mark.parametrize("element", [16777216, -16777216, 3.4e38, 1e-45])
    def test_validate_accepts_float32_boundaries(self, schema: Schema, make_row, element) -> None:
        validate(schema, make_row([element, 0.0, 0.0, 0.0]))

    @pytest.mark.parametrize("value", [2**63, -(2**63) - 1, 2**70])
    def test_validate_rejects_int64_overflow(self, value: int) -> None:
        counted = define([Column.vector("vector", 2), Column.scalar("count", ColumnType.INT64)])

        with pytest.raises(SchemaMismatchError, match="expects int64"):
            validate(counted, {"vector": [0.0, 0.0], "count": value})

    def test_validate_accepts_int64_limits(self) -> None:
        counted = define([Column.vector("vector", 2), Column.scalar("count", ColumnType.INT64)])

        validate(counted, {"vector": [0.0, 0.0], "count": 2**63 - 1})
        validate(counted, {"vector": [0.0, 0.0], "count": -(2**63)})

    def test_validate_rejects_inexact_float64_ints(self) -> None:
        scored = define([Column.vector("vector", 2), Column.scalar("score", ColumnType.FLOAT64)])

        validate(scored, {"vector": [0.0, 0.0], "score": 2**53})
        with pytest.raises(SchemaMismatchError, match="expects float64"):
            validate(scored, {"vector": [0.0, 0.0], "score": 2**53 + 1})

    def test_validate_batch_reports_row_index(self, schema: Schema, make_row) -> None:
        rows = [make_row([0.0] * 4), make_row([0.0] * 4), make_row([0.0] * 3)]

        with pytest.raises(SchemaMismatchError) as exc_info:
            validate_batch(schema, rows)

        assert exc_info.value.details["row_index"] == 2


def test_column_lookup(schema: Schema) -> None:
    assert schema.column("location").type == ColumnType.STRING

    with pytest.raises(SchemaMismatchError):
        schema.column("missing")
