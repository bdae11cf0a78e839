"""
Brute-force nearest-neighbor query engine.

Scans every live fragment of one manifest snapshot, computes the distance
from the query vector to every stored vector, and returns the k closest rows
in ascending distance order. Ties are broken by fragment id, then by row
position inside the fragment, so identical queries always produce identical
results.

Dependencies: numpy, pyarrow
System role: Top-k similarity search over fragment files
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Sequence

import numpy as np
import pyarrow as pa

from vectorlake.core.exceptions import DimensionMismatchError, InvalidArgumentError
from vectorlake.core.fragment_writer import FragmentReader
from vectorlake.core.manifest import FragmentEntry, Manifest
from vectorlake.core.schema import Schema

logger = logging.getLogger(__name__)


class DistanceMetric(str, Enum):
    """Supported distance functions. Smaller is closer for all of them."""

    L2 = "l2"
    COSINE = "cosine"
    DOT = "dot"

    @classmethod
    def parse(cls, value: "DistanceMetric | str") -> "DistanceMetric":
        try:
            return cls(value.lower() if isinstance(value, str) else value)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown distance metric: {value!r}",
                argument="metric",
                details={"supported": [m.value for m in cls]},
            ) from None


def _l2(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    diff = matrix - query
    return np.einsum("ij,ij->i", diff, diff)


def _cosine(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    with np.errstate(divide="ignore", invalid="ignore"):
        similarity = np.where(norms > 0, dots / norms, 0.0)
    # keep NaN from null elements visible
    similarity = np.where(np.isnan(dots), np.nan, similarity)
    return 1.0 - similarity


def _dot(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    return 1.0 - matrix @ query


_METRICS: dict[DistanceMetric, Callable[[np.ndarray, np.ndarray], np.ndarray]] = {
    DistanceMetric.L2: _l2,
    DistanceMetric.COSINE: _cosine,
    DistanceMetric.DOT: _dot,
}


def compute_distances(matrix: np.ndarray, query: np.ndarray, metric: DistanceMetric) -> np.ndarray:
    """Distances from query to each row of matrix (float64, NaN for null elements)."""
    return _METRICS[metric](matrix.astype(np.float64, copy=False), query.astype(np.float64, copy=False))


@dataclass(frozen=True)
class ScoredRow:
    """One search hit."""

    fragment_id: int
    row_index: int
    distance: float
    values: dict[str, Any] = field(default_factory=dict)


def vector_matrix(table: pa.Table, column: str, dimension: int) -> np.ndarray:
    """
    Stored vectors of a fragment as an (n, dimension) float32 array.

    Null elements and null vector slots both become NaN, so the matrix always
    has one row per fragment row.
    """
    vectors = table.column(column).combine_chunks()
    # .values ignores the array offset
    values = vectors.values.slice(vectors.offset * dimension, len(vectors) * dimension)
    flat = values.to_numpy(zero_copy_only=False)
    matrix = np.array(flat, dtype=np.float32).reshape(len(vectors), dimension)
    if vectors.null_count:
        matrix[vectors.is_null().to_numpy(zero_copy_only=False)] = np.nan
    return matrix


def _query_array(query_vector: Sequence[float], dimension: int) -> np.ndarray:
    try:
        query = np.asarray(query_vector, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Query vector is not numeric: {e}", argument="vector") from e
    if query.ndim != 1 or query.shape[0] != dimension:
        raise DimensionMismatchError(dimension, int(query.size if query.ndim else 0))
    if not np.all(np.isfinite(query)):
        raise DimensionMismatchError(
            dimension, int(query.shape[0]), details={"reason": "query vector has non-finite values"}
        )
    return query


def validate_query(
    schema: Schema,
    query_vector: Sequence[float],
    k: int,
    metric: DistanceMetric | str,
) -> tuple[np.ndarray, DistanceMetric]:
    """Check k, metric and query vector; return the query as float64 and the parsed metric."""
    if isinstance(k, bool) or not isinstance(k, int) or k < 1:
        raise InvalidArgumentError(f"k must be a positive integer, got {k!r}", argument="k")
    return _query_array(query_vector, schema.dimension), DistanceMetric.parse(metric)


def nearest(
    schema: Schema,
    fragments: Sequence[tuple[FragmentEntry, pa.Table]],
    query_vector: Sequence[float],
    k: int,
    metric: DistanceMetric | str = DistanceMetric.L2,
) -> list[ScoredRow]:
    """
    Exact top-k search over loaded fragments.

    Args:
        schema: Table schema
        fragments: (manifest entry, fragment table) pairs
        query_vector: Query of the table's dimension
        k: Maximum number of rows to return
        metric: Distance metric

    Returns:
        list[ScoredRow]: At most k rows ordered by (distance, fragment_id, row_index)

    Raises:
        DimensionMismatchError: Wrong query length or non-finite query values
        InvalidArgumentError: k < 1 or unknown metric
    """
    query, metric = validate_query(schema, query_vector, k, metric)
    dimension = schema.dimension

    if not fragments:
        return []

    vector_name = schema.vector_column.name
    distances, fragment_ids, row_indexes = [], [], []
    for entry, table in fragments:
        matrix = vector_matrix(table, vector_name, dimension)
        distances.append(compute_distances(matrix, query, metric))
        fragment_ids.append(np.full(matrix.shape[0], entry.fragment_id, dtype=np.int64))
        row_indexes.append(np.arange(matrix.shape[0], dtype=np.int64))

    all_distances = np.concatenate(distances)
    all_fragment_ids = np.concatenate(fragment_ids)
    all_rows = np.concatenate(row_indexes)

    # NaN sorts after every finite distance
    sort_key = np.where(np.isnan(all_distances), np.inf, all_distances)
    is_nan = np.isnan(all_distances)
    order = np.lexsort((all_rows, all_fragment_ids, sort_key, is_nan))[:k]

    tables = {entry.fragment_id: table for entry, table in fragments}
    results = []
    for position in order:
        fragment_id = int(all_fragment_ids[position])
        row_index = int(all_rows[position])
        row = tables[fragment_id].slice(row_index, 1).to_pylist()[0]
        results.append(
            ScoredRow(
                fragment_id=fragment_id,
                row_index=row_index,
                distance=float(all_distances[position]),
                values=row,
            )
        )
    return results


class QueryEngine:
    """Runs nearest-neighbor queries against a manifest snapshot."""

    def __init__(self, reader: FragmentReader) -> None:
        self._reader = reader

    async def search(
        self,
        manifest: Manifest,
        query_vector: Sequence[float],
        k: int,
        metric: DistanceMetric | str = DistanceMetric.L2,
    ) -> list[ScoredRow]:
        """Load the manifest's fragments concurrently and run ``nearest``."""
        schema = manifest.table_schema
        # validate before any I/O
        validate_query(schema, query_vector, k, metric)

        tables = await asyncio.gather(
            *(self._reader.read(entry, schema) for entry in manifest.fragments)
        )
        results = nearest(
            schema,
            list(zip(manifest.fragments, tables)),
            query_vector,
            k,
            metric,
        )
        logger.info(
            "%s:search - Query complete",
            __name__,
            extra={
                "version": manifest.version,
                "fragments_scanned": len(manifest.fragments),
                "k": k,
                "returned": len(results),
            },
        )
        return results
