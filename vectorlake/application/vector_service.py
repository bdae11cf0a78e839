"""
Vector collection service.

The two operations the serverless handlers expose: ingest one described
vector into a collection (creating the collection on first use) and search a
collection for the nearest described vectors. Collections share one layout:
a fixed-width vector plus ``location`` and ``description`` strings.

Dependencies: vectorlake.core
System role: Application layer between Lambda handlers and the storage engine
"""

import logging
from dataclasses import dataclass
from typing import Sequence

from vectorlake.core.connection import Connection
from vectorlake.core.schema import Schema, vector_schema

logger = logging.getLogger(__name__)

VECTOR_COLUMN = "vector"
LOCATION_COLUMN = "location"
DESCRIPTION_COLUMN = "description"


def collection_schema(dimension: int) -> Schema:
    """Schema of every collection: vector[dimension], location, description."""
    return vector_schema(dimension, LOCATION_COLUMN, DESCRIPTION_COLUMN, vector_name=VECTOR_COLUMN)


@dataclass(frozen=True)
class IngestResult:
    """Outcome of a successful ingest."""

    status: str
    message: str
    version: int


@dataclass(frozen=True)
class SearchHit:
    """Scalar payload of one search result."""

    location: str
    description: str
    distance: float


async def ingest(
    connection: Connection,
    collection: str,
    vector: Sequence[float | None],
    location: str,
    description: str,
    dimension: int | None = None,
) -> IngestResult:
    """
    Append one described vector to a collection, creating it if missing.

    Args:
        connection: Open connection
        collection: Collection (table) name
        vector: Vector of the collection width; elements may be None
        location: Location of the described object (e.g. an S3 image key)
        description: Text description
        dimension: Vector width used when creating the collection
            (default: connection settings)

    Returns:
        IngestResult: Status and the committed table version

    Raises:
        VectorLakeError: Any engine failure (schema, storage, contention)
    """
    schema = collection_schema(dimension or connection.settings.vector_dimension)
    table = await connection.open_or_create_table(collection, schema)
    manifest = await table.add(
        [
            {
                VECTOR_COLUMN: list(vector),
                LOCATION_COLUMN: location,
                DESCRIPTION_COLUMN: description,
            }
        ]
    )
    logger.info(
        "%s:ingest - Added to table",
        __name__,
        extra={"collection": collection, "version": manifest.version},
    )
    return IngestResult(
        status="success",
        message=f"Collection {collection}.",
        version=manifest.version,
    )


async def search(
    connection: Connection,
    collection: str,
    vector: Sequence[float],
    k: int,
) -> list[SearchHit]:
    """
    Nearest described vectors in a collection, closest first.

    Raises:
        TableNotFoundError: If the collection does not exist
        DimensionMismatchError: If the vector width differs from the collection's
    """
    table = await connection.open_table(collection)
    rows = await table.query(vector, k)
    hits = [
        SearchHit(
            location=row.values[LOCATION_COLUMN],
            description=row.values[DESCRIPTION_COLUMN],
            distance=row.distance,
        )
        for row in rows
    ]
    logger.info(
        "%s:search - Found %d results",
        __name__,
        len(hits),
        extra={"collection": collection, "k": k},
    )
    return hits
