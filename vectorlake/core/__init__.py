"""
Core storage engine module.

Contains the schema registry, fragment writer, manifest manager, table
handle, query engine and connection catalog. Only the exception hierarchy
is re-exported here; import engine classes from their modules.
"""

from vectorlake.core.exceptions import (
    DimensionMismatchError,
    EmptyBatchError,
    InvalidArgumentError,
    SchemaMismatchError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
    TableAlreadyExistsError,
    TableNotFoundError,
    VectorLakeError,
    VersionConflictError,
    WriteContentionError,
)

__all__ = [
    "VectorLakeError",
    "SchemaMismatchError",
    "EmptyBatchError",
    "StorageReadError",
    "StorageWriteError",
    "VersionConflictError",
    "WriteContentionError",
    "TableNotFoundError",
    "TableAlreadyExistsError",
    "DimensionMismatchError",
    "StorageConnectionError",
    "InvalidArgumentError",
]
