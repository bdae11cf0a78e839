"""
Exception hierarchy for the vectorlake storage engine.

Every failure surfaced by the engine is a VectorLakeError carrying a stable
``kind`` string, a human-readable message and a details dict. Handlers turn
these into structured responses via ``to_dict()``.

Dependencies: None (pure domain layer)
System role: Centralized error taxonomy across storage, table and query layers
"""

from typing import Any


class VectorLakeError(Exception):
    """Base exception for all vectorlake errors."""

    kind: str = "error"
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def cause_chain(self) -> list[str]:
        """Return messages of chained causes, outermost first."""
        chain = []
        cause = self.__cause__ or self.__context__
        while cause is not None:
            chain.append(f"{type(cause).__name__}: {cause}")
            cause = cause.__cause__ or cause.__context__
        return chain

    def to_dict(self) -> dict[str, Any]:
        """Serialize error for structured responses."""
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
            "causes": self.cause_chain(),
        }


class InvalidArgumentError(VectorLakeError):
    """Raised when a caller passes an invalid argument (k, metric, table name)."""

    kind = "invalid_argument"

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if argument:
            details["argument"] = argument
        super().__init__(message, details)


class SchemaMismatchError(VectorLakeError):
    """Raised when a schema definition or a row violates the declared layout."""

    kind = "schema_mismatch"

    def __init__(
        self,
        message: str,
        column: str | None = None,
        row_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize schema mismatch error.

        Args:
            message: Error message
            column: Column that failed validation
            row_index: Position of the offending row within its batch
            details: Additional context
        """
        details = details or {}
        if column:
            details["column"] = column
        if row_index is not None:
            details["row_index"] = row_index
        super().__init__(message, details)


class EmptyBatchError(VectorLakeError):
    """Raised when a write is attempted with zero rows."""

    kind = "empty_batch"


class DimensionMismatchError(VectorLakeError):
    """Raised when a query vector does not match the table's vector dimension."""

    kind = "dimension_mismatch"

    def __init__(self, expected: int, actual: int, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details.update({"expected": expected, "actual": actual})
        super().__init__(
            f"Query vector has {actual} elements, table dimension is {expected}", details
        )


class StorageError(VectorLakeError):
    """Base class for object storage failures."""

    kind = "storage"
    retryable = True

    def __init__(
        self,
        message: str,
        key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if key:
            details["key"] = key
        super().__init__(message, details)


class StorageReadError(StorageError):
    """Raised when reading from object storage fails."""

    kind = "storage_read"


class StorageWriteError(StorageError):
    """Raised when writing to object storage fails."""

    kind = "storage_write"


class ObjectNotFoundError(StorageReadError):
    """Raised by object stores when a key does not exist."""

    kind = "object_not_found"
    retryable = False


class ObjectExistsError(StorageError):
    """Raised by object stores when a conditional put finds the key present."""

    kind = "object_exists"
    retryable = False


class StorageConnectionError(VectorLakeError):
    """Raised when the storage root cannot be addressed."""

    kind = "connection"

    def __init__(self, message: str, uri: str | None = None, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        if uri:
            details["uri"] = uri
        super().__init__(message, details)


class TableNotFoundError(VectorLakeError):
    """Raised when no manifest exists for a table (or requested version)."""

    kind = "table_not_found"

    def __init__(
        self,
        table: str,
        version: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["table"] = table
        message = f"Table not found: {table}"
        if version is not None:
            details["version"] = version
            message = f"Table version not found: {table}@{version}"
        super().__init__(message, details)


class TableAlreadyExistsError(VectorLakeError):
    """Raised when creating a table whose manifest already exists."""

    kind = "table_already_exists"

    def __init__(self, table: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["table"] = table
        super().__init__(f"Table already exists: {table}", details)


class VersionConflictError(VectorLakeError):
    """Raised when another writer already published the target manifest version."""

    kind = "version_conflict"
    retryable = True

    def __init__(self, table: str, base_version: int, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details.update({"table": table, "base_version": base_version})
        super().__init__(
            f"Version {base_version + 1} of {table} was published concurrently", details
        )


class WriteContentionError(VectorLakeError):
    """Raised when the commit retry budget is exhausted."""

    kind = "write_contention"
    retryable = True

    def __init__(self, table: str, attempts: int, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details.update({"table": table, "attempts": attempts})
        super().__init__(
            f"Gave up committing to {table} after {attempts} conflicting attempts", details
        )
