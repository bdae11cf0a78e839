"""
Table handle.

Per-table facade rebuilt on every open: validates and appends row batches
(fragment write, then manifest publish retried on version conflicts) and
routes queries to the query engine against one manifest snapshot. Owns
neither fragments nor manifests.

Dependencies: tenacity
System role: Coordination of writes and reads for one table
"""

import logging
from typing import TYPE_CHECKING, Any, Sequence

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from vectorlake.core.exceptions import (
    EmptyBatchError,
    InvalidArgumentError,
    TableAlreadyExistsError,
    TableNotFoundError,
    VersionConflictError,
    WriteContentionError,
)
from vectorlake.core.fragment_writer import FragmentReader, FragmentWriter
from vectorlake.core.manifest import Manifest, ManifestManager, TableLocation
from vectorlake.core.query_engine import DistanceMetric, QueryEngine, ScoredRow
from vectorlake.core.schema import Schema, validate_batch

if TYPE_CHECKING:
    from vectorlake.core.connection import Connection

logger = logging.getLogger(__name__)


class Table:
    """
    Handle on one table.

    Build with ``open``, ``create_empty`` or ``open_or_create``. A handle
    remembers the manifest it was opened with only for its schema; every
    ``add`` and ``query`` re-reads the current manifest. A handle returned by
    ``checkout`` is pinned to one version and is read-only.
    """

    def __init__(
        self,
        connection: "Connection",
        location: TableLocation,
        manifest: Manifest,
        pinned: bool = False,
    ) -> None:
        self._connection = connection
        self._location = location
        self._manifest = manifest
        self._pinned = pinned
        self._manifests = ManifestManager()
        self._writer = FragmentWriter(location.store, location.prefix)
        self._engine = QueryEngine(FragmentReader(location.store, location.prefix))

    def __repr__(self) -> str:
        return f"Table(name={self.name!r}, uri={self._location.store.uri!r})"

    @property
    def name(self) -> str:
        return self._location.name

    @property
    def schema(self) -> Schema:
        return self._manifest.table_schema

    @property
    def location(self) -> TableLocation:
        return self._location

    @classmethod
    async def open(cls, connection: "Connection", name: str) -> "Table":
        """
        Open an existing table.

        Raises:
            TableNotFoundError: If the table has no manifest
        """
        location = connection.table(name)
        manifest = await ManifestManager().read_current(location)
        logger.info(
            "%s:open - Opened table",
            __name__,
            extra={"table": name, "version": manifest.version},
        )
        return cls(connection, location, manifest)

    @classmethod
    async def create_empty(cls, connection: "Connection", name: str, schema: Schema) -> "Table":
        """
        Create a table at version 0 with no fragments.

        Raises:
            TableAlreadyExistsError: If the table already exists
        """
        location = connection.table(name)
        manifest = await ManifestManager().create_initial(location, schema)
        return cls(connection, location, manifest)

    @classmethod
    async def open_or_create(cls, connection: "Connection", name: str, schema: Schema) -> "Table":
        """
        Open the table, creating it with schema if it does not exist.

        Only TableNotFoundError triggers creation; other failures propagate.
        Losing a creation race to another caller falls back to opening.
        """
        try:
            return await cls.open(connection, name)
        except TableNotFoundError:
            logger.info("%s:open_or_create - Table not found, creating", __name__, extra={"table": name})

        try:
            return await cls.create_empty(connection, name, schema)
        except TableAlreadyExistsError:
            logger.info("%s:open_or_create - Lost creation race, reopening", __name__, extra={"table": name})
            return await cls.open(connection, name)

    async def add(self, rows: Sequence[dict[str, Any]]) -> Manifest:
        """
        Append rows as one new fragment.

        Args:
            rows: Non-empty batch of rows matching the table schema

        Returns:
            Manifest: The version that first contains the new fragment

        Raises:
            EmptyBatchError: If rows is empty
            SchemaMismatchError: If any row does not match the schema
            StorageWriteError: If the fragment cannot be written
            WriteContentionError: If every publish attempt hit a version conflict
            InvalidArgumentError: If the handle is pinned to an old version
        """
        if self._pinned:
            raise InvalidArgumentError(
                f"Table {self.name} is checked out at version {self._manifest.version} and is read-only"
            )
        rows = list(rows)
        if not rows:
            raise EmptyBatchError("add() called with zero rows", details={"table": self.name})

        validate_batch(self.schema, rows)
        ref = await self._writer.write(self.schema, rows)

        settings = self._connection.settings
        attempts = settings.max_commit_retries
        try:
            async for attempt in AsyncRetrying(
                retry=retry_if_exception_type(VersionConflictError),
                stop=stop_after_attempt(attempts),
                wait=wait_exponential_jitter(
                    initial=settings.commit_retry_initial_wait,
                    max=settings.commit_retry_max_wait,
                    jitter=settings.commit_retry_initial_wait,
                ),
                before_sleep=lambda retry_state: logger.warning(
                    f"{__name__}:add - Version conflict, retry "
                    f"{retry_state.attempt_number}/{attempts}"
                ),
            ):
                with attempt:
                    current = await self._manifests.read_current(self._location)
                    manifest = await self._manifests.publish(
                        self._location, current.version, self.schema, [ref]
                    )
        except RetryError as e:
            logger.error(
                "%s:add - Commit retries exhausted",
                __name__,
                extra={"table": self.name, "fragment_id": ref.id, "attempts": attempts},
            )
            raise WriteContentionError(self.name, attempts) from e.last_attempt.exception()

        self._manifest = manifest
        logger.info(
            "%s:add - Added rows",
            __name__,
            extra={"table": self.name, "version": manifest.version, "num_rows": len(rows)},
        )
        return manifest

    async def query(
        self,
        vector: Sequence[float],
        k: int,
        metric: DistanceMetric | str | None = None,
    ) -> list[ScoredRow]:
        """
        Top-k nearest rows to vector, ascending by distance.

        Runs against the manifest current at call time (or the pinned one).
        """
        manifest = await self._snapshot()
        return await self._engine.search(
            manifest,
            vector,
            k,
            metric or self._connection.settings.distance_metric,
        )

    async def _snapshot(self) -> Manifest:
        if self._pinned:
            return self._manifest
        return await self._manifests.read_current(self._location)

    async def version(self) -> int:
        """Current version number (pinned version for checked-out handles)."""
        return (await self._snapshot()).version

    async def count_rows(self) -> int:
        return (await self._snapshot()).num_rows

    async def list_versions(self) -> list[int]:
        return await self._manifests.list_versions(self._location)

    async def checkout(self, version: int) -> "Table":
        """
        Read-only handle on an earlier version.

        Raises:
            TableNotFoundError: If that version does not exist
        """
        manifest = await self._manifests.read_version(self._location, version)
        return Table(self._connection, self._location, manifest, pinned=True)
