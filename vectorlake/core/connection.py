"""
Connection and table catalog.

A Connection binds a storage root (S3 prefix, local directory or memory
namespace) and maps table names to locations under it. It owns no table
state; every table operation reads what it needs from durable manifests.

Dependencies: vectorlake.boundary.storage
System role: Entry point for opening, creating and listing tables
"""

import logging
import re
from datetime import datetime, timedelta, timezone
from urllib.parse import unquote, urlparse

from botocore.exceptions import BotoCoreError

from vectorlake.boundary.storage.base import ObjectStore, join_key
from vectorlake.boundary.storage.local_store import LocalObjectStore
from vectorlake.boundary.storage.memory_store import MemoryObjectStore
from vectorlake.boundary.storage.s3_store import S3ObjectStore
from vectorlake.configs.storage import StorageSettings
from vectorlake.core.exceptions import (
    InvalidArgumentError,
    StorageConnectionError,
    TableNotFoundError,
)
from vectorlake.core.fragment_writer import FRAGMENTS_DIR
from vectorlake.core.manifest import ManifestManager, TableLocation
from vectorlake.core.schema import Schema
from vectorlake.core.table import Table

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z0-9_\-][A-Za-z0-9_\-.]*$")


def store_from_uri(uri: str, settings: StorageSettings) -> ObjectStore:
    """
    Build the object store addressed by a URI.

    Raises:
        StorageConnectionError: Unsupported scheme or malformed URI
    """
    parsed = urlparse(uri)
    scheme = parsed.scheme.lower()

    if scheme == "s3":
        if not parsed.netloc:
            raise StorageConnectionError("S3 URI must name a bucket", uri=uri)
        try:
            return S3ObjectStore(parsed.netloc, parsed.path.strip("/"), region=settings.region)
        except BotoCoreError as e:
            raise StorageConnectionError(f"Unable to create S3 client: {e}", uri=uri) from e
    if scheme == "memory":
        return MemoryObjectStore(parsed.netloc or parsed.path.strip("/") or "default")
    if scheme == "file":
        return LocalObjectStore(unquote(parsed.path))
    if scheme == "":
        return LocalObjectStore(uri)
    raise StorageConnectionError(f"Unsupported storage scheme: {scheme}", uri=uri)


class Connection:
    """Handle on a storage root. Cheap to create; holds no table state."""

    def __init__(self, store: ObjectStore, settings: StorageSettings | None = None) -> None:
        self._store = store
        self.settings = settings or StorageSettings()

    def __repr__(self) -> str:
        return f"Connection(uri={self.uri!r})"

    @property
    def uri(self) -> str:
        return self._store.uri

    @property
    def store(self) -> ObjectStore:
        return self._store

    def table(self, name: str) -> TableLocation:
        """
        Map a table name to its location. No I/O.

        Raises:
            InvalidArgumentError: If the name is empty or has unsupported characters
        """
        if not isinstance(name, str) or not _TABLE_NAME.match(name):
            raise InvalidArgumentError(
                f"Invalid table name: {name!r} (letters, digits, '_', '-', '.')",
                argument="name",
            )
        return TableLocation(name=name, store=self._store, prefix=name)

    async def table_names(self) -> list[str]:
        """Names of tables with at least one published manifest, sorted."""
        infos = await self._store.list("")
        names = set()
        for info in infos:
            parts = info.key.split("/")
            if len(parts) == 3 and parts[1] == "manifest":
                names.add(parts[0])
        return sorted(names)

    async def open_table(self, name: str) -> Table:
        return await Table.open(self, name)

    async def create_empty_table(self, name: str, schema: Schema) -> Table:
        return await Table.create_empty(self, name, schema)

    async def open_or_create_table(self, name: str, schema: Schema) -> Table:
        return await Table.open_or_create(self, name, schema)

    async def cleanup_orphaned_fragments(
        self,
        name: str,
        older_than: timedelta | None = None,
    ) -> list[str]:
        """
        Delete fragment files that no manifest version references.

        Fragments younger than the grace period are kept: they may belong to
        a writer that has not published yet.

        Args:
            name: Table name
            older_than: Grace period (default: settings.orphan_grace_seconds)

        Returns:
            list[str]: Deleted fragment keys

        Raises:
            TableNotFoundError: If the table does not exist
        """
        location = self.table(name)
        manifests = ManifestManager()
        versions = await manifests.list_versions(location)
        if not versions:
            raise TableNotFoundError(name)

        referenced = set()
        for version in versions:
            manifest = await manifests.read_version(location, version)
            referenced.update(join_key(location.prefix, f.path) for f in manifest.fragments)

        grace = older_than if older_than is not None else timedelta(
            seconds=self.settings.orphan_grace_seconds
        )
        cutoff = datetime.now(timezone.utc) - grace
        deleted = []
        for info in await self._store.list(join_key(location.prefix, FRAGMENTS_DIR) + "/"):
            if info.key in referenced or info.last_modified > cutoff:
                continue
            await self._store.delete(info.key)
            deleted.append(info.key)

        logger.info(
            "%s:cleanup_orphaned_fragments - Deleted orphans",
            __name__,
            extra={"table": name, "deleted_count": len(deleted)},
        )
        return deleted


async def connect(uri: str, settings: StorageSettings | None = None) -> Connection:
    """
    Connect to a storage root and verify it is reachable.

    Args:
        uri: ``s3://bucket/prefix``, ``file:///path``, a bare path, or ``memory://name``
        settings: Engine tunables (default: read from environment)

    Returns:
        Connection: Ready-to-use connection

    Raises:
        StorageConnectionError: If the root cannot be addressed
    """
    if not uri:
        raise StorageConnectionError("Storage URI is empty")
    settings = settings or StorageSettings()
    store = store_from_uri(uri, settings)
    logger.info("%s:connect - Try to connect to %s", __name__, store.uri)
    await store.check_access()
    return Connection(store, settings)
