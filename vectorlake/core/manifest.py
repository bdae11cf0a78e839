"""
Manifest manager.

A manifest is the immutable description of one table version: schema plus
the ordered list of live fragments. Version N lives at
``<table>/manifest/<N zero-padded>.manifest.json`` and is created with a
conditional put-if-absent, so at most one writer can publish each version.
Publishing N+1 requires reading N first, which rules out gaps and reuse.

Dependencies: pydantic
System role: Versioned, optimistic-concurrency table metadata
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from vectorlake.boundary.storage.base import ObjectStore, join_key
from vectorlake.core.exceptions import (
    ObjectExistsError,
    ObjectNotFoundError,
    SchemaMismatchError,
    StorageReadError,
    TableAlreadyExistsError,
    TableNotFoundError,
    VersionConflictError,
)
from vectorlake.core.fragment_writer import FragmentRef
from vectorlake.core.schema import Schema

logger = logging.getLogger(__name__)

MANIFEST_DIR = "manifest"
MANIFEST_SUFFIX = ".manifest.json"
_VERSION_WIDTH = 20


class FragmentEntry(FragmentRef):
    """Fragment as recorded in a manifest, with its table-scoped sequence id."""

    fragment_id: int = Field(description="Monotonic per-table fragment number", ge=0)


class Manifest(BaseModel):
    """One published table version."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    version: int = Field(ge=0)
    table_schema: Schema = Field(alias="schema")
    fragments: tuple[FragmentEntry, ...] = ()
    next_fragment_id: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def num_rows(self) -> int:
        return sum(fragment.num_rows for fragment in self.fragments)

    def to_json(self) -> bytes:
        return self.model_dump_json(by_alias=True, indent=2).encode("utf-8")


@dataclass(frozen=True)
class TableLocation:
    """Where a table lives inside a store. Pure value, no I/O."""

    name: str
    store: ObjectStore
    prefix: str

    @property
    def manifest_prefix(self) -> str:
        return join_key(self.prefix, MANIFEST_DIR) + "/"

    def manifest_key(self, version: int) -> str:
        return join_key(self.prefix, MANIFEST_DIR, f"{version:0{_VERSION_WIDTH}d}{MANIFEST_SUFFIX}")


def _parse_version(key: str) -> int | None:
    name = key.rsplit("/", 1)[-1]
    if not name.endswith(MANIFEST_SUFFIX):
        return None
    stem = name[: -len(MANIFEST_SUFFIX)]
    return int(stem) if stem.isdigit() else None


class ManifestManager:
    """Reads and publishes manifests. Holds no cached state between calls."""

    async def list_versions(self, location: TableLocation) -> list[int]:
        """Return every published version, ascending."""
        infos = await location.store.list(location.manifest_prefix)
        versions = (_parse_version(info.key) for info in infos)
        return sorted(v for v in versions if v is not None)

    async def read_version(self, location: TableLocation, version: int) -> Manifest:
        """
        Read one specific version.

        Raises:
            TableNotFoundError: If that version does not exist
            StorageReadError: If the manifest cannot be read or parsed
        """
        key = location.manifest_key(version)
        try:
            data = await location.store.get(key)
        except ObjectNotFoundError:
            raise TableNotFoundError(location.name, version=version) from None
        try:
            manifest = Manifest.model_validate_json(data)
        except ValidationError as e:
            raise StorageReadError(f"Corrupt manifest {key}: {e}", key=key) from e
        if manifest.version != version:
            raise StorageReadError(
                f"Manifest {key} declares version {manifest.version}", key=key
            )
        return manifest

    async def read_current(self, location: TableLocation) -> Manifest:
        """
        Read the highest published version.

        Raises:
            TableNotFoundError: If the table has no manifest
        """
        versions = await self.list_versions(location)
        if not versions:
            raise TableNotFoundError(location.name)
        return await self.read_version(location, versions[-1])

    async def create_initial(self, location: TableLocation, schema: Schema) -> Manifest:
        """
        Publish version 0 with no fragments.

        Raises:
            TableAlreadyExistsError: If any manifest already exists
        """
        if await self.list_versions(location):
            raise TableAlreadyExistsError(location.name)

        manifest = Manifest(version=0, schema=schema)
        try:
            await location.store.put_if_absent(location.manifest_key(0), manifest.to_json())
        except ObjectExistsError:
            raise TableAlreadyExistsError(location.name) from None

        logger.info("%s:create_initial - Created table", __name__, extra={"table": location.name})
        return manifest

    async def publish(
        self,
        location: TableLocation,
        base_version: int,
        schema: Schema,
        new_refs: list[FragmentRef],
    ) -> Manifest:
        """
        Publish ``base_version + 1`` = base fragments + new_refs.

        Refs already present in the base manifest are skipped; if nothing new
        remains the base manifest is returned unchanged.

        Args:
            location: Table location
            base_version: Version the caller built on
            schema: Schema the fragments were written with
            new_refs: Fragments to append, in order

        Returns:
            Manifest: The published manifest

        Raises:
            VersionConflictError: If base_version + 1 was already published
            SchemaMismatchError: If schema differs from the base manifest's
            TableNotFoundError: If base_version does not exist
        """
        base = await self.read_version(location, base_version)
        if base.table_schema != schema:
            raise SchemaMismatchError(
                "Fragments were written with a schema different from the table's",
                details={"table": location.name, "base_version": base_version},
            )

        known = {fragment.id for fragment in base.fragments}
        entries = list(base.fragments)
        next_id = base.next_fragment_id
        for ref in new_refs:
            if ref.id in known:
                continue
            known.add(ref.id)
            entries.append(
                FragmentEntry(
                    id=ref.id,
                    path=ref.path,
                    num_rows=ref.num_rows,
                    size_bytes=ref.size_bytes,
                    fragment_id=next_id,
                )
            )
            next_id += 1

        if len(entries) == len(base.fragments):
            logger.info(
                "%s:publish - Fragments already committed, nothing to publish",
                __name__,
                extra={"table": location.name, "version": base_version},
            )
            return base

        manifest = Manifest(
            version=base_version + 1,
            schema=schema,
            fragments=tuple(entries),
            next_fragment_id=next_id,
        )
        try:
            await location.store.put_if_absent(
                location.manifest_key(manifest.version), manifest.to_json()
            )
        except ObjectExistsError:
            logger.info(
                "%s:publish - Version conflict",
                __name__,
                extra={"table": location.name, "base_version": base_version},
            )
            raise VersionConflictError(location.name, base_version) from None

        logger.info(
            "%s:publish - Published version",
            __name__,
            extra={
                "table": location.name,
                "version": manifest.version,
                "fragment_count": len(manifest.fragments),
            },
        )
        return manifest
