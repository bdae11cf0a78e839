"""
In-process object store.

Keeps blobs in module-level dicts, one per ``memory://<name>`` namespace.
Meant for tests and local development only: a namespace lives until the
process exits or ``MemoryObjectStore.reset`` drops it, and nothing evicts
namespaces that are no longer used.

Every operation yields to the event loop once so concurrent tasks interleave
the way they would against remote storage.

Dependencies: asyncio
System role: Development and test storage backend
"""

import asyncio
from datetime import datetime, timezone

from vectorlake.boundary.storage.base import ObjectInfo, ObjectStore
from vectorlake.core.exceptions import ObjectExistsError, ObjectNotFoundError

_NAMESPACES: dict[str, dict[str, tuple[bytes, datetime]]] = {}


class MemoryObjectStore(ObjectStore):
    """
    Dict-backed object store. Stores with the same name share contents.

    Creating a store registers its namespace process-wide; callers that open
    many short-lived namespaces must ``reset`` them.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self.uri = f"memory://{name}"
        self._objects = _NAMESPACES.setdefault(name, {})

    @classmethod
    def reset(cls, name: str | None = None) -> None:
        """Drop stored objects for one namespace, or all of them."""
        if name is None:
            _NAMESPACES.clear()
        else:
            _NAMESPACES.pop(name, None)

    @classmethod
    def namespaces(cls) -> list[str]:
        """Names of the namespaces currently held in memory."""
        return sorted(_NAMESPACES)

    async def check_access(self) -> None:
        await asyncio.sleep(0)

    async def get(self, key: str) -> bytes:
        await asyncio.sleep(0)
        try:
            return self._objects[key][0]
        except KeyError:
            raise ObjectNotFoundError(f"Object not found: {key}", key=key) from None

    async def put(self, key: str, data: bytes) -> None:
        await asyncio.sleep(0)
        self._objects[key] = (bytes(data), datetime.now(timezone.utc))

    async def put_if_absent(self, key: str, data: bytes) -> None:
        await asyncio.sleep(0)
        # check and insert run without awaiting in between
        if key in self._objects:
            raise ObjectExistsError(f"Object already exists: {key}", key=key)
        self._objects[key] = (bytes(data), datetime.now(timezone.utc))

    async def list(self, prefix: str) -> list[ObjectInfo]:
        await asyncio.sleep(0)
        return [
            ObjectInfo(key=key, size=len(data), last_modified=modified)
            for key, (data, modified) in sorted(self._objects.items())
            if key.startswith(prefix)
        ]

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        self._objects.pop(key, None)
