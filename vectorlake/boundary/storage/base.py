"""
Object store interface.

Minimal async key/value blob interface the engine needs from durable
storage: whole-object put, conditional put-if-absent, get, prefix listing and
delete. Keys are relative to the store's root prefix and use "/" separators.

Dependencies: None
System role: Storage abstraction consumed by fragment and manifest layers
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ObjectInfo:
    """Listing entry for a stored object."""

    key: str
    size: int
    last_modified: datetime


class ObjectStore(ABC):
    """
    Async blob store.

    Implementations must guarantee that ``put`` and ``put_if_absent`` are
    whole-object writes: a reader never observes a partially written object.
    ``put_if_absent`` must be atomic with respect to concurrent writers of the
    same key, across processes.
    """

    uri: str

    @abstractmethod
    async def check_access(self) -> None:
        """Verify the root is reachable. Raises StorageConnectionError."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Read an object. Raises ObjectNotFoundError or StorageReadError."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Write (or overwrite) an object. Raises StorageWriteError."""

    @abstractmethod
    async def put_if_absent(self, key: str, data: bytes) -> None:
        """Write an object only if the key is free. Raises ObjectExistsError."""

    @abstractmethod
    async def list(self, prefix: str) -> list[ObjectInfo]:
        """List objects whose key starts with prefix. Raises StorageReadError."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object; missing keys are ignored. Raises StorageWriteError."""

    async def exists(self, key: str) -> bool:
        return any(info.key == key for info in await self.list(key))


def join_key(*parts: str) -> str:
    """Join key segments with single slashes."""
    return "/".join(part.strip("/") for part in parts if part and part.strip("/"))
