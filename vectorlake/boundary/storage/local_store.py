"""
Local filesystem object store.

Maps keys to files under a root directory. Writes go to a temp file in the
target directory first, then are moved into place, so readers never see
partial objects. ``put_if_absent`` hard-links the finished temp file to the
final name, which fails atomically if the name is taken.

Dependencies: pathlib, asyncio
System role: Local development storage backend (``file://`` connections)
"""

import asyncio
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from vectorlake.boundary.storage.base import ObjectInfo, ObjectStore
from vectorlake.core.exceptions import (
    ObjectExistsError,
    ObjectNotFoundError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)

logger = logging.getLogger(__name__)

_TEMP_PREFIX = ".tmp-"


class LocalObjectStore(ObjectStore):
    """Object store rooted at a local directory."""

    def __init__(self, root: str | Path) -> None:
        """
        Initialize local object store.

        Args:
            root: Directory holding all objects (created on check_access)
        """
        self.root = Path(root).expanduser().resolve()
        self.uri = self.root.as_uri()

    def _path(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if self.root not in path.parents:
            raise StorageReadError(f"Key escapes store root: {key}", key=key)
        return path

    async def check_access(self) -> None:
        def _check() -> None:
            self.root.mkdir(parents=True, exist_ok=True)
            if not os.access(self.root, os.W_OK):
                raise PermissionError(f"Directory not writable: {self.root}")

        try:
            await asyncio.to_thread(_check)
        except OSError as e:
            logger.error("%s:check_access - %s: %s", __name__, type(e).__name__, e)
            raise StorageConnectionError(
                f"Cannot use local storage root: {e}", uri=self.uri
            ) from e

    async def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            raise ObjectNotFoundError(f"Object not found: {key}", key=key) from None
        except OSError as e:
            raise StorageReadError(f"Failed to read {key}: {e}", key=key) from e

    def _write_temp(self, path: Path, data: bytes) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(prefix=_TEMP_PREFIX, dir=path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise
        return Path(temp_name)

    async def put(self, key: str, data: bytes) -> None:
        path = self._path(key)

        def _put() -> None:
            temp_path = self._write_temp(path, data)
            os.replace(temp_path, path)

        try:
            await asyncio.to_thread(_put)
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}", key=key) from e

    async def put_if_absent(self, key: str, data: bytes) -> None:
        path = self._path(key)

        def _put_if_absent() -> None:
            temp_path = self._write_temp(path, data)
            try:
                os.link(temp_path, path)
            finally:
                temp_path.unlink(missing_ok=True)

        try:
            await asyncio.to_thread(_put_if_absent)
        except FileExistsError:
            raise ObjectExistsError(f"Object already exists: {key}", key=key) from None
        except OSError as e:
            raise StorageWriteError(f"Failed to write {key}: {e}", key=key) from e

    async def list(self, prefix: str) -> list[ObjectInfo]:
        directory = self.root / prefix.rsplit("/", 1)[0] if "/" in prefix else self.root

        def _list() -> list[ObjectInfo]:
            if not directory.is_dir():
                return []
            infos = []
            for path in directory.rglob("*"):
                if not path.is_file() or path.name.startswith(_TEMP_PREFIX):
                    continue
                key = path.relative_to(self.root).as_posix()
                if not key.startswith(prefix):
                    continue
                stat = path.stat()
                infos.append(
                    ObjectInfo(
                        key=key,
                        size=stat.st_size,
                        last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
                    )
                )
            return sorted(infos, key=lambda info: info.key)

        try:
            return await asyncio.to_thread(_list)
        except OSError as e:
            raise StorageReadError(f"Failed to list {prefix}: {e}", key=prefix) from e

    async def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            raise StorageWriteError(f"Failed to delete {key}: {e}", key=key) from e
