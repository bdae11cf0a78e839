"""Tests for the local filesystem object store."""

import asyncio

import pytest

from vectorlake.boundary.storage.local_store import LocalObjectStore
from vectorlake.core.exceptions import ObjectExistsError, ObjectNotFoundError, StorageReadError


class TestLocalObjectStore:
    """Test suite for LocalObjectStore."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, local_store: LocalObjectStore) -> None:
        await local_store.put("t/fragments/a.parquet", b"data")

        assert await local_store.get("t/fragments/a.parquet") == b"data"
        assert (local_store.root / "t" / "fragments" / "a.parquet").read_bytes() == b"data"

    @pytest.mark.asyncio
    async def test_put_overwrites(self, local_store) -> None:
        await local_store.put("k", b"one")
        await local_store.put("k", b"two")

        assert await local_store.get("k") == b"two"

    @pytest.mark.asyncio
    async def test_get_missing_key(self, local_store) -> None:
        with pytest.raises(ObjectNotFoundError):
            await local_store.get("nope")

    @pytest.mark.asyncio
    async def test_put_if_absent_refuses_existing_key(self, local_store) -> None:
        await local_store.put_if_absent("t/manifest/0.json", b"first")

        with pytest.raises(ObjectExistsError):
            await local_store.put_if_absent("t/manifest/0.json", b"second")

        assert await local_store.get("t/manifest/0.json") == b"first"

    @pytest.mark.asyncio
    async def test_concurrent_put_if_absent_has_one_winner(self, local_store) -> None:
        """Test racing conditional writes to one key admit exactly one writer."""
        # Arrange
        payloads = [f"writer-{i}".encode() for i in range(8)]

        # Act
        results = await asyncio.gather(
            *(local_store.put_if_absent("t/manifest/1.json", p) for p in payloads),
            return_exceptions=True,
        )

        # Assert
        winners = [p for p, r in zip(payloads, results) if r is None]
        assert len(winners) == 1
        assert all(isinstance(r, ObjectExistsError) for r in results if r is not None)
        assert await local_store.get("t/manifest/1.json") == winners[0]

    @pytest.mark.asyncio
    async def test_list_filters_by_prefix_and_hides_temp_files(self, local_store) -> None:
        await local_store.put("t/manifest/1.json", b"1")
        await local_store.put("t/manifest/0.json", b"0")
        await local_store.put("t/fragments/a.parquet", b"a")
        await local_store.put("u/manifest/0.json", b"0")
        (local_store.root / "t" / "manifest" / ".tmp-abc").write_bytes(b"partial")

        infos = await local_store.list("t/manifest/")

        assert [i.key for i in infos] == ["t/manifest/0.json", "t/manifest/1.json"]
        assert infos[0].size == 1

    @pytest.mark.asyncio
    async def test_list_missing_prefix_is_empty(self, local_store) -> None:
        assert await local_store.list("missing/") == []

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, local_store) -> None:
        await local_store.put("k", b"v")

        await local_store.delete("k")
        await local_store.delete("k")

        assert not await local_store.exists("k")

    @pytest.mark.asyncio
    async def test_key_outside_root_is_rejected(self, local_store) -> None:
        with pytest.raises(StorageReadError):
            await local_store.get("../escape")
