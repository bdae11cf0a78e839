"""
Shared test fixtures and configuration for entire test suite.

Provides: isolated in-memory and local stores, connections with zero commit
backoff, a small 4-dimensional schema and row builders.
Dependencies: pytest, pytest-asyncio
System role: Test infrastructure and fixture management
"""

import uuid

import pytest

from vectorlake.boundary.storage.local_store import LocalObjectStore
from vectorlake.boundary.storage.memory_store import MemoryObjectStore
from vectorlake.configs.storage import StorageSettings
from vectorlake.core.connection import Connection
from vectorlake.core.schema import Column, ColumnType, Schema, define

DIMENSION = 4


def _make_row(vector, description="d", location="loc") -> dict:
    return {"vector": list(vector), "location": location, "description": description}


@pytest.fixture
def make_row():
    """Provide a builder for rows of the test schema."""
    return _make_row


@pytest.fixture
def storage_settings() -> StorageSettings:
    """Settings with no backoff between publish attempts."""
    return StorageSettings(
        uri=None,
        bucket=None,
        commit_retry_initial_wait=0,
        commit_retry_max_wait=0,
        max_commit_retries=10,
        distance_metric="l2",
    )


@pytest.fixture
def memory_store():
    """
    Create an isolated in-memory object store.

    Yields:
        MemoryObjectStore: Store with a unique namespace, dropped afterwards
    """
    name = f"test-{uuid.uuid4().hex}"
    store = MemoryObjectStore(name)
    yield store
    MemoryObjectStore.reset(name)


@pytest.fixture
def local_store(tmp_path) -> LocalObjectStore:
    """Create a local object store rooted in a temp directory."""
    return LocalObjectStore(tmp_path / "store")


@pytest.fixture
def connection(memory_store, storage_settings) -> Connection:
    """Connection over the isolated in-memory store."""
    return Connection(memory_store, storage_settings)


@pytest.fixture
def schema() -> Schema:
    """Vector[4] + location + description schema."""
    return define(
        [
            Column.vector("vector", DIMENSION, nullable_elements=True),
            Column.scalar("location", ColumnType.STRING),
            Column.scalar("description", ColumnType.STRING),
        ]
    )
