"""Fixtures for Lambda handler tests: environment-configured memory storage."""

import uuid
from types import SimpleNamespace

import pytest

from vectorlake.boundary.storage.memory_store import MemoryObjectStore
from vectorlake.configs import get_settings


@pytest.fixture
def lambda_env(monkeypatch):
    """
    Point the handlers at a fresh memory store with 4-wide vectors.

    Yields:
        str: Memory store namespace
    """
    name = f"handler-{uuid.uuid4().hex}"
    for var in ("VECTORLAKE_BUCKET", "LANCEDB_BUCKET"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("VECTORLAKE_URI", f"memory://{name}")
    monkeypatch.setenv("VECTORLAKE_VECTOR_DIMENSION", "4")
    monkeypatch.setenv("VECTORLAKE_COMMIT_RETRY_INITIAL_WAIT", "0")
    monkeypatch.setenv("VECTORLAKE_COMMIT_RETRY_MAX_WAIT", "0")
    get_settings.cache_clear()
    yield name
    get_settings.cache_clear()
    MemoryObjectStore.reset(name)


@pytest.fixture
def lambda_context():
    """Create mock Lambda context."""
    return SimpleNamespace(aws_request_id="req-123", function_name="vectorlake-test")
