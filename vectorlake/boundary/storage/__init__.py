"""
Object storage backends: S3 (production), local filesystem and in-memory.
"""

from vectorlake.boundary.storage.base import ObjectInfo, ObjectStore
from vectorlake.boundary.storage.local_store import LocalObjectStore
from vectorlake.boundary.storage.memory_store import MemoryObjectStore
from vectorlake.boundary.storage.s3_store import S3ObjectStore

__all__ = [
    "ObjectInfo",
    "ObjectStore",
    "LocalObjectStore",
    "MemoryObjectStore",
    "S3ObjectStore",
]
