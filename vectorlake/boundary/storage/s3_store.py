"""
S3 object store.

Stores table objects under ``s3://{bucket}/{prefix}/``. Blocking boto3 calls
run in a worker thread so concurrent invocations in one process keep making
progress. Conditional creation uses S3 conditional writes
(``IfNoneMatch="*"``), which is what makes manifest publication atomic.

Dependencies: boto3, botocore, tenacity
System role: Production durable storage backend
"""

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from vectorlake.boundary.storage.base import ObjectInfo, ObjectStore, join_key
from vectorlake.core.exceptions import (
    ObjectExistsError,
    ObjectNotFoundError,
    StorageConnectionError,
    StorageReadError,
    StorageWriteError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}
# 412 when the key exists, 409 when a concurrent conditional write is in flight
_CONDITIONAL_CONFLICT_CODES = {"412", "PreconditionFailed", "409", "ConditionalRequestConflict"}
_THROTTLING_CODES = {"SlowDown", "Throttling", "ThrottlingException", "RequestTimeout", "503", "500"}


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", "Unknown"))


def _is_throttling(error: BaseException) -> bool:
    return isinstance(error, ClientError) and _error_code(error) in _THROTTLING_CODES


_retry_throttling = retry(
    retry=retry_if_exception(_is_throttling),
    stop=stop_after_attempt(5),
    wait=wait_exponential_jitter(initial=0.2, max=5, jitter=0.5),
    before_sleep=lambda retry_state: logger.warning(
        f"{__name__}:_retry_throttling - Retry {retry_state.attempt_number}/5 after throttling"
    ),
    reraise=True,
)


class S3ObjectStore(ObjectStore):
    """Object store backed by one S3 bucket and key prefix."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: str | None = None,
        s3_client: "boto3.client | None" = None,
    ) -> None:
        """
        Initialize S3 object store.

        Args:
            bucket: S3 bucket name
            prefix: Key prefix under which all objects live
            region: AWS region for the client (default resolution if None)
            s3_client: Pre-built boto3 S3 client (tests inject a mock)

        Raises:
            ValueError: If bucket is empty
        """
        if not bucket:
            raise ValueError("bucket is required")

        self._bucket = bucket
        self._prefix = prefix.strip("/")
        self._s3_client = s3_client or boto3.client("s3", region_name=region)
        self.uri = f"s3://{bucket}/{self._prefix}" if self._prefix else f"s3://{bucket}"

    def _key(self, key: str) -> str:
        return join_key(self._prefix, key)

    def _relative(self, full_key: str) -> str:
        if self._prefix and full_key.startswith(self._prefix + "/"):
            return full_key[len(self._prefix) + 1 :]
        return full_key

    @_retry_throttling
    def _call(self, method: str, **kwargs: Any) -> Any:
        return getattr(self._s3_client, method)(**kwargs)

    async def check_access(self) -> None:
        try:
            await asyncio.to_thread(self._call, "head_bucket", Bucket=self._bucket)
        except (ClientError, BotoCoreError) as e:
            logger.error("%s:check_access - %s: %s", __name__, type(e).__name__, e)
            raise StorageConnectionError(
                f"Unable to reach S3 bucket {self._bucket}: {e}", uri=self.uri
            ) from e
        logger.info("%s:check_access - Connected to %s", __name__, self.uri)

    async def get(self, key: str) -> bytes:
        full_key = self._key(key)

        def _get() -> bytes:
            response = self._call("get_object", Bucket=self._bucket, Key=full_key)
            return response["Body"].read()

        try:
            return await asyncio.to_thread(_get)
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(f"Object not found: {key}", key=key) from e
            raise StorageReadError(f"Failed to read s3://{self._bucket}/{full_key}: {e}", key=key) from e
        except BotoCoreError as e:
            raise StorageReadError(f"Failed to read s3://{self._bucket}/{full_key}: {e}", key=key) from e

    async def put(self, key: str, data: bytes) -> None:
        full_key = self._key(key)
        try:
            await asyncio.to_thread(
                self._call, "put_object", Bucket=self._bucket, Key=full_key, Body=data
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to write s3://{self._bucket}/{full_key}: {e}", key=key) from e

    async def put_if_absent(self, key: str, data: bytes) -> None:
        full_key = self._key(key)
        try:
            await asyncio.to_thread(
                self._call,
                "put_object",
                Bucket=self._bucket,
                Key=full_key,
                Body=data,
                IfNoneMatch="*",
            )
        except ClientError as e:
            if _error_code(e) in _CONDITIONAL_CONFLICT_CODES:
                raise ObjectExistsError(f"Object already exists: {key}", key=key) from e
            raise StorageWriteError(f"Failed to write s3://{self._bucket}/{full_key}: {e}", key=key) from e
        except BotoCoreError as e:
            raise StorageWriteError(f"Failed to write s3://{self._bucket}/{full_key}: {e}", key=key) from e

    async def list(self, prefix: str) -> list[ObjectInfo]:
        full_prefix = self._key(prefix)
        if full_prefix and (prefix.endswith("/") or not prefix):
            full_prefix += "/"

        def _list() -> list[ObjectInfo]:
            paginator = self._s3_client.get_paginator("list_objects_v2")
            infos = []
            for page in paginator.paginate(Bucket=self._bucket, Prefix=full_prefix):
                for item in page.get("Contents", []):
                    infos.append(
                        ObjectInfo(
                            key=self._relative(item["Key"]),
                            size=item.get("Size", 0),
                            last_modified=item["LastModified"],
                        )
                    )
            return infos

        try:
            return await asyncio.to_thread(_list)
        except (ClientError, BotoCoreError) as e:
            raise StorageReadError(f"Failed to list s3://{self._bucket}/{full_prefix}: {e}", key=prefix) from e

    async def delete(self, key: str) -> None:
        full_key = self._key(key)
        try:
            await asyncio.to_thread(self._call, "delete_object", Bucket=self._bucket, Key=full_key)
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to delete s3://{self._bucket}/{full_key}: {e}", key=key) from e
