"""
Shared Lambda handler utilities.

Event payload extraction, storage resolution, and the mapping from engine
errors to status codes and structured error bodies.

Dependencies: pydantic
System role: Plumbing shared by the index and query handlers
"""

import base64
import json
import logging
from typing import Any, Dict

from pydantic import BaseModel

from vectorlake.configs.storage import StorageSettings
from vectorlake.core.connection import Connection, connect
from vectorlake.core.exceptions import (
    DimensionMismatchError,
    EmptyBatchError,
    InvalidArgumentError,
    SchemaMismatchError,
    StorageConnectionError,
    StorageError,
    TableAlreadyExistsError,
    TableNotFoundError,
    VectorLakeError,
    VersionConflictError,
    WriteContentionError,
)

logger = logging.getLogger(__name__)


class RequestParseError(Exception):
    """Raised when the invocation payload cannot be parsed."""


_STATUS_BY_ERROR: list[tuple[type[VectorLakeError], int]] = [
    (SchemaMismatchError, 400),
    (DimensionMismatchError, 400),
    (EmptyBatchError, 400),
    (InvalidArgumentError, 400),
    (TableNotFoundError, 404),
    (TableAlreadyExistsError, 409),
    (WriteContentionError, 503),
    (VersionConflictError, 503),
    (StorageConnectionError, 500),
    (StorageError, 502),
]


def status_for(error: VectorLakeError) -> int:
    """HTTP-style status code for an engine error."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


def parse_payload(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Extract the request payload from a Lambda event.

    Direct invocations pass the payload as the event itself. API Gateway and
    function URLs wrap it as a JSON string under ``body`` (optionally base64).

    Raises:
        RequestParseError: Body is missing, not JSON, or not an object
    """
    if not isinstance(event, dict):
        raise RequestParseError(f"Event must be a JSON object, got {type(event).__name__}")
    if "body" not in event:
        return event

    body = event.get("body")
    if body is None or body == "":
        raise RequestParseError("Empty request body")
    if isinstance(body, dict):
        return body
    try:
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")
        payload = json.loads(body)
    except (ValueError, TypeError) as e:
        logger.error("%s:parse_payload - %s: %s", __name__, type(e).__name__, e)
        raise RequestParseError(f"Invalid JSON in request body: {e}") from e
    if not isinstance(payload, dict):
        raise RequestParseError("Request body must be a JSON object")
    return payload


def request_id(context: Any) -> str:
    return getattr(context, "aws_request_id", None) or "local"


async def open_connection(settings: StorageSettings) -> Connection:
    """
    Connect to the configured storage root.

    Raises:
        StorageConnectionError: No root configured, or root unreachable
    """
    uri = settings.storage_uri
    if not uri:
        raise StorageConnectionError(
            "No storage root configured: set VECTORLAKE_URI or VECTORLAKE_BUCKET (LANCEDB_BUCKET)"
        )
    return await connect(uri, settings)


def response(status_code: int, body: BaseModel) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": body.model_dump_json(),
    }

