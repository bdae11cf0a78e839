"""
Lambda handler that indexes one described vector.

Opens the requested collection (creating it on first use), appends the
vector with its location and description, and reports the outcome.

Environment variables:
- VECTORLAKE_URI or VECTORLAKE_BUCKET / LANCEDB_BUCKET: storage root
- VECTORLAKE_VECTOR_DIMENSION: vector width for new collections (1024)
- LOG_LEVEL: Logging level

Dependencies: vectorlake.application, vectorlake.handlers.models
System role: Lambda entry point for vector ingestion
"""

import asyncio
import logging
from typing import Any, Dict

from dotenv import load_dotenv
from pydantic import ValidationError

from vectorlake.application.vector_service import ingest
from vectorlake.configs import get_settings
from vectorlake.core.exceptions import VectorLakeError
from vectorlake.handlers.handler_utils import (
    RequestParseError,
    open_connection,
    parse_payload,
    request_id,
    response,
    status_for,
)
from vectorlake.handlers.models import ErrorResponse, IngestRequest, IngestResponse
from vectorlake.observability import (
    configure_logging,
    error_fields,
    log_exception_with_context,
    log_with_context,
)

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)


async def _index(request: IngestRequest, req_id: str) -> IngestResponse:
    settings = get_settings().storage
    connection = await open_connection(settings)
    result = await ingest(
        connection,
        request.collection,
        request.vector,
        request.location,
        request.description,
        dimension=settings.vector_dimension,
    )
    return IngestResponse(
        req_id=req_id,
        status=result.status,
        message=result.message,
        version=result.version,
    )


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for vector ingestion.

    Args:
        event: Ingest payload, directly or as a JSON ``body``
        context: Lambda context object

    Returns:
        Dict with statusCode and JSON body
    """
    configure_logging(get_settings().log_level)
    req_id = request_id(context)
    logger.info("%s:handler - Invoked", __name__, extra={"req_id": req_id})

    try:
        request = IngestRequest.model_validate(parse_payload(event))
    except (RequestParseError, ValidationError) as e:
        logger.warning("%s:handler - %s: %s", __name__, type(e).__name__, e)
        return response(
            400,
            ErrorResponse(
                req_id=req_id,
                error={"kind": "invalid_request", "message": str(e), "details": {}},
            ),
        )

    log_with_context(
        logger,
        logging.INFO,
        f"{__name__}:handler - Indexing vector",
        collection=request.collection,
        vector=request.vector,
        location=request.location,
    )

    try:
        body = asyncio.run(_index(request, req_id))
    except VectorLakeError as e:
        status_code = status_for(e)
        log = logger.error if status_code >= 500 else logger.warning
        log(
            "%s:handler - %s: %s",
            __name__,
            type(e).__name__,
            e,
            extra={"req_id": req_id, **error_fields(e)},
        )
        return response(status_code, ErrorResponse(req_id=req_id, error=e.to_dict()))
    except Exception as e:
        log_exception_with_context(
            logger, f"{__name__}:handler - Unexpected failure", e, req_id=req_id
        )
        return response(
            500,
            ErrorResponse(
                req_id=req_id,
                error={"kind": "internal", "message": str(e), "details": {}},
            ),
        )

    logger.info(
        "%s:handler - Added to table",
        __name__,
        extra={"req_id": req_id, "collection": request.collection, "version": body.version},
    )
    return response(200, body)
