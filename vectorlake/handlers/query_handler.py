"""
Lambda handler that searches a collection for the nearest vectors.

Returns the location and description of the k closest entries, closest
first. ``top1``/``top2`` repeat the first two descriptions for callers built
against the original two-result response.

Environment variables:
- VECTORLAKE_URI or VECTORLAKE_BUCKET / LANCEDB_BUCKET: storage root
- VECTORLAKE_DEFAULT_K: results returned when the request omits k (2)
- LOG_LEVEL: Logging level

Dependencies: vectorlake.application, vectorlake.handlers.models
System role: Lambda entry point for similarity search
"""

import asyncio
import logging
from typing import Any, Dict

from dotenv import load_dotenv
from pydantic import ValidationError

from vectorlake.application.vector_service import search
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
from vectorlake.handlers.models import ErrorResponse, SearchRequest, SearchResponse, SearchResult
from vectorlake.observability import configure_logging, error_fields, log_exception_with_context

# Load environment variables from .env if present
load_dotenv()

logger = logging.getLogger(__name__)


async def _query(request: SearchRequest, req_id: str) -> SearchResponse:
    settings = get_settings().storage
    connection = await open_connection(settings)
    hits = await search(
        connection,
        request.collection,
        request.vector,
        request.k or settings.default_k,
    )
    results = [
        SearchResult(location=hit.location, description=hit.description, distance=hit.distance)
        for hit in hits
    ]
    return SearchResponse(
        req_id=req_id,
        results=results,
        top1=results[0].description if len(results) > 0 else None,
        top2=results[1].description if len(results) > 1 else None,
    )


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for similarity search.

    Args:
        event: Search payload, directly or as a JSON ``body``
        context: Lambda context object

    Returns:
        Dict with statusCode and JSON body
    """
    configure_logging(get_settings().log_level)
    req_id = request_id(context)

    try:
        request = SearchRequest.model_validate(parse_payload(event))
    except (RequestParseError, ValidationError) as e:
        logger.warning("%s:handler - %s: %s", __name__, type(e).__name__, e)
        return response(
            400,
            ErrorResponse(
                req_id=req_id,
                error={"kind": "invalid_request", "message": str(e), "details": {}},
            ),
        )

    logger.info(
        "%s:handler - Searching collection",
        __name__,
        extra={"req_id": req_id, "collection": request.collection, "k": request.k},
    )

    try:
        body = asyncio.run(_query(request, req_id))
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

    if body.results:
        logger.info("%s:handler - Top 1 response %s", __name__, body.top1)
    return response(200, body)
