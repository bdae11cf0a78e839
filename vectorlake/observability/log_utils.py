"""
Structured logging helpers for the storage engine and handlers.

Embedding vectors, numpy matrices and Arrow tables all pass through the code
paths that log. These helpers render them as short shape summaries, and turn
engine errors into flat ``extra`` fields that log processors can index.

Dependencies: logging (stdlib), numpy, pyarrow
System role: Logging helper functions
"""

import logging
from typing import Any

import numpy as np
import pyarrow as pa

from vectorlake.core.exceptions import VectorLakeError


def _summarize(value: Any) -> str:
    if isinstance(value, np.ndarray):
        return f"ndarray(shape={value.shape}, dtype={value.dtype})"
    if isinstance(value, pa.Table):
        return f"Table({value.num_rows} rows, columns={value.column_names})"
    if isinstance(value, (pa.Array, pa.ChunkedArray)):
        return f"{type(value).__name__}({len(value)} values, type={value.type})"
    if isinstance(value, (list, tuple)):
        if value and all(isinstance(v, (int, float)) or v is None for v in value):
            return f"vector({len(value)} elements)"
        return f"{type(value).__name__}({len(value)} items)"
    if isinstance(value, dict):
        return f"dict(keys={sorted(map(str, value))})"
    return str(value)


def safe_log_value(value: Any, max_length: int = 500) -> str:
    """
    Render a value for a log record without dumping vectors or tables.

    Args:
        value: Value to render
        max_length: Maximum length before truncating

    Returns:
        str: Short representation; vectors, arrays and tables become summaries
    """
    if value is None:
        return "None"
    try:
        text = value if isinstance(value, str) else _summarize(value)
    except Exception as e:
        return f"<unable to log: {type(e).__name__}>"

    if len(text) > max_length:
        return text[:max_length] + f"... (truncated, {len(text)} total)"
    return text


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    **context,
) -> None:
    """Log a message with every context value passed through ``safe_log_value``."""
    logger.log(level, message, extra={key: safe_log_value(val) for key, val in context.items()})


def error_fields(exc: BaseException) -> dict[str, Any]:
    """
    Flatten an exception into log fields.

    Engine errors contribute their kind, retryable flag and cause chain;
    anything else is reported by type and message only.
    """
    fields: dict[str, Any] = {"error_type": type(exc).__name__, "error_msg": str(exc)}
    if isinstance(exc, VectorLakeError):
        fields["error_kind"] = exc.kind
        fields["retryable"] = exc.retryable
        chain = exc.cause_chain()
        if chain:
            fields["error_causes"] = safe_log_value(" <- ".join(chain))
    return fields


def log_exception_with_context(
    logger: logging.Logger,
    message: str,
    exc: BaseException,
    **context,
) -> None:
    """
    Log an exception with its traceback and structured error fields.

    Args:
        logger: Logger instance
        message: Log message
        exc: Exception being handled
        **context: Request context (request id, collection, ...)
    """
    fields = {key: safe_log_value(val) for key, val in context.items()}
    fields.update(error_fields(exc))
    logger.error(message, exc_info=exc, extra=fields)
