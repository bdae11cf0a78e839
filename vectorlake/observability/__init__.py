"""
Observability module.

Provides logging configuration and safe structured logging helpers.
"""

from vectorlake.observability.log_utils import (
    error_fields,
    log_exception_with_context,
    log_with_context,
    safe_log_value,
)
from vectorlake.observability.logger import configure_logging

__all__ = [
    "configure_logging",
    "error_fields",
    "log_exception_with_context",
    "log_with_context",
    "safe_log_value",
]
