"""
Application services.

Orchestrates storage engine operations for the Lambda handlers.
"""

from vectorlake.application.vector_service import IngestResult, SearchHit, ingest, search

__all__ = ["IngestResult", "SearchHit", "ingest", "search"]
