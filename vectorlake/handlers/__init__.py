"""
Lambda entry points.

- ``vectorlake.handlers.index_handler.handler``: ingest one described vector
- ``vectorlake.handlers.query_handler.handler``: nearest-neighbor search
"""
