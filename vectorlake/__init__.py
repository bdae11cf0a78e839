"""
vectorlake: vector index storage and query engine on object storage.
"""

__version__ = "0.1.0"
