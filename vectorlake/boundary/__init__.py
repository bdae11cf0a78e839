"""
Boundary layer.

Adapters to external systems. Currently object storage only.
"""
