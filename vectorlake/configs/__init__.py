"""
Configuration management module.

Provides centralized, type-safe configuration using Pydantic Settings.
All config modules support environment variable mapping with validation.
"""

from vectorlake.configs.settings import Settings, get_settings
from vectorlake.configs.storage import StorageSettings

__all__ = ["Settings", "StorageSettings", "get_settings"]
