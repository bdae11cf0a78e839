"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from pydantic import Field

from vectorlake.configs.base import BaseSettings
from vectorlake.configs.storage import StorageSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    storage: StorageSettings = Field(default_factory=StorageSettings)


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Environment variables are read once per process; handlers call this at
    the start of each invocation.

    Returns:
        Settings: Application settings instance

    Usage:
        from vectorlake.configs import get_settings
        settings = get_settings()
    """
    return Settings()
