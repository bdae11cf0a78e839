"""
Storage configuration settings.

Resolves the storage root of the vector index (an S3 bucket and prefix in
production, a local directory or memory store in development) and the
tunables of the write and query paths.

Dependencies: pydantic, pydantic_settings
System role: Storage root and engine tunables
"""

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Vector index storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="VECTORLAKE_",
        populate_by_name=True,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    uri: str | None = Field(
        default=None,
        description="Full storage URI (s3://, file:// or memory://); overrides bucket/prefix",
    )
    bucket: str | None = Field(
        default=None,
        validation_alias=AliasChoices("VECTORLAKE_BUCKET", "LANCEDB_BUCKET"),
        description="S3 bucket holding the index",
    )
    prefix: str = Field(default="lancedb", description="Key prefix inside the bucket")
    region: str | None = Field(default=None, description="AWS region for the S3 client")

    vector_dimension: int = Field(default=1024, gt=0, description="Width of ingested vectors")
    default_k: int = Field(default=2, ge=1, description="Results returned when a search omits k")
    distance_metric: str = Field(default="l2", description="Distance metric: l2, cosine or dot")

    max_commit_retries: int = Field(
        default=10,
        ge=1,
        description="Publish attempts before an append fails with write contention",
    )
    commit_retry_initial_wait: float = Field(
        default=0.05, ge=0, description="First backoff between publish attempts (seconds)"
    )
    commit_retry_max_wait: float = Field(
        default=2.0, ge=0, description="Upper bound of the publish backoff (seconds)"
    )
    orphan_grace_seconds: int = Field(
        default=3600,
        ge=0,
        description="Minimum age before an unreferenced fragment may be deleted",
    )

    @property
    def storage_uri(self) -> str | None:
        """Configured URI, or s3://{bucket}/{prefix}/ when only a bucket is set."""
        if self.uri:
            return self.uri
        if self.bucket:
            return f"s3://{self.bucket}/{self.prefix.strip('/')}/"
        return None
