"""
S3 blob storage configuration.

Settings for the bucket that holds uploaded units and result bundles.

Dependencies: pydantic_settings
System role: S3 storage bucket configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class S3StorageSettings(BaseSettings):
    """Settings for S3 blob storage operations."""

    model_config = SettingsConfigDict(
        env_prefix="S3_STORAGE_",
        case_sensitive=False,
        extra="ignore",
    )

    bucket: str = Field(
        default="extractflow-dev-documents",
        description="S3 bucket for uploaded units and result bundles",
    )
    region: str = Field(
        default="us-east-1",
        description="AWS region for S3 bucket",
    )
    download_url_expiry: int = Field(
        default=3600,
        description="Presigned download URL expiry in seconds (default 1 hour)",
    )
