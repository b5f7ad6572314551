"""
Unified application settings.

Aggregates all configuration modules into a single Settings class.
Provides dependency injection factory for FastAPI.

Dependencies: All config modules
System role: Central configuration aggregator for the application
"""

from functools import lru_cache

from extractflow.configs.base import BaseSettings
from extractflow.configs.celery_config import CelerySettings
from extractflow.configs.database import DatabaseSettings
from extractflow.configs.extraction import ExtractionSettings
from extractflow.configs.processing import ProcessingSettings
from extractflow.configs.s3_storage import S3StorageSettings


class Settings(BaseSettings):
    """Unified application settings aggregating all config modules."""

    # Aggregated settings
    database: DatabaseSettings = DatabaseSettings()
    s3_storage: S3StorageSettings = S3StorageSettings()
    extraction: ExtractionSettings = ExtractionSettings()
    processing: ProcessingSettings = ProcessingSettings()
    celery: CelerySettings = CelerySettings()


@lru_cache
def get_settings() -> Settings:
    """
    Get application settings singleton.

    Returns Settings instance, cached for dependency injection.
    Environment variables loaded once at startup.

    Returns:
        Settings: Application settings instance

    Usage:
        from extractflow.configs import get_settings
        settings = get_settings()
    """
    return Settings()
