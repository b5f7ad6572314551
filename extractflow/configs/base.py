"""
Base configuration settings.

Shared by every config module. The environment is the first segment of
every storage key, so sessions from different deployments never share a
prefix even when they share a bucket.

Dependencies: pydantic_settings
System role: Foundation for all configuration classes
"""

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings, SettingsConfigDict

Environment = Literal["development", "test", "staging", "production"]


class BaseSettings(PydanticBaseSettings):
    """Common settings: deployment environment, debug flag and log level."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Environment = Field(
        default="development",
        description="Deployment environment, also the storage key namespace",
    )
    debug: bool = Field(
        default=False,
        description="Enable FastAPI debug mode",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level name",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize to an upper-case level name the logging module knows."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level
