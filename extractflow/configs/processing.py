"""
Processing lifecycle configuration.

Session TTL, credit pricing, polling cadence and cleanup schedule.

Dependencies: pydantic, pydantic_settings
System role: Orchestration tuning knobs
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProcessingSettings(BaseSettings):
    """Session lifecycle and background worker settings."""

    model_config = SettingsConfigDict(
        env_prefix="PROCESSING_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    session_ttl_hours: int = Field(default=24, description="Session lifetime before cleanup")
    credits_per_page: int = Field(default=1, description="Credits charged per unit page")
    polling_interval_seconds: float = Field(
        default=2.0,
        description="Delay between polling cycles of the background poller",
    )
    poll_timeout_minutes: int = Field(
        default=30,
        description="Hard ceiling for polling a single job before forcing failure",
    )
    polling_batch_size: int = Field(
        default=100,
        description="Maximum jobs handled per polling cycle",
    )
    cleanup_interval_seconds: int = Field(
        default=300,
        description="Delay between expiration sweeps",
    )
    max_files_per_upload: int = Field(default=20, description="Files accepted per session upload")
