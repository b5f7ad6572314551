"""
Extraction service configuration.

Endpoint and credentials for the Azure Document Intelligence REST API.

Dependencies: pydantic_settings
System role: External extraction service configuration
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ExtractionSettings(BaseSettings):
    """Azure Document Intelligence configuration."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRACTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    endpoint: str = Field(
        default="https://localhost",
        description="Document Intelligence resource endpoint (https://<name>.cognitiveservices.azure.com)",
    )
    api_key: str = Field(default="", description="Document Intelligence subscription key")
    api_version: str = Field(default="2024-11-30", description="REST API version")
    default_model_id: str = Field(
        default="prebuilt-invoice",
        description="Model used when a session does not name one",
    )
    request_timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    max_retries: int = Field(default=3, description="Retry attempts for transient HTTP errors")
