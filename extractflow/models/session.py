"""
Session domain schemas.

Request/response schemas for session upload, status and download, plus
the naming/spreadsheet/transformation options a session is created with.

Dependencies: pydantic
System role: Session API contracts
"""

import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class NamingElement(BaseModel):
    """One element of a file naming template."""

    type: Literal["text", "field"]
    value: str | None = Field(default=None, description="Literal text (text elements)")
    field_name: str | None = Field(default=None, description="Extracted field (field elements)")
    transform: str | None = Field(
        default=None,
        description="uppercase, lowercase, camelcase, kebabcase, date:FMT, truncate:N, replace:a:b",
    )

    @model_validator(mode="after")
    def check_kind(self) -> "NamingElement":
        if self.type == "field" and not self.field_name:
            raise ValueError("field elements need field_name")
        return self


class ColumnOptions(BaseModel):
    """Spreadsheet options for one field column."""

    visible: bool = True
    display_name: str | None = None
    format: Literal["MM/DD/YYYY", "DD/MM/YYYY", "YYYY-MM-DD"] | None = None


class ColumnConfig(BaseModel):
    """Spreadsheet column order and per-column options."""

    column_order: list[str] = Field(default_factory=list)
    columns: dict[str, ColumnOptions] = Field(default_factory=dict)


class FieldTransformationSpec(BaseModel):
    """Value transformation applied to one extracted field."""

    type: Literal["NONE", "DATE_PARSE", "NUMBER_FORMAT", "TEXT_REPLACE"]
    config: dict[str, Any] = Field(default_factory=dict)


class SessionOptions(BaseModel):
    """Options sent with a session upload (JSON form field)."""

    model_config = ConfigDict(protected_namespaces=())

    model_id: str | None = Field(default=None, description="Extraction model, server default when omitted")
    naming_template: list[NamingElement] = Field(default_factory=list)
    column_config: ColumnConfig = Field(default_factory=ColumnConfig)
    field_transformations: dict[str, FieldTransformationSpec] = Field(default_factory=dict)


class SessionResponse(BaseModel):
    """Response schema for session operations."""

    model_config = ConfigDict(protected_namespaces=())

    id: uuid.UUID
    status: str
    total_units: int
    completed_units: int
    model_id: str
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    post_processing_status: str | None = None
    error_message: str | None = None
    has_result: bool = False


class SessionStatusResponse(BaseModel):
    """Client polling view of a session."""

    status: str
    processed_units: int
    total_units: int
    error: str | None = None


class DownloadResponse(BaseModel):
    """Time-limited bundle link."""

    url: str
    expires_in: int = Field(description="Link lifetime in seconds")


class AccelerateExpirationRequest(BaseModel):
    """Administrative expiry change; omit expires_at to expire now."""

    expires_at: datetime | None = None
