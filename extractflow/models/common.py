"""
Common response models.

Error schema shared by every route.

Dependencies: pydantic
System role: Common API response structures
"""

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Error response schema."""

    success: bool = False
    code: str = Field(description="Stable machine-readable error code")
    error: str = Field(description="Error message")
    details: dict | None = Field(default=None, description="Additional error context")


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    status: str
    message: str
