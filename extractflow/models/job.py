"""
Job domain schemas.

Dependencies: pydantic
System role: Job API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel


class JobResponse(BaseModel):
    """Per-unit detail of a session."""

    id: uuid.UUID
    status: str
    file_name: str
    page_number: int
    page_count: int
    credits_charged: int
    renamed_file_name: str | None = None
    extracted_fields: dict | None = None
    error: str | None = None
    created_at: datetime
    completed_at: datetime | None = None
