"""
Cleanup sweep schemas.

Dependencies: pydantic
System role: Cleanup audit API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel


class CleanupLogResponse(BaseModel):
    """One expiration sweep."""

    id: uuid.UUID
    status: str
    started_at: datetime
    completed_at: datetime | None = None
    sessions_processed: int
    sessions_expired: int
    jobs_expired: int
    blobs_deleted: int
    errors: list[str]
