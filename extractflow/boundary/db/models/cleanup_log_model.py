"""
Cleanup log ORM model.

One row per expiration sweep; append-only audit trail of what was removed.

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Cleanup audit persistence
"""

import enum
from datetime import datetime

from sqlalchemy import JSON, DateTime, Enum, Integer
from sqlalchemy.orm import Mapped, mapped_column

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class CleanupStatus(str, enum.Enum):
    """Sweep outcome."""

    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class CleanupLogModel(Base, UUIDMixin, TimestampMixin):
    """
    Cleanup log ORM model.

    Attributes:
        started_at: Sweep start (UTC)
        completed_at: Sweep end (UTC), NULL while RUNNING
        sessions_processed: Sessions selected by the sweep
        sessions_expired: Sessions this sweep transitioned to EXPIRED
        jobs_expired: Jobs this sweep transitioned to EXPIRED
        blobs_deleted: Blob objects removed
        errors: Per-item error messages
        status: Sweep outcome enum
    """

    __tablename__ = "cleanup_logs"

    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    sessions_processed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sessions_expired: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    jobs_expired: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blobs_deleted: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    errors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    status: Mapped[CleanupStatus] = mapped_column(
        Enum(CleanupStatus, native_enum=False),
        nullable=False,
        default=CleanupStatus.RUNNING,
    )
