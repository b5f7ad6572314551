"""
Job ORM model.

One unit (page or single-page document) routed to the extraction service.

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Per-unit state machine persistence
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class JobStatus(str, enum.Enum):
    """
    Job lifecycle states.

    QUEUED: Persisted and charged, waiting for the poller to submit
    UPLOADING: Unit bytes being sent to the extraction service
    PROCESSING: Accepted by the extraction service
    POLLING: Operation reference recorded; poller checks it each cycle
    COMPLETED: Extracted fields stored
    FAILED: External failure or poll timeout; credits refunded
    EXPIRED: Reclaimed by the cleanup sweep before finishing
    CANCELLED: Owning session cancelled before finishing
    """

    QUEUED = "queued"
    UPLOADING = "uploading"
    PROCESSING = "processing"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


FINAL_JOB_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.EXPIRED, JobStatus.CANCELLED}
)
ACTIVE_JOB_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.QUEUED, JobStatus.UPLOADING, JobStatus.PROCESSING, JobStatus.POLLING}
)


class JobModel(Base, UUIDMixin, TimestampMixin):
    """
    Job ORM model.

    Every status change is a conditional update on the expected prior status,
    so a job reaches a final state exactly once even with several workers.
    credits_charged is fixed when the job is created.

    Attributes:
        session_id: Owning session (NULL for legacy standalone jobs)
        user_id: Owner, for refunds
        status: Lifecycle state
        file_name: Original upload name of the unit
        page_number: 1-based page within the uploaded file
        page_count: Pages in this unit
        credits_charged: Credits debited for this unit
        blob_path: Storage key of the unit bytes
        model_id: Extraction model
        external_operation_ref: Extraction service operation reference
        extracted_fields: Field map set on success
        error: Failure description
        polling_started_at: When polling began (timeout ceiling anchor)
        last_polled_at: Last external status check
        completed_at: When the job reached a final state
        expires_at: Job TTL, mirrors the session's
        renamed_file_name: File name produced by post-processing
    """

    __tablename__ = "jobs"

    session_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[JobStatus] = mapped_column(
        Enum(JobStatus, native_enum=False),
        nullable=False,
        default=JobStatus.QUEUED,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(512), nullable=False)
    page_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    page_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    credits_charged: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    blob_path: Mapped[str] = mapped_column(String(1024), nullable=False)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    external_operation_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    extracted_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    polling_started_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    last_polled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    renamed_file_name: Mapped[str | None] = mapped_column(String(512), nullable=True)
