"""
Session ORM model.

A user-initiated batch of units uploaded together, tracked and billed as one.

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Aggregation root for page-level extraction jobs
"""

import enum
from datetime import datetime
from uuid import UUID

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class SessionStatus(str, enum.Enum):
    """
    Session lifecycle states.

    UPLOADING: Created and charged, no job submitted yet
    PROCESSING: At least one job is in flight
    POST_PROCESSING: All jobs succeeded; bundle being produced
    COMPLETED: Bundle available for download
    FAILED: A job failed or bundling failed
    EXPIRED: Past TTL; storage reclaimed
    CANCELLED: Cancelled by the owner
    """

    UPLOADING = "uploading"
    PROCESSING = "processing"
    POST_PROCESSING = "post_processing"
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class PostProcessingStatus(str, enum.Enum):
    """Check-and-set guard for the one-shot post-processing run."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SessionModel(Base, UUIDMixin, TimestampMixin):
    """
    Session ORM model.

    Stored status holds lifecycle decisions (cancel, expire, bundle outcome);
    while jobs are in flight the effective status is derived from the jobs
    on read. expires_at is fixed at creation and only ever moved earlier.

    Attributes:
        user_id: Owner
        status: Last persisted lifecycle state
        total_units: Pages charged for this session
        completed_units: Cached count of pages whose job completed
        expires_at: created_at + TTL
        result_bundle_ref: Blob key of the zip bundle once COMPLETED
        model_id: Extraction model for every job of the session
        blob_prefix: Storage namespace for everything the session writes
        post_processing_status: NULL until a worker claims post-processing
        error_message: Session-level failure description
        naming_template: Ordered file naming elements
        column_config: Spreadsheet column order/visibility/display/date format
        field_transformations: Per-field value transforms applied before naming
        storage_purged_at: When cleanup deleted the session's blobs
    """

    __tablename__ = "sessions"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[SessionStatus] = mapped_column(
        Enum(SessionStatus, native_enum=False),
        nullable=False,
        default=SessionStatus.UPLOADING,
        index=True,
    )
    total_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completed_units: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    result_bundle_ref: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    model_id: Mapped[str] = mapped_column(String(255), nullable=False)
    blob_prefix: Mapped[str] = mapped_column(String(512), nullable=False)
    post_processing_status: Mapped[PostProcessingStatus | None] = mapped_column(
        Enum(PostProcessingStatus, native_enum=False),
        nullable=True,
        default=None,
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    naming_template: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    column_config: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    field_transformations: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    storage_purged_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
