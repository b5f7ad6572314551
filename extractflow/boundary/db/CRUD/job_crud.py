"""
Job CRUD operations.

Provides Create, Read, Update, Delete operations for JobModel
with job-specific query methods for session aggregation, the poller's
work queue and expiration.

Dependencies: sqlalchemy, extractflow.boundary.db.models
System role: Job persistence operations for page-level extraction
"""

from datetime import datetime
from typing import Iterable, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.models.job_model import JobModel, JobStatus


class JobCRUD(BaseCRUD[JobModel]):
    """
    CRUD operations for JobModel.

    Extends BaseCRUD with per-session listing and the status-based
    selections the poller and cleanup sweep work from.
    """

    def __init__(self) -> None:
        """Initialize JobCRUD with JobModel."""
        super().__init__(JobModel)

    async def get_by_session(
        self,
        session: AsyncSession,
        session_id: UUID,
    ) -> Sequence[JobModel]:
        """
        Retrieve all jobs of a session in upload order.

        Args:
            session: Async database session
            session_id: Session UUID

        Returns:
            Sequence of JobModels for the session
        """
        stmt = (
            select(JobModel)
            .where(JobModel.session_id == session_id)
            .order_by(JobModel.created_at, JobModel.file_name, JobModel.page_number)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_status(
        self,
        session: AsyncSession,
        status: JobStatus,
        limit: int | None = None,
    ) -> Sequence[JobModel]:
        """
        Retrieve jobs by lifecycle status, oldest first.

        Args:
            session: Async database session
            status: Job status to filter by
            limit: Maximum number of jobs to return

        Returns:
            Sequence of JobModels with matching status
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status == status)
            .order_by(JobModel.created_at)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_expired_standalone(
        self,
        session: AsyncSession,
        now: datetime,
    ) -> Sequence[JobModel]:
        """
        Retrieve legacy jobs without a session that are past expires_at.

        Args:
            session: Async database session
            now: Sweep reference time

        Returns:
            Sequence of JobModels not yet marked EXPIRED
        """
        stmt = (
            select(JobModel)
            .where(JobModel.session_id.is_(None))
            .where(JobModel.expires_at <= now)
            .where(JobModel.status != JobStatus.EXPIRED)
            .execution_options(populate_existing=True)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_stalled(
        self,
        session: AsyncSession,
        statuses: Iterable[JobStatus],
        updated_before: datetime,
        limit: int | None = None,
    ) -> Sequence[JobModel]:
        """
        Retrieve jobs stuck in a transient status since before a cutoff.

        Args:
            session: Async database session
            statuses: Transient statuses to look in
            updated_before: Rows last touched before this time are stalled
            limit: Maximum number of jobs to return

        Returns:
            Sequence of stalled JobModels, oldest first
        """
        stmt = (
            select(JobModel)
            .where(JobModel.status.in_(list(statuses)))
            .where(JobModel.updated_at < updated_before)
            .order_by(JobModel.updated_at)
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def set_renamed_file_name(
        self,
        session: AsyncSession,
        id: UUID,
        renamed_file_name: str,
    ) -> None:
        """Record the file name produced by post-processing."""
        await self.update_by_id(session, id, renamed_file_name=renamed_file_name)


job_crud = JobCRUD()
