"""
Session CRUD operations.

Provides Create, Read, Update, Delete operations for SessionModel
with session-specific query methods for ownership, expiration and the
post-processing guard.

Dependencies: sqlalchemy, extractflow.boundary.db.models
System role: Session persistence operations
"""

from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.models.session_model import (
    PostProcessingStatus,
    SessionModel,
    SessionStatus,
)


class SessionCRUD(BaseCRUD[SessionModel]):
    """
    CRUD operations for SessionModel.

    Extends BaseCRUD with owner-scoped listing, expiration selection and
    the post-processing check-and-set.
    """

    def __init__(self) -> None:
        """Initialize SessionCRUD with SessionModel."""
        super().__init__(SessionModel)

    async def get_for_user(
        self,
        session: AsyncSession,
        user_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[SessionModel]:
        """
        Retrieve a user's sessions, newest first.

        Args:
            session: Async database session
            user_id: Owner UUID
            limit: Maximum number of sessions to return
            offset: Number of sessions to skip

        Returns:
            Sequence of SessionModels owned by the user
        """
        stmt = (
            select(SessionModel)
            .where(SessionModel.user_id == user_id)
            .order_by(SessionModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_by_statuses(
        self,
        session: AsyncSession,
        statuses: Sequence[SessionStatus],
        limit: int | None = None,
    ) -> Sequence[SessionModel]:
        """Retrieve sessions in any of the given statuses."""
        stmt = select(SessionModel).where(SessionModel.status.in_(list(statuses)))
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_due_for_cleanup(
        self,
        session: AsyncSession,
        now: datetime,
    ) -> Sequence[SessionModel]:
        """
        Select sessions the expiration sweep must handle.

        Either past expires_at and not yet EXPIRED, or already EXPIRED but
        with storage not yet purged (a previous sweep failed to delete blobs).

        Args:
            session: Async database session
            now: Sweep reference time

        Returns:
            Sequence of SessionModels to expire and/or purge
        """
        stmt = select(SessionModel).where(
            or_(
                and_(
                    SessionModel.expires_at <= now,
                    SessionModel.status != SessionStatus.EXPIRED,
                ),
                and_(
                    SessionModel.status == SessionStatus.EXPIRED,
                    SessionModel.storage_purged_at.is_(None),
                ),
            )
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def claim_post_processing(self, session: AsyncSession, id: UUID) -> bool:
        """
        Check-and-set the post-processing guard from NULL to PROCESSING.

        Args:
            session: Async database session
            id: Session UUID

        Returns:
            True for the single caller allowed to run post-processing
        """
        stmt = (
            update(SessionModel)
            .where(SessionModel.id == id)
            .where(SessionModel.post_processing_status.is_(None))
            .values(post_processing_status=PostProcessingStatus.PROCESSING)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def shorten_expiry(
        self,
        session: AsyncSession,
        id: UUID,
        expires_at: datetime,
    ) -> bool:
        """
        Move expires_at earlier; refuses (returns False) to move it later.

        Args:
            session: Async database session
            id: Session UUID
            expires_at: New expiry, must be before the current one

        Returns:
            True if the expiry was shortened
        """
        stmt = (
            update(SessionModel)
            .where(SessionModel.id == id)
            .where(SessionModel.expires_at > expires_at)
            .values(expires_at=expires_at)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


session_crud = SessionCRUD()
