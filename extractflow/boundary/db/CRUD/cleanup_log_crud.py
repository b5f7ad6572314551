"""
Cleanup log CRUD operations.

Dependencies: sqlalchemy, extractflow.boundary.db.models
System role: Cleanup audit trail persistence
"""

from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.models.cleanup_log_model import CleanupLogModel


class CleanupLogCRUD(BaseCRUD[CleanupLogModel]):
    """CRUD operations for CleanupLogModel."""

    def __init__(self) -> None:
        """Initialize CleanupLogCRUD with CleanupLogModel."""
        super().__init__(CleanupLogModel)

    async def get_recent(
        self,
        session: AsyncSession,
        limit: int = 20,
    ) -> Sequence[CleanupLogModel]:
        """
        Retrieve the most recent sweeps.

        Args:
            session: Async database session
            limit: Maximum rows

        Returns:
            Sequence of CleanupLogModels, newest first
        """
        stmt = (
            select(CleanupLogModel)
            .order_by(CleanupLogModel.started_at.desc())
            .limit(limit)
        )
        result = await session.execute(stmt)
        return result.scalars().all()


cleanup_log_crud = CleanupLogCRUD()
