"""
Transaction CRUD operations.

Read side of the credit ledger plus idempotency lookups. Rows are only
ever inserted; there is deliberately no update helper here.

Dependencies: sqlalchemy, extractflow.boundary.db.models
System role: Credit ledger persistence operations
"""

from typing import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.models.transaction_model import (
    TransactionModel,
    TransactionStatus,
    TransactionType,
)


class TransactionCRUD(BaseCRUD[TransactionModel]):
    """CRUD operations for TransactionModel."""

    def __init__(self) -> None:
        """Initialize TransactionCRUD with TransactionModel."""
        super().__init__(TransactionModel)

    async def get_by_idempotency_key(
        self,
        session: AsyncSession,
        key: str,
    ) -> TransactionModel | None:
        """
        Retrieve the transaction written under an idempotency key.

        Args:
            session: Async database session
            key: Idempotency key

        Returns:
            TransactionModel if one exists, None otherwise
        """
        stmt = select(TransactionModel).where(TransactionModel.idempotency_key == key)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_user(
        self,
        session: AsyncSession,
        user_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[TransactionModel]:
        """
        Retrieve a user's transactions, newest first.

        Args:
            session: Async database session
            user_id: User UUID
            limit: Maximum rows
            offset: Rows to skip

        Returns:
            Sequence of TransactionModels
        """
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.user_id == user_id)
            .order_by(TransactionModel.created_at.desc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_for_session(
        self,
        session: AsyncSession,
        session_id: UUID,
    ) -> Sequence[TransactionModel]:
        """Retrieve every transaction tied to a session, oldest first."""
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.session_id == session_id)
            .order_by(TransactionModel.created_at)
        )
        result = await session.execute(stmt)
        return result.scalars().all()

    async def get_usage_for_session(
        self,
        session: AsyncSession,
        session_id: UUID,
    ) -> TransactionModel | None:
        """Retrieve the USAGE debit that paid for a session."""
        stmt = (
            select(TransactionModel)
            .where(TransactionModel.session_id == session_id)
            .where(TransactionModel.type == TransactionType.USAGE)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def sum_completed(self, session: AsyncSession, user_id: UUID) -> int:
        """
        Sum the deltas of a user's COMPLETED transactions.

        Args:
            session: Async database session
            user_id: User UUID

        Returns:
            int: Ledger-derived balance
        """
        stmt = select(func.coalesce(func.sum(TransactionModel.credits_delta), 0)).where(
            TransactionModel.user_id == user_id,
            TransactionModel.status == TransactionStatus.COMPLETED,
        )
        result = await session.execute(stmt)
        return int(result.scalar_one())


transaction_crud = TransactionCRUD()
