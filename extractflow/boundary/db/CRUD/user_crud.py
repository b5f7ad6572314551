"""
User CRUD operations.

Adds the atomic balance mutations the credit ledger relies on.

Dependencies: sqlalchemy, extractflow.boundary.db.models
System role: User and balance persistence operations
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.models.user_model import UserModel


class UserCRUD(BaseCRUD[UserModel]):
    """CRUD operations for UserModel."""

    def __init__(self) -> None:
        """Initialize UserCRUD with UserModel."""
        super().__init__(UserModel)

    async def get_by_email(self, session: AsyncSession, email: str) -> UserModel | None:
        """
        Retrieve user by email.

        Args:
            session: Async database session
            email: Login email

        Returns:
            UserModel if found, None otherwise
        """
        stmt = select(UserModel).where(UserModel.email == email)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_balance(self, session: AsyncSession, id: UUID) -> int | None:
        """Read the cached balance straight from the row."""
        stmt = select(UserModel.credit_balance).where(UserModel.id == id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def try_debit(self, session: AsyncSession, id: UUID, amount: int) -> bool:
        """
        Conditionally subtract credits.

        Single statement: UPDATE users SET credit_balance = credit_balance - :n
        WHERE id = :id AND credit_balance >= :n. The database serializes
        concurrent debits for the same row.

        Args:
            session: Async database session
            id: User UUID
            amount: Credits to subtract (positive)

        Returns:
            True if the balance covered the amount and was decremented
        """
        stmt = (
            update(UserModel)
            .where(UserModel.id == id)
            .where(UserModel.credit_balance >= amount)
            .values(credit_balance=UserModel.credit_balance - amount)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def add_credits(self, session: AsyncSession, id: UUID, amount: int) -> bool:
        """
        Add credits with an in-database increment.

        Args:
            session: Async database session
            id: User UUID
            amount: Credits to add (positive)

        Returns:
            True if the user row exists and was updated
        """
        stmt = (
            update(UserModel)
            .where(UserModel.id == id)
            .values(credit_balance=UserModel.credit_balance + amount)
            .execution_options(synchronize_session=False)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1


user_crud = UserCRUD()
