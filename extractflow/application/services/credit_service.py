"""
Credit service.

Read side of the ledger for the caller.

Dependencies: extractflow.core.credit_ledger
System role: Credit use case orchestration
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.application.services.serializers import transaction_to_dict
from extractflow.core.credit_ledger import CreditLedger


class CreditService:
    """Balance and transaction history."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.ledger = CreditLedger(db)

    async def get_balance(self, user_id: UUID) -> dict:
        """
        Current cached balance.

        Raises:
            UserNotFoundError: Unknown user
        """
        return {"user_id": user_id, "balance": await self.ledger.balance(user_id)}

    async def get_transactions(self, user_id: UUID, limit: int = 50, offset: int = 0) -> list[dict]:
        """Transaction history, newest first."""
        rows = await self.ledger.history(user_id, limit=limit, offset=offset)
        return [transaction_to_dict(row) for row in rows]
