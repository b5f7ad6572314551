"""
Credit API endpoints.

Routes:
- GET /credits/balance - Caller's balance
- GET /credits/transactions - Caller's ledger history

Dependencies: extractflow.application.services.credit_service
System role: Credit read HTTP API
"""

from fastapi import APIRouter, Depends

from extractflow.api.deps import get_credit_service, get_current_user
from extractflow.application.services import CreditService
from extractflow.boundary.db import UserModel
from extractflow.models.credit import BalanceResponse, TransactionResponse

router = APIRouter(prefix="/credits", tags=["credits"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: UserModel = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service),
) -> BalanceResponse:
    """Current credit balance."""
    return BalanceResponse(**await credit_service.get_balance(user.id))


@router.get("/transactions", response_model=list[TransactionResponse])
async def get_transactions(
    limit: int = 50,
    offset: int = 0,
    user: UserModel = Depends(get_current_user),
    credit_service: CreditService = Depends(get_credit_service),
) -> list[TransactionResponse]:
    """Ledger rows, newest first."""
    rows = await credit_service.get_transactions(user.id, limit=limit, offset=offset)
    return [TransactionResponse(**row) for row in rows]
