"""
Credit domain schemas.

Dependencies: pydantic
System role: Credit ledger API contracts
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class BalanceResponse(BaseModel):
    """Current credit balance."""

    user_id: uuid.UUID
    balance: int


class TransactionResponse(BaseModel):
    """One ledger row."""

    id: uuid.UUID
    type: str
    credits_delta: int
    status: str
    description: str
    session_id: uuid.UUID | None = None
    job_id: uuid.UUID | None = None
    related_transaction_id: uuid.UUID | None = None
    balance_after: int | None = None
    created_at: datetime


class AdjustCreditsRequest(BaseModel):
    """Administrative balance adjustment."""

    delta: int = Field(description="Signed credit change, non-zero")
    reason: str = Field(min_length=1, max_length=400)
