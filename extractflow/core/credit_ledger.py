"""
Credit ledger.

Append-only transaction log plus the cached balance on the user row.
Every balance mutation in the system goes through this class.

The ledger never commits. Callers own the unit of work so that a failure
anywhere rolls back both the balance change and its transaction row.

Dependencies: sqlalchemy, extractflow.boundary.db
System role: Credit accounting
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.transaction_crud import transaction_crud
from extractflow.boundary.db.CRUD.user_crud import user_crud
from extractflow.boundary.db.models import JobModel, TransactionModel, TransactionType
from extractflow.core.exceptions import (
    InsufficientCreditsError,
    UserNotFoundError,
    ValidationError,
)
from extractflow.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


def refund_key(job_id: UUID) -> str:
    """Idempotency key guarding the refund of one job."""
    return f"refund:job:{job_id}"


class CreditLedger:
    """Credit debits, credits and refunds on top of the transaction log."""

    def __init__(self, db: AsyncSession) -> None:
        """
        Initialize ledger with async database session.

        Args:
            db: Async SQLAlchemy session owned by the caller
        """
        self.db = db

    async def debit(
        self,
        user_id: UUID,
        amount: int,
        reason: str,
        *,
        type: TransactionType = TransactionType.USAGE,
        session_id: UUID | None = None,
        job_id: UUID | None = None,
        idempotency_key: str | None = None,
    ) -> UUID:
        """
        Atomically take credits from a user.

        The balance check and decrement are one conditional UPDATE, so two
        concurrent debits can never both pass a check against the same
        balance.

        Args:
            user_id: Account to debit
            amount: Credits to take (positive)
            reason: Transaction description
            type: USAGE or ADMIN_DEBIT
            session_id: Session being paid for
            job_id: Job being paid for
            idempotency_key: Optional duplicate guard

        Returns:
            UUID: Transaction ID

        Raises:
            ValidationError: amount is not positive
            UserNotFoundError: No such user
            InsufficientCreditsError: Balance below amount (nothing written)
        """
        if amount <= 0:
            raise ValidationError("Debit amount must be positive", field="amount")

        if not await user_crud.try_debit(self.db, user_id, amount):
            available = await user_crud.get_balance(self.db, user_id)
            if available is None:
                raise UserNotFoundError(str(user_id))
            raise InsufficientCreditsError(str(user_id), required=amount, available=available)

        balance_after = await user_crud.get_balance(self.db, user_id)
        transaction = await transaction_crud.create(
            self.db,
            user_id=user_id,
            type=type,
            credits_delta=-amount,
            description=reason,
            session_id=session_id,
            job_id=job_id,
            idempotency_key=idempotency_key,
            balance_after=balance_after,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Credits debited",
            user_id=user_id,
            amount=amount,
            balance_after=balance_after,
            transaction_type=type.value,
        )
        return transaction.id

    async def credit(
        self,
        user_id: UUID,
        amount: int,
        reason: str,
        *,
        type: TransactionType = TransactionType.PURCHASE,
        related_transaction_id: UUID | None = None,
        idempotency_key: str | None = None,
        session_id: UUID | None = None,
        job_id: UUID | None = None,
    ) -> UUID:
        """
        Add credits to a user.

        With an idempotency key, a second call returns the first call's
        transaction and changes nothing.

        Args:
            user_id: Account to credit
            amount: Credits to add (positive)
            reason: Transaction description
            type: PURCHASE, REFUND, ADMIN_CREDIT, BONUS or MANUAL_ADJUSTMENT
            related_transaction_id: Transaction this one reverses
            idempotency_key: Optional duplicate guard
            session_id: Related session
            job_id: Related job

        Returns:
            UUID: Transaction ID (existing one on a duplicate key)

        Raises:
            ValidationError: amount is not positive
            UserNotFoundError: No such user
        """
        if amount <= 0:
            raise ValidationError("Credit amount must be positive", field="amount")

        if idempotency_key:
            existing = await transaction_crud.get_by_idempotency_key(self.db, idempotency_key)
            if existing is not None:
                logger.debug(f"{__name__}:credit - Duplicate key {idempotency_key}, skipping")
                return existing.id

        if not await user_crud.add_credits(self.db, user_id, amount):
            raise UserNotFoundError(str(user_id))

        balance_after = await user_crud.get_balance(self.db, user_id)
        transaction = await transaction_crud.create(
            self.db,
            user_id=user_id,
            type=type,
            credits_delta=amount,
            description=reason,
            session_id=session_id,
            job_id=job_id,
            related_transaction_id=related_transaction_id,
            idempotency_key=idempotency_key,
            balance_after=balance_after,
        )

        log_with_context(
            logger,
            logging.INFO,
            "Credits added",
            user_id=user_id,
            amount=amount,
            balance_after=balance_after,
            transaction_type=type.value,
        )
        return transaction.id

    async def refund_job(self, job: JobModel) -> UUID | None:
        """
        Return a job's charged credits.

        Linked to the USAGE transaction of the job's session and keyed by
        job, so refunding the same job twice writes one row.

        Args:
            job: Job whose credits_charged should be returned

        Returns:
            UUID | None: Refund transaction ID, or None when nothing was written
        """
        if job.credits_charged <= 0:
            return None

        key = refund_key(job.id)
        if await transaction_crud.get_by_idempotency_key(self.db, key) is not None:
            return None

        usage_id = None
        if job.session_id is not None:
            usage = await transaction_crud.get_usage_for_session(self.db, job.session_id)
            usage_id = usage.id if usage else None

        return await self.credit(
            job.user_id,
            job.credits_charged,
            f"Refund for {job.file_name} page {job.page_number}",
            type=TransactionType.REFUND,
            related_transaction_id=usage_id,
            idempotency_key=key,
            session_id=job.session_id,
            job_id=job.id,
        )

    async def admin_adjust(
        self,
        user_id: UUID,
        delta: int,
        reason: str,
        admin_id: UUID,
    ) -> UUID:
        """
        Apply a signed administrative adjustment.

        Positive deltas are ADMIN_CREDIT; negative deltas go through the
        atomic debit as ADMIN_DEBIT and can fail on insufficient balance.

        Args:
            user_id: Account to adjust
            delta: Signed credit change (non-zero)
            reason: Free-text justification
            admin_id: Administrator performing the change

        Returns:
            UUID: Transaction ID
        """
        if delta == 0:
            raise ValidationError("Adjustment must be non-zero", field="delta")

        description = f"{reason} (by admin {admin_id})"
        if delta > 0:
            return await self.credit(
                user_id, delta, description, type=TransactionType.ADMIN_CREDIT
            )
        return await self.debit(
            user_id, -delta, description, type=TransactionType.ADMIN_DEBIT
        )

    async def balance(self, user_id: UUID) -> int:
        """
        Cached balance from the user row.

        Raises:
            UserNotFoundError: No such user
        """
        value = await user_crud.get_balance(self.db, user_id)
        if value is None:
            raise UserNotFoundError(str(user_id))
        return value

    async def ledger_balance(self, user_id: UUID) -> int:
        """Balance recomputed from COMPLETED transactions."""
        return await transaction_crud.sum_completed(self.db, user_id)

    async def reconcile(self, user_id: UUID) -> bool:
        """
        Compare the cached balance with the ledger sum.

        Returns:
            bool: True when they agree
        """
        cached = await self.balance(user_id)
        derived = await self.ledger_balance(user_id)
        if cached != derived:
            log_with_context(
                logger,
                logging.ERROR,
                "Balance drift detected",
                user_id=user_id,
                cached_balance=cached,
                ledger_balance=derived,
            )
            return False
        return True

    async def history(
        self,
        user_id: UUID,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[TransactionModel]:
        """A user's transactions, newest first."""
        return await transaction_crud.get_for_user(self.db, user_id, limit=limit, offset=offset)
