"""
Tests for CreditLedger against an in-memory database.

System role: Verification of balance/ledger consistency and refund idempotency
"""

import uuid

import pytest

from extractflow.boundary.db import (
    JobModel,
    TransactionType,
    transaction_crud,
    user_crud,
)
from extractflow.core.credit_ledger import CreditLedger, refund_key
from extractflow.core.exceptions import (
    InsufficientCreditsError,
    UserNotFoundError,
    ValidationError,
)


@pytest.fixture
def ledger(db) -> CreditLedger:
    return CreditLedger(db)


class TestDebit:
    """Test suite for CreditLedger.debit()."""

    async def test_debit_decrements_and_records(self, db, ledger, make_user) -> None:
        user = await make_user(credits=10)

        transaction_id = await ledger.debit(user.id, 4, "Extraction of 4 pages")
        await db.commit()

        row = await transaction_crud.get_by_id(db, transaction_id)
        assert row.type == TransactionType.USAGE
        assert row.credits_delta == -4
        assert row.balance_after == 6
        assert await ledger.balance(user.id) == 6
        assert await ledger.reconcile(user.id)

    async def test_insufficient_credits_writes_nothing(self, db, ledger, make_user) -> None:
        user = await make_user(credits=10)

        with pytest.raises(InsufficientCreditsError) as exc_info:
            await ledger.debit(user.id, 12, "Extraction of 12 pages")

        assert exc_info.value.required == 12
        assert exc_info.value.available == 10
        assert await ledger.balance(user.id) == 10
        assert len(await ledger.history(user.id)) == 1

    async def test_exact_balance_can_be_spent(self, ledger, make_user) -> None:
        user = await make_user(credits=3)
        await ledger.debit(user.id, 3, "all of it")
        assert await ledger.balance(user.id) == 0

    async def test_unknown_user(self, ledger) -> None:
        with pytest.raises(UserNotFoundError):
            await ledger.debit(uuid.uuid4(), 1, "nobody")

    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_amount_rejected(self, ledger, make_user, amount: int) -> None:
        user = await make_user(credits=10)
        with pytest.raises(ValidationError):
            await ledger.debit(user.id, amount, "bad")


class TestCredit:
    """Test suite for CreditLedger.credit()."""

    async def test_idempotency_key_writes_once(self, db, ledger, make_user) -> None:
        user = await make_user()

        first = await ledger.credit(user.id, 5, "purchase", idempotency_key="order-1")
        second = await ledger.credit(user.id, 5, "purchase", idempotency_key="order-1")
        await db.commit()

        assert first == second
        assert await ledger.balance(user.id) == 5
        assert await ledger.ledger_balance(user.id) == 5

    async def test_unknown_user(self, ledger) -> None:
        with pytest.raises(UserNotFoundError):
            await ledger.credit(uuid.uuid4(), 5, "purchase")


class TestRefundJob:
    """Test suite for CreditLedger.refund_job()."""

    async def test_refund_links_usage_and_is_idempotent(
        self, db, ledger, make_user, make_session, manager
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"unit-1", b"unit-2"])
        job = (await manager.get_jobs(session.id))[0]

        refund_id = await ledger.refund_job(job)
        again = await ledger.refund_job(job)
        await db.commit()

        refund = await transaction_crud.get_by_id(db, refund_id)
        usage = await transaction_crud.get_usage_for_session(db, session.id)
        assert again is None
        assert refund.type == TransactionType.REFUND
        assert refund.credits_delta == 1
        assert refund.related_transaction_id == usage.id
        assert refund.idempotency_key == refund_key(job.id)
        assert await ledger.balance(user.id) == 4
        assert await ledger.reconcile(user.id)

    async def test_nothing_charged_nothing_refunded(self, ledger, make_user) -> None:
        user = await make_user()
        job = JobModel(id=uuid.uuid4(), user_id=user.id, credits_charged=0, file_name="x.pdf")
        assert await ledger.refund_job(job) is None


class TestAdminAdjust:
    """Test suite for CreditLedger.admin_adjust()."""

    async def test_positive_adjustment(self, db, ledger, make_user) -> None:
        user = await make_user(credits=1)
        admin_id = uuid.uuid4()

        transaction_id = await ledger.admin_adjust(user.id, 9, "goodwill", admin_id)

        row = await transaction_crud.get_by_id(db, transaction_id)
        assert row.type == TransactionType.ADMIN_CREDIT
        assert str(admin_id) in row.description
        assert await ledger.balance(user.id) == 10

    async def test_negative_adjustment_uses_atomic_debit(self, db, ledger, make_user) -> None:
        user = await make_user(credits=5)

        transaction_id = await ledger.admin_adjust(user.id, -2, "correction", uuid.uuid4())

        row = await transaction_crud.get_by_id(db, transaction_id)
        assert row.type == TransactionType.ADMIN_DEBIT
        assert row.credits_delta == -2
        with pytest.raises(InsufficientCreditsError):
            await ledger.admin_adjust(user.id, -10, "too much", uuid.uuid4())

    async def test_zero_rejected(self, ledger, make_user) -> None:
        user = await make_user()
        with pytest.raises(ValidationError):
            await ledger.admin_adjust(user.id, 0, "noop", uuid.uuid4())


class TestReconcile:
    """Test suite for CreditLedger.reconcile()."""

    async def test_detects_drift(self, db, ledger, make_user) -> None:
        user = await make_user(credits=5)
        await user_crud.update_by_id(db, user.id, credit_balance=7)

        assert not await ledger.reconcile(user.id)
