"""
Tests for CleanupEngine sweeps.

System role: Verification of expiration, refunds, storage reclamation,
sweep idempotency and the audit log
"""

import uuid
from datetime import timedelta

import pytest

from extractflow.boundary.db import (
    CleanupStatus,
    JobStatus,
    SessionStatus,
    TransactionType,
    job_crud,
    session_crud,
    transaction_crud,
    utcnow,
)
from extractflow.boundary.storage import standalone_job_key
from extractflow.core.cleanup_engine import CleanupEngine
from extractflow.core.credit_ledger import CreditLedger


@pytest.fixture
def engine(db, storage) -> CleanupEngine:
    return CleanupEngine(db, storage)


async def _expire(db, session_id) -> None:
    await session_crud.update_by_id(db, session_id, expires_at=utcnow() - timedelta(minutes=5))
    await db.commit()


async def _refund_count(db, user_id) -> int:
    rows = await transaction_crud.get_for_user(db, user_id)
    return sum(1 for row in rows if row.type == TransactionType.REFUND)


class TestSweep:
    """Test suite for CleanupEngine.sweep()."""

    async def test_expires_in_flight_session(
        self, db, engine, manager, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        user_id = user.id
        session = await make_session(user, [b"p1", b"p2"])
        session_id, prefix = session.id, session.blob_prefix
        await manager.tracker.poll_active_jobs()
        await _expire(db, session_id)

        log = await engine.sweep()

        stored = await session_crud.get_by_id(db, session_id)
        jobs = await job_crud.get_by_session(db, session_id)
        assert log.status == CleanupStatus.COMPLETED
        assert (log.sessions_processed, log.sessions_expired, log.jobs_expired, log.blobs_deleted) == (1, 1, 2, 2)
        assert log.completed_at is not None
        assert stored.status == SessionStatus.EXPIRED
        assert stored.storage_purged_at is not None
        assert {job.status for job in jobs} == {JobStatus.EXPIRED}
        assert storage.keys_under(prefix) == []
        assert await _refund_count(db, user_id) == 2
        assert await CreditLedger(db).balance(user_id) == 10

    async def test_second_sweep_changes_nothing(
        self, db, engine, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        user_id = user.id
        session = await make_session(user, [b"p1"])
        await _expire(db, session.id)
        await engine.sweep()

        log = await engine.sweep()

        assert log.status == CleanupStatus.COMPLETED
        assert (log.sessions_processed, log.sessions_expired, log.jobs_expired, log.blobs_deleted) == (0, 0, 0, 0)
        assert await _refund_count(db, user_id) == 1

    async def test_completed_session_keeps_charge(
        self, db, engine, manager, extraction, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        user_id = user.id
        session = await make_session(user, [b"p1"])
        extraction.succeed(b"p1", {"Total": "1"})
        await manager.tracker.poll_active_jobs()
        await manager.aggregate_status(session)
        completed = await manager.get_session(session.id)
        bundle_ref = completed.result_bundle_ref
        await _expire(db, completed.id)

        log = await engine.sweep()

        assert log.jobs_expired == 0
        assert log.blobs_deleted == 2
        assert bundle_ref not in storage.objects
        assert await _refund_count(db, user_id) == 0
        assert await CreditLedger(db).balance(user_id) == 9

    async def test_storage_failure_is_retried_next_sweep(
        self, db, engine, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        session = await make_session(user, [b"p1"])
        session_id, prefix = session.id, session.blob_prefix
        await _expire(db, session_id)
        storage.fail_delete_prefix = True

        first = await engine.sweep()

        stored = await session_crud.get_by_id(db, session_id)
        assert first.status == CleanupStatus.COMPLETED_WITH_ERRORS
        assert len(first.errors) == 1
        assert stored.status == SessionStatus.EXPIRED
        assert stored.storage_purged_at is None
        assert storage.keys_under(prefix)

        storage.fail_delete_prefix = False
        second = await engine.sweep()

        assert second.status == CleanupStatus.COMPLETED
        assert (second.sessions_expired, second.jobs_expired, second.blobs_deleted) == (0, 0, 1)
        assert storage.keys_under(prefix) == []

    async def test_refuses_unscoped_prefix(self, db, engine, storage, make_user, make_session) -> None:
        user = await make_user(credits=10)
        session = await make_session(user, [b"p1"])
        session_id = session.id
        await session_crud.update_by_id(db, session_id, blob_prefix="test/")
        await _expire(db, session_id)
        before = dict(storage.objects)

        log = await engine.sweep()

        assert log.status == CleanupStatus.COMPLETED_WITH_ERRORS
        assert "Refusing to delete prefix" in log.errors[0]
        assert storage.objects == before

    async def test_expires_standalone_job(self, db, engine, storage, make_user) -> None:
        user = await make_user(credits=0)
        user_id = user.id
        job_id = uuid.uuid4()
        key = standalone_job_key("test", user_id, job_id, "legacy.pdf")
        storage.put(key, b"legacy")
        await job_crud.create(
            db,
            id=job_id,
            session_id=None,
            user_id=user_id,
            status=JobStatus.POLLING,
            file_name="legacy.pdf",
            credits_charged=1,
            blob_path=key,
            model_id="prebuilt-invoice",
            expires_at=utcnow() - timedelta(hours=1),
        )
        await db.commit()

        log = await engine.sweep()

        job = await job_crud.get_by_id(db, job_id)
        assert log.jobs_expired == 1
        assert log.blobs_deleted == 1
        assert job.status == JobStatus.EXPIRED
        assert not storage.exists(key)
        assert await _refund_count(db, user_id) == 1

    @pytest.mark.parametrize("status", [JobStatus.COMPLETED, JobStatus.FAILED])
    async def test_reclaims_finished_standalone_job(self, db, engine, storage, make_user, status) -> None:
        user = await make_user(credits=0)
        user_id = user.id
        job_id = uuid.uuid4()
        key = standalone_job_key("test", user_id, job_id, "legacy.pdf")
        storage.put(key, b"legacy")
        await job_crud.create(
            db,
            id=job_id,
            session_id=None,
            user_id=user_id,
            status=status,
            file_name="legacy.pdf",
            credits_charged=1,
            blob_path=key,
            model_id="prebuilt-invoice",
            expires_at=utcnow() - timedelta(hours=1),
        )
        await db.commit()

        first = await engine.sweep()
        second = await engine.sweep()

        job = await job_crud.get_by_id(db, job_id)
        assert (first.jobs_expired, first.blobs_deleted) == (1, 1)
        assert (second.jobs_expired, second.blobs_deleted) == (0, 0)
        assert job.status == JobStatus.EXPIRED
        assert storage.keys_under(f"test/users/{user_id}/") == []
        assert await _refund_count(db, user_id) == 0
