"""
Tests for SessionManager.

System role: Verification of atomic session creation, status aggregation,
cancel, download and administrative lifecycle operations
"""

import uuid
from datetime import timedelta

import pytest

from extractflow.boundary.db import (
    JobStatus,
    PostProcessingStatus,
    SessionStatus,
    TransactionType,
    session_crud,
    transaction_crud,
    utcnow,
)
from extractflow.boundary.db.base import ensure_utc
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import (
    InsufficientCreditsError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionNotReadyError,
    UserNotFoundError,
    ValidationError,
)
from extractflow.core.session_manager import UploadUnit


async def _complete_all(manager, extraction, session, fields=None) -> None:
    for job in await manager.get_jobs(session.id):
        extraction.succeed(manager.storage.get(job.blob_path), fields or {"Total": "1"})
    await manager.tracker.poll_active_jobs()


class TestCreateSession:
    """Test suite for SessionManager.create_session()."""

    async def test_creates_charged_session_with_queued_jobs(
        self, db, manager, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)

        session = await make_session(user, [b"p1", b"p2", b"p3"])

        jobs = await manager.get_jobs(session.id)
        usage = await transaction_crud.get_usage_for_session(db, session.id)
        assert session.status == SessionStatus.UPLOADING
        assert session.total_units == 3
        assert session.blob_prefix == f"test/users/{user.id}/sessions/{session.id}/"
        assert ensure_utc(session.expires_at) - ensure_utc(session.created_at) == timedelta(hours=24)
        assert [job.status for job in jobs] == [JobStatus.QUEUED] * 3
        assert all(job.credits_charged == 1 for job in jobs)
        assert usage.credits_delta == -3
        assert len(storage.keys_under(session.blob_prefix)) == 3
        assert await CreditLedger(db).balance(user.id) == 7

    async def test_insufficient_credits_persists_nothing(
        self, db, manager, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        user_id = user.id

        with pytest.raises(InsufficientCreditsError):
            await make_session(user, [f"page-{i}".encode() for i in range(12)])

        assert await manager.list_sessions(user_id) == []
        assert await CreditLedger(db).balance(user_id) == 10
        assert len(await transaction_crud.get_for_user(db, user_id)) == 1
        assert storage.objects == {}

    async def test_storage_failure_rolls_back_everything(
        self, db, manager, storage, make_user, make_session, monkeypatch
    ) -> None:
        user = await make_user(credits=10)
        user_id = user.id
        original_put = storage.put
        calls = []

        def flaky_put(key, data, content_type="application/octet-stream"):
            calls.append(key)
            if len(calls) == 2:
                raise RuntimeError("S3 unavailable")
            original_put(key, data, content_type)

        monkeypatch.setattr(storage, "put", flaky_put)

        with pytest.raises(RuntimeError):
            await make_session(user, [b"p1", b"p2"])

        assert await manager.list_sessions(user_id) == []
        assert await CreditLedger(db).balance(user_id) == 10
        assert storage.objects == {}

    async def test_multi_page_unit_charges_per_page(self, db, manager, make_user) -> None:
        user = await make_user(credits=10)
        unit = UploadUnit(file_name="scan.tiff", data=b"tiff", page_count=4, content_type="image/tiff")

        session = await manager.create_session(user.id, [unit], model_id="prebuilt-invoice")

        job = (await manager.get_jobs(session.id))[0]
        assert session.total_units == 4
        assert job.credits_charged == 4
        assert job.blob_path.endswith(".tiff")

    async def test_rejects_empty_batch_and_unknown_user(self, manager, make_user) -> None:
        user = await make_user(credits=10)
        with pytest.raises(ValidationError):
            await manager.create_session(user.id, [], model_id="prebuilt-invoice")
        with pytest.raises(UserNotFoundError):
            await manager.create_session(
                uuid.uuid4(), [UploadUnit("a.pdf", b"a")], model_id="prebuilt-invoice"
            )


class TestGetSession:
    """Test suite for SessionManager.get_session()."""

    async def test_ownership_enforced(self, manager, make_user, make_session) -> None:
        owner = await make_user(credits=5)
        other = await make_user(credits=5)
        session = await make_session(owner, [b"p1"])

        assert (await manager.get_session(session.id, owner.id)).id == session.id
        with pytest.raises(PermissionDeniedError):
            await manager.get_session(session.id, other.id)
        with pytest.raises(SessionNotFoundError):
            await manager.get_session(uuid.uuid4())


class TestProgressAndAggregation:
    """Test suite for get_progress() and aggregate_status()."""

    async def test_progress_is_derived_from_jobs(self, manager, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1", b"p2"])
        await manager.tracker.poll_active_jobs()

        progress = await manager.get_progress(session)

        assert progress.status == SessionStatus.PROCESSING
        assert progress.processed_units == 0
        assert progress.total_units == 2

    async def test_mixed_outcomes_fail_session_and_refund_failed_unit(
        self, db, manager, extraction, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        session = await make_session(user, [b"p1", b"p2", b"p3"])
        extraction.succeed(b"p1", {"Total": "1"})
        extraction.succeed(b"p2", {"Total": "2"})
        extraction.fail(b"p3")
        await manager.tracker.poll_active_jobs()

        status = await manager.aggregate_status(session)

        stored = await manager.get_session(session.id)
        refunds = [
            row for row in await transaction_crud.get_for_session(db, session.id)
            if row.type == TransactionType.REFUND
        ]
        assert status == SessionStatus.FAILED
        assert stored.completed_units == 2
        assert stored.error_message == "1 of 3 units did not complete"
        assert stored.result_bundle_ref is None
        assert len(refunds) == 1
        assert await CreditLedger(db).balance(user.id) == 8

    async def test_all_completed_produces_bundle(
        self, manager, extraction, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1", b"p2"])
        await _complete_all(manager, extraction, session)

        status = await manager.aggregate_status(session)

        stored = await manager.get_session(session.id)
        assert status == SessionStatus.COMPLETED
        assert stored.post_processing_status == PostProcessingStatus.COMPLETED
        assert stored.result_bundle_ref in storage.objects

    async def test_aggregation_is_repeatable(self, manager, extraction, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await _complete_all(manager, extraction, session)

        first = await manager.aggregate_status(session)
        second = await manager.aggregate_status(session)

        assert first == second == SessionStatus.COMPLETED


class TestCancel:
    """Test suite for SessionManager.cancel()."""

    async def test_cancel_refunds_unfinished_jobs(
        self, db, manager, extraction, make_user, make_session
    ) -> None:
        user = await make_user(credits=10)
        session = await make_session(user, [b"p1", b"p2", b"p3"])
        extraction.succeed(b"p1", {"Total": "1"})
        await manager.tracker.poll_active_jobs()

        cancelled = await manager.cancel(session)

        statuses = sorted(job.status.value for job in await manager.get_jobs(session.id))
        assert cancelled.status == SessionStatus.CANCELLED
        assert statuses == ["cancelled", "cancelled", "completed"]
        assert await CreditLedger(db).balance(user.id) == 9
        assert await CreditLedger(db).reconcile(user.id)

    async def test_cancel_finished_session_rejected(
        self, manager, extraction, make_user, make_session
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await _complete_all(manager, extraction, session)
        await manager.aggregate_status(session)

        with pytest.raises(InvalidStateTransitionError):
            await manager.cancel(session)


class TestDownload:
    """Test suite for SessionManager.get_download_url()."""

    async def test_not_ready(self, manager, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        with pytest.raises(SessionNotReadyError):
            await manager.get_download_url(session)

    async def test_ready(self, manager, extraction, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await _complete_all(manager, extraction, session)
        await manager.aggregate_status(session)

        url, expires_in = await manager.get_download_url(session)

        assert url.startswith("https://blobs.test/")
        assert expires_in == 3600

    async def test_expired_even_if_bundle_exists(
        self, db, manager, extraction, make_user, make_session
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await _complete_all(manager, extraction, session)
        await manager.aggregate_status(session)
        await session_crud.update_by_id(db, session.id, expires_at=utcnow() - timedelta(minutes=1))
        await db.commit()

        with pytest.raises(SessionExpiredError):
            await manager.get_download_url(session)


class TestAdministrative:
    """Test suite for accelerate_expiration() and reprocess()."""

    async def test_accelerate_only_moves_earlier(self, manager, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])

        updated = await manager.accelerate_expiration(session)

        assert ensure_utc(updated.expires_at) <= utcnow()
        with pytest.raises(ValidationError):
            await manager.accelerate_expiration(session, utcnow() + timedelta(days=2))

    async def test_reprocess_after_bundling_failure(
        self, db, manager, extraction, storage, make_user, make_session
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await _complete_all(manager, extraction, session)
        session_id = session.id
        blob_path = (await manager.get_jobs(session_id))[0].blob_path
        blob = storage.objects.pop(blob_path)

        assert await manager.aggregate_status(session) == SessionStatus.FAILED
        failed = await manager.get_session(session_id)
        assert failed.post_processing_status == PostProcessingStatus.FAILED

        storage.objects[blob_path] = blob
        reprocessed = await manager.reprocess(failed)

        assert reprocessed.status == SessionStatus.COMPLETED
        assert reprocessed.result_bundle_ref in storage.objects

    async def test_reprocess_rejects_job_failures(
        self, manager, extraction, make_user, make_session
    ) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        extraction.fail(b"p1")
        await manager.tracker.poll_active_jobs()
        await manager.aggregate_status(session)

        with pytest.raises(InvalidStateTransitionError):
            await manager.reprocess(session)

    async def test_reprocess_expired_session(self, db, manager, make_user, make_session) -> None:
        user = await make_user(credits=5)
        session = await make_session(user, [b"p1"])
        await manager.accelerate_expiration(session)

        with pytest.raises(SessionExpiredError):
            await manager.reprocess(session)
