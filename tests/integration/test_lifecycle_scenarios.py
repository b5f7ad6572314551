"""
End-to-end session lifecycle scenarios.

Drives sessions through upload, the background poller, cancellation,
download and the expiration sweep against the in-memory database.

System role: Verification of cross-module lifecycle guarantees
"""

from datetime import timedelta
from io import BytesIO

import pytest
from pypdf import PdfWriter
from sqlalchemy import func, select

from extractflow.application.services.processing_service import ProcessingService
from extractflow.application.services.session_service import SessionService
from extractflow.boundary.db import (
    JobModel,
    JobStatus,
    SessionModel,
    SessionStatus,
    TransactionType,
    job_crud,
    session_crud,
    transaction_crud,
    utcnow,
)
from extractflow.configs import Settings
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import InsufficientCreditsError, SessionExpiredError


def _pdf(pages: int) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=72, height=72)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


@pytest.fixture
def settings(processing) -> Settings:
    return Settings(environment="test", processing=processing)


@pytest.fixture
def sessions(db, storage, settings) -> SessionService:
    return SessionService(db, storage, settings)


@pytest.fixture
def worker(db, storage, extraction, settings) -> ProcessingService:
    return ProcessingService(db, storage, extraction, settings)


async def _count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


async def test_upload_beyond_balance_persists_nothing(db, sessions, storage, make_user):
    user = await make_user(credits=10)
    user_id = user.id

    with pytest.raises(InsufficientCreditsError):
        await sessions.create_session(user_id, [("statement.pdf", _pdf(12), "application/pdf")])

    assert await _count(db, SessionModel) == 0
    assert await _count(db, JobModel) == 0
    assert storage.objects == {}
    assert await CreditLedger(db).balance(user_id) == 10
    assert await CreditLedger(db).reconcile(user_id)


async def test_one_failed_job_fails_session_and_refunds_only_it(
    db, worker, extraction, make_user, make_session
):
    user = await make_user(credits=10)
    user_id = user.id
    session = await make_session(user, [b"p1", b"p2", b"p3"])
    session_id = session.id
    extraction.succeed(b"p1", {"Total": "1"})
    extraction.reject.add(b"p2")
    extraction.succeed(b"p3", {"Total": "3"})

    await worker.poll_cycle()

    stored = await session_crud.get_by_id(db, session_id)
    jobs = {job.page_number: job for job in await job_crud.get_by_session(db, session_id)}
    refunds = [
        row
        for row in await transaction_crud.get_for_user(db, user_id)
        if row.type == TransactionType.REFUND
    ]

    assert stored.status == SessionStatus.FAILED
    assert stored.result_bundle_ref is None
    assert jobs[1].status == JobStatus.COMPLETED
    assert jobs[2].status == JobStatus.FAILED
    assert jobs[3].status == JobStatus.COMPLETED
    assert [r.job_id for r in refunds] == [jobs[2].id]
    assert await CreditLedger(db).balance(user_id) == 8
    assert await CreditLedger(db).reconcile(user_id)


async def test_completed_session_downloads_until_expiry(
    db, sessions, worker, extraction, make_user, make_session
):
    user = await make_user(credits=5)
    user_id = user.id
    session = await make_session(user, [b"p1"])
    session_id = session.id
    extraction.succeed(b"p1", {"Total": "1"})

    await worker.poll_cycle()
    download = await sessions.get_download(session_id, user_id)

    assert download["url"].startswith("https://blobs.test/")
    assert download["expires_in"] == 3600

    await session_crud.update_by_id(db, session_id, expires_at=utcnow() - timedelta(seconds=1))
    await db.commit()

    with pytest.raises(SessionExpiredError):
        await sessions.get_download(session_id, user_id)


async def test_cancel_mid_flight_then_poller_leaves_it(
    db, sessions, worker, extraction, make_user, make_session
):
    user = await make_user(credits=5)
    user_id = user.id
    session = await make_session(user, [b"p1", b"p2"])
    session_id = session.id
    await worker.poll_cycle()

    await sessions.cancel(session_id, user_id)
    extraction.succeed(b"p1", {"Total": "1"})
    await worker.poll_cycle()

    stored = await session_crud.get_by_id(db, session_id)
    jobs = await job_crud.get_by_session(db, session_id)
    assert stored.status == SessionStatus.CANCELLED
    assert {job.status for job in jobs} == {JobStatus.CANCELLED}
    assert await CreditLedger(db).balance(user_id) == 5


async def test_double_sweep_over_expired_session(
    db, worker, storage, make_user, make_session
):
    user = await make_user(credits=5)
    user_id = user.id
    session = await make_session(user, [b"p1", b"p2"])
    session_id, prefix = session.id, session.blob_prefix
    await worker.poll_cycle()
    await session_crud.update_by_id(db, session_id, expires_at=utcnow() - timedelta(minutes=1))
    await db.commit()

    first = await worker.cleanup_cycle()
    second = await worker.cleanup_cycle()

    assert (first["sessions_expired"], first["jobs_expired"], first["blobs_deleted"]) == (1, 2, 2)
    assert (second["sessions_expired"], second["jobs_expired"], second["blobs_deleted"]) == (0, 0, 0)
    assert storage.keys_under(prefix) == []
    assert (await session_crud.get_by_id(db, session_id)).status == SessionStatus.EXPIRED
    assert await CreditLedger(db).balance(user_id) == 5
    assert await CreditLedger(db).reconcile(user_id)
