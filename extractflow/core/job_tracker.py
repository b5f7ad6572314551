"""
Job state machine.

QUEUED -> UPLOADING -> PROCESSING -> POLLING -> {COMPLETED | FAILED};
any non-final state -> CANCELLED or EXPIRED.

Every status change is a conditional update on the expected prior status.
Only the caller that wins a terminal transition stores results or refunds.

Dependencies: sqlalchemy, extractflow.boundary, extractflow.core.credit_ledger
System role: Per-unit submission, polling and terminal transitions
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.base import ensure_utc, utcnow
from extractflow.boundary.db.CRUD.job_crud import job_crud
from extractflow.boundary.db.CRUD.session_crud import session_crud
from extractflow.boundary.db.models import ACTIVE_JOB_STATUSES, JobModel, JobStatus
from extractflow.boundary.extraction.base import ExtractionClient, ExtractionStatus
from extractflow.boundary.storage.base import BlobStorage
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import (
    ExtractFlowException,
    ExternalServiceError,
    JobNotFoundError,
    PollTimeoutError,
)
from extractflow.core.status import ACTIVE_SESSION_STATUSES
from extractflow.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
)

logger = logging.getLogger(__name__)

_STALLABLE_JOB_STATUSES = [JobStatus.UPLOADING, JobStatus.PROCESSING]


@dataclass
class JobStatusUpdate:
    """Result of one tracker step on a job."""

    job_id: UUID
    session_id: UUID | None
    status: JobStatus
    changed: bool


class JobTracker:
    """
    Drives jobs through the extraction service.

    submit and poll_once commit their own work, one job at a time, so a
    failure on one job never rolls back another. cancel_job and expire_job
    run inside the caller's unit of work and do not commit.
    """

    def __init__(
        self,
        db: AsyncSession,
        extraction_client: ExtractionClient,
        storage: BlobStorage,
        poll_timeout_minutes: int = 30,
    ) -> None:
        """
        Initialize job tracker.

        Args:
            db: Async database session
            extraction_client: Extraction service client
            storage: Blob storage holding unit bytes
            poll_timeout_minutes: Hard ceiling on time spent in POLLING
        """
        self.db = db
        self.extraction_client = extraction_client
        self.storage = storage
        self.poll_timeout = timedelta(minutes=poll_timeout_minutes)
        self.ledger = CreditLedger(db)

    async def submit(self, job: JobModel) -> JobModel:
        """
        Send a QUEUED job to the extraction service.

        Args:
            job: Job to submit

        Returns:
            JobModel: Job reloaded after the step
        """
        if not await job_crud.transition(
            self.db, job.id, [JobStatus.QUEUED], JobStatus.UPLOADING
        ):
            return await self._reload(job.id)
        await self.db.commit()

        try:
            data = await asyncio.to_thread(self.storage.get, job.blob_path)
            operation_ref = await self.extraction_client.submit(data, job.model_id)
        except Exception as e:
            log_exception_with_context(
                logger, "Job submission failed", e, job_id=job.id, session_id=job.session_id
            )
            message = e.message if isinstance(e, ExtractFlowException) else f"Submission failed: {e}"
            await self._fail(job, [JobStatus.UPLOADING], message)
            await self.db.commit()
            return await self._reload(job.id)

        accepted = await job_crud.transition(
            self.db,
            job.id,
            [JobStatus.UPLOADING],
            JobStatus.PROCESSING,
            external_operation_ref=operation_ref,
        )
        if accepted:
            await job_crud.transition(
                self.db,
                job.id,
                [JobStatus.PROCESSING],
                JobStatus.POLLING,
                polling_started_at=utcnow(),
            )
        else:
            logger.warning(
                f"{__name__}:submit - Job {job.id} left UPLOADING during submission, "
                f"operation {operation_ref} abandoned"
            )
        await self.db.commit()

        log_with_context(
            logger,
            logging.INFO,
            "Job submitted",
            job_id=job.id,
            session_id=job.session_id,
            accepted=accepted,
        )
        return await self._reload(job.id)

    async def poll_once(self, job: JobModel) -> JobStatusUpdate:
        """
        Check a POLLING job's external operation once.

        No-op unless the job is POLLING and its session is still active.
        Transport errors are logged and the job is retried next cycle,
        bounded by the polling ceiling.

        Args:
            job: Job to poll

        Returns:
            JobStatusUpdate: Status after the poll and whether it changed
        """
        current = await self._reload(job.id)
        unchanged = JobStatusUpdate(current.id, current.session_id, current.status, False)

        if current.status != JobStatus.POLLING:
            return unchanged

        if current.session_id is not None:
            owner = await session_crud.get_by_id(self.db, current.session_id)
            if owner is None or owner.status not in ACTIVE_SESSION_STATUSES:
                return unchanged

        now = utcnow()
        started = ensure_utc(current.polling_started_at) or now
        if now - started > self.poll_timeout:
            timeout = PollTimeoutError(
                f"Polling exceeded {int(self.poll_timeout.total_seconds() // 60)} minutes",
                operation_ref=current.external_operation_ref,
            )
            failed = await self._fail(current, [JobStatus.POLLING], timeout.message)
            await self.db.commit()
            return JobStatusUpdate(current.id, current.session_id, JobStatus.FAILED, failed)

        try:
            result = await self.extraction_client.poll(current.external_operation_ref)
        except ExternalServiceError as e:
            log_exception_with_context(
                logger, "Poll failed, retrying next cycle", e, job_id=current.id
            )
            await job_crud.transition(
                self.db, current.id, [JobStatus.POLLING], JobStatus.POLLING, last_polled_at=now
            )
            await self.db.commit()
            return unchanged

        if result.status == ExtractionStatus.SUCCEEDED:
            won = await job_crud.transition(
                self.db,
                current.id,
                [JobStatus.POLLING],
                JobStatus.COMPLETED,
                extracted_fields=result.fields,
                last_polled_at=now,
                completed_at=now,
            )
            await self.db.commit()
            return JobStatusUpdate(current.id, current.session_id, JobStatus.COMPLETED, won)

        if result.status == ExtractionStatus.FAILED:
            won = await self._fail(
                current, [JobStatus.POLLING], result.error or "Extraction failed", last_polled_at=now
            )
            await self.db.commit()
            return JobStatusUpdate(current.id, current.session_id, JobStatus.FAILED, won)

        await job_crud.transition(
            self.db, current.id, [JobStatus.POLLING], JobStatus.POLLING, last_polled_at=now
        )
        await self.db.commit()
        return unchanged

    async def poll_active_jobs(self, limit: int = 100) -> set[UUID]:
        """
        Run one cycle of the background poller.

        Fails jobs stalled in UPLOADING or PROCESSING past the polling
        ceiling, submits QUEUED jobs, then polls POLLING jobs. A job that
        raises an unexpected error is logged and rolled back without
        stopping the cycle.

        Args:
            limit: Maximum jobs of each kind handled per cycle

        Returns:
            set[UUID]: Sessions whose jobs were touched
        """
        touched: set[UUID] = set()

        for job_id, session_id in await self._recover_stalled(limit):
            if session_id is not None:
                touched.add(session_id)

        # Rollback expires loaded rows, so work from ids and reload per job.
        queued = [
            (j.id, j.session_id)
            for j in await job_crud.get_by_status(self.db, JobStatus.QUEUED, limit=limit)
        ]
        for job_id, session_id in queued:
            try:
                await self.submit(await self._reload(job_id))
            except Exception as e:
                await self.db.rollback()
                log_exception_with_context(logger, "Submit step crashed", e, job_id=job_id)
            if session_id is not None:
                touched.add(session_id)

        polling = [
            (j.id, j.session_id)
            for j in await job_crud.get_by_status(self.db, JobStatus.POLLING, limit=limit)
        ]
        for job_id, session_id in polling:
            try:
                await self.poll_once(await self._reload(job_id))
            except Exception as e:
                await self.db.rollback()
                log_exception_with_context(logger, "Poll step crashed", e, job_id=job_id)
            if session_id is not None:
                touched.add(session_id)

        return touched

    async def _recover_stalled(self, limit: int) -> list[tuple[UUID, UUID | None]]:
        """
        Fail and refund jobs a crashed submit left in a transient status.

        Returns:
            list: (job id, session id) of every job failed here
        """
        cutoff = utcnow() - self.poll_timeout
        stalled = [
            (j.id, j.session_id)
            for j in await job_crud.get_stalled(
                self.db, _STALLABLE_JOB_STATUSES, cutoff, limit=limit
            )
        ]
        recovered = []
        for job_id, session_id in stalled:
            try:
                job = await self._reload(job_id)
                if await self._fail(job, _STALLABLE_JOB_STATUSES, "Submission did not finish"):
                    recovered.append((job_id, session_id))
                await self.db.commit()
            except Exception as e:
                await self.db.rollback()
                log_exception_with_context(logger, "Stalled job recovery crashed", e, job_id=job_id)
        return recovered

    async def cancel_job(self, job: JobModel) -> bool:
        """
        Cancel a non-final job and refund it.

        Returns:
            bool: True if this call cancelled the job
        """
        return await self._finish_early(job, JobStatus.CANCELLED, "Cancelled by user")

    async def expire_job(self, job: JobModel) -> bool:
        """
        Expire a non-final job and refund it.

        Returns:
            bool: True if this call expired the job
        """
        return await self._finish_early(job, JobStatus.EXPIRED, "Expired before completion")

    async def _finish_early(self, job: JobModel, to_status: JobStatus, reason: str) -> bool:
        won = await job_crud.transition(
            self.db,
            job.id,
            ACTIVE_JOB_STATUSES,
            to_status,
            error=reason,
            completed_at=utcnow(),
        )
        if won:
            await self.ledger.refund_job(job)
        return won

    async def _fail(
        self,
        job: JobModel,
        from_statuses: list[JobStatus],
        error: str,
        **values,
    ) -> bool:
        won = await job_crud.transition(
            self.db,
            job.id,
            from_statuses,
            JobStatus.FAILED,
            error=error,
            completed_at=utcnow(),
            **values,
        )
        if won:
            await self.ledger.refund_job(job)
            log_with_context(
                logger, logging.WARNING, "Job failed", job_id=job.id, error_detail=error
            )
        return won

    async def _reload(self, job_id: UUID) -> JobModel:
        job = await job_crud.get_by_id(self.db, job_id)
        if job is None:
            raise JobNotFoundError(str(job_id))
        return job
