"""
Expiration and cleanup sweep.

Expires sessions past their TTL, expires (and refunds) their unfinished
jobs, deletes their blobs and records every sweep in cleanup_logs.
Sessions already EXPIRED whose blobs were not deleted are retried on the
next sweep. A sweep over already-cleaned data changes nothing.

Dependencies: sqlalchemy, extractflow.boundary, extractflow.core.job_tracker
System role: Storage and lifecycle reclamation
"""

import asyncio
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.base import utcnow
from extractflow.boundary.db.CRUD.cleanup_log_crud import cleanup_log_crud
from extractflow.boundary.db.CRUD.job_crud import job_crud
from extractflow.boundary.db.CRUD.session_crud import session_crud
from extractflow.boundary.db.models import (
    FINAL_JOB_STATUSES,
    CleanupLogModel,
    CleanupStatus,
    JobStatus,
    SessionStatus,
)
from extractflow.boundary.storage.base import BlobStorage
from extractflow.core.exceptions import CleanupItemError
from extractflow.core.job_tracker import JobTracker
from extractflow.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
)

logger = logging.getLogger(__name__)

_EXPIRABLE_SESSION_STATUSES = [s for s in SessionStatus if s != SessionStatus.EXPIRED]
_FINISHED_JOB_STATUSES = [s for s in FINAL_JOB_STATUSES if s != JobStatus.EXPIRED]


class CleanupEngine:
    """Runs expiration sweeps."""

    def __init__(self, db: AsyncSession, storage: BlobStorage) -> None:
        """
        Initialize cleanup engine.

        Args:
            db: Async database session
            storage: Blob storage to reclaim
        """
        self.db = db
        self.storage = storage
        self.tracker = JobTracker(db, None, storage)

    async def sweep(self, now: datetime | None = None) -> CleanupLogModel:
        """
        Run one expiration sweep.

        Per-item failures are recorded and the sweep continues
        (COMPLETED_WITH_ERRORS); anything else marks the sweep FAILED.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            CleanupLogModel: The sweep's log row
        """
        now = now or utcnow()
        log = await cleanup_log_crud.create(
            self.db,
            started_at=now,
            status=CleanupStatus.RUNNING,
            errors=[],
        )
        log_id = log.id
        await self.db.commit()

        counts = {
            "sessions_processed": 0,
            "sessions_expired": 0,
            "jobs_expired": 0,
            "blobs_deleted": 0,
        }
        errors: list[str] = []

        try:
            due = [
                (s.id, s.blob_prefix)
                for s in await session_crud.get_due_for_cleanup(self.db, now)
            ]
            for session_id, prefix in due:
                try:
                    expired, jobs_expired, blobs = await self._expire_session(session_id, prefix)
                except Exception as e:
                    await self.db.rollback()
                    item_error = e if isinstance(e, CleanupItemError) else CleanupItemError(
                        f"Session cleanup failed: {e}", item_id=str(session_id)
                    )
                    log_exception_with_context(
                        logger, "Session cleanup failed", e, session_id=session_id
                    )
                    errors.append(str(item_error))
                    continue
                counts["sessions_processed"] += 1
                counts["sessions_expired"] += int(expired)
                counts["jobs_expired"] += jobs_expired
                counts["blobs_deleted"] += blobs

            standalone = [
                j.id for j in await job_crud.get_expired_standalone(self.db, now)
            ]
            for job_id in standalone:
                try:
                    expired, blobs = await self._expire_standalone_job(job_id)
                except Exception as e:
                    await self.db.rollback()
                    log_exception_with_context(logger, "Job cleanup failed", e, job_id=job_id)
                    errors.append(
                        str(CleanupItemError(f"Job cleanup failed: {e}", item_id=str(job_id)))
                    )
                    continue
                counts["jobs_expired"] += int(expired)
                counts["blobs_deleted"] += blobs

            status = CleanupStatus.COMPLETED_WITH_ERRORS if errors else CleanupStatus.COMPLETED
        except Exception as e:
            await self.db.rollback()
            log_exception_with_context(logger, "Cleanup sweep failed", e, cleanup_log_id=log_id)
            errors.append(f"Sweep aborted: {e}")
            status = CleanupStatus.FAILED

        result = await cleanup_log_crud.update_by_id(
            self.db,
            log_id,
            completed_at=utcnow(),
            status=status,
            errors=errors,
            **counts,
        )
        await self.db.commit()

        log_with_context(
            logger,
            logging.INFO if status != CleanupStatus.FAILED else logging.ERROR,
            "Cleanup sweep finished",
            cleanup_log_id=log_id,
            sweep_status=status.value,
            error_count=len(errors),
            **counts,
        )
        return result

    async def _expire_session(self, session_id: UUID, prefix: str) -> tuple[bool, int, int]:
        """
        Expire one session and purge its storage.

        Returns:
            tuple: (session transitioned, jobs expired, blobs deleted)
        """
        if not prefix or str(session_id) not in prefix:
            raise CleanupItemError(
                f"Refusing to delete prefix {prefix!r} not scoped to session {session_id}",
                item_id=str(session_id),
            )

        expired = await session_crud.transition(
            self.db,
            session_id,
            _EXPIRABLE_SESSION_STATUSES,
            SessionStatus.EXPIRED,
        )

        jobs_expired = 0
        for job in await job_crud.get_by_session(self.db, session_id):
            if await self.tracker.expire_job(job):
                jobs_expired += 1
        # Lifecycle change sticks even if blob deletion fails below.
        await self.db.commit()

        blobs = await asyncio.to_thread(self.storage.delete_prefix, prefix)
        await session_crud.update_by_id(self.db, session_id, storage_purged_at=utcnow())
        await self.db.commit()
        return expired, jobs_expired, blobs

    async def _expire_standalone_job(self, job_id: UUID) -> tuple[bool, int]:
        job = await job_crud.get_by_id(self.db, job_id)
        if job is None:
            return False, 0

        # Delete before the status change; a failed delete is retried next sweep.
        deleted = await asyncio.to_thread(self.storage.delete, job.blob_path)

        # Unfinished jobs are refunded, finished ones keep their charge.
        expired = await self.tracker.expire_job(job) or await job_crud.transition(
            self.db, job.id, _FINISHED_JOB_STATUSES, JobStatus.EXPIRED
        )
        await self.db.commit()
        return expired, int(deleted)
