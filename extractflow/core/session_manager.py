"""
Session lifecycle management.

Creates charged sessions with one job per unit, derives and records the
session status from its jobs, hands fully completed sessions to
post-processing, and implements cancel, download and the administrative
expiration/reprocess operations.

Dependencies: sqlalchemy, extractflow.boundary, extractflow.core
System role: Aggregation of jobs into sessions
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Sequence
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.base import ensure_utc, utcnow
from extractflow.boundary.db.CRUD.job_crud import job_crud
from extractflow.boundary.db.CRUD.session_crud import session_crud
from extractflow.boundary.db.CRUD.user_crud import user_crud
from extractflow.boundary.db.models import (
    JobModel,
    JobStatus,
    PostProcessingStatus,
    SessionModel,
    SessionStatus,
)
from extractflow.boundary.extraction.base import ExtractionClient
from extractflow.boundary.storage.base import BlobStorage
from extractflow.boundary.storage.keys import session_prefix, unit_key
from extractflow.configs.processing import ProcessingSettings
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.exceptions import (
    BundlingError,
    InvalidStateTransitionError,
    PermissionDeniedError,
    SessionExpiredError,
    SessionNotFoundError,
    SessionNotReadyError,
    UserNotFoundError,
    ValidationError,
)
from extractflow.core.job_tracker import JobTracker
from extractflow.core.post_processing import PostProcessor
from extractflow.core.status import ACTIVE_SESSION_STATUSES, derive_session_status
from extractflow.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


@dataclass
class UploadUnit:
    """One unit to be routed as a single job."""

    file_name: str
    data: bytes
    page_number: int = 1
    page_count: int = 1
    content_type: str = "application/pdf"


@dataclass
class SessionProgress:
    """Client-facing snapshot of a session."""

    status: SessionStatus
    processed_units: int
    total_units: int
    error: str | None = None


def _completed_units(session: SessionModel, jobs: Sequence[JobModel]) -> int:
    done = sum(job.page_count for job in jobs if job.status == JobStatus.COMPLETED)
    return min(done, session.total_units)


def _failure_summary(jobs: Sequence[JobModel]) -> str:
    failed = [job for job in jobs if job.status != JobStatus.COMPLETED]
    return f"{len(failed)} of {len(jobs)} units did not complete"


class SessionManager:
    """Session creation, status aggregation and lifecycle operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        extraction_client: ExtractionClient | None = None,
        processing: ProcessingSettings | None = None,
        environment: str = "development",
        download_url_expiry: int = 3600,
    ) -> None:
        """
        Initialize session manager.

        Args:
            db: Async database session
            storage: Blob storage for unit bytes and bundles
            extraction_client: Extraction client (only the poller needs one)
            processing: TTL, pricing and polling settings
            environment: Storage namespace (development, production, ...)
            download_url_expiry: Lifetime of bundle download links in seconds
        """
        self.db = db
        self.storage = storage
        self.processing = processing or ProcessingSettings()
        self.environment = environment
        self.download_url_expiry = download_url_expiry
        self.ledger = CreditLedger(db)
        self.tracker = JobTracker(
            db,
            extraction_client,
            storage,
            poll_timeout_minutes=self.processing.poll_timeout_minutes,
        )
        self.post_processor = PostProcessor(db, storage)

    async def create_session(
        self,
        user_id: UUID,
        units: Sequence[UploadUnit],
        *,
        model_id: str,
        naming_template: list[dict[str, Any]] | None = None,
        column_config: dict[str, Any] | None = None,
        field_transformations: dict[str, dict[str, Any]] | None = None,
    ) -> SessionModel:
        """
        Create a charged session with one QUEUED job per unit.

        All or nothing: on any failure (including insufficient credits) no
        session, job or transaction survives, the balance is unchanged and
        blobs already written are deleted.

        Args:
            user_id: Owner
            units: Units to process
            model_id: Extraction model for every job
            naming_template: Ordered naming elements
            column_config: Spreadsheet configuration
            field_transformations: Per-field value transforms

        Returns:
            SessionModel: Created session in UPLOADING

        Raises:
            ValidationError: No units or a unit without pages
            UserNotFoundError: Unknown user
            InsufficientCreditsError: Balance below the session cost
        """
        if not units:
            raise ValidationError("A session needs at least one unit", field="units")
        if any(unit.page_count < 1 for unit in units):
            raise ValidationError("Every unit must have at least one page", field="units")

        if await user_crud.get_by_id(self.db, user_id) is None:
            raise UserNotFoundError(str(user_id))

        session_id = uuid4()
        now = utcnow()
        expires_at = now + timedelta(hours=self.processing.session_ttl_hours)
        prefix = session_prefix(self.environment, user_id, session_id)
        total_units = sum(unit.page_count for unit in units)
        per_page = self.processing.credits_per_page
        written: list[str] = []

        try:
            session = await session_crud.create(
                self.db,
                id=session_id,
                user_id=user_id,
                status=SessionStatus.UPLOADING,
                total_units=total_units,
                completed_units=0,
                created_at=now,
                updated_at=now,
                expires_at=expires_at,
                model_id=model_id,
                blob_prefix=prefix,
                naming_template=naming_template or [],
                column_config=column_config or {},
                field_transformations=field_transformations or {},
            )

            await self.ledger.debit(
                user_id,
                total_units * per_page,
                f"Extraction of {total_units} pages",
                session_id=session_id,
            )

            for unit in units:
                job_id = uuid4()
                key = unit_key(prefix, job_id, unit.file_name)
                await job_crud.create(
                    self.db,
                    id=job_id,
                    session_id=session_id,
                    user_id=user_id,
                    status=JobStatus.QUEUED,
                    file_name=unit.file_name,
                    page_number=unit.page_number,
                    page_count=unit.page_count,
                    credits_charged=unit.page_count * per_page,
                    blob_path=key,
                    model_id=model_id,
                    expires_at=expires_at,
                )
                await asyncio.to_thread(self.storage.put, key, unit.data, unit.content_type)
                written.append(key)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            await self._discard_blobs(written)
            raise

        log_with_context(
            logger,
            logging.INFO,
            "Session created",
            session_id=session_id,
            user_id=user_id,
            total_units=total_units,
            job_count=len(units),
        )
        return session

    async def _discard_blobs(self, keys: list[str]) -> None:
        for key in keys:
            try:
                await asyncio.to_thread(self.storage.delete, key)
            except Exception as e:
                logger.warning(f"{__name__}:create_session - Could not delete orphan blob {key}: {e}")

    async def get_session(self, session_id: UUID, user_id: UUID | None = None) -> SessionModel:
        """
        Load a session, optionally enforcing ownership.

        Raises:
            SessionNotFoundError: No such session
            PermissionDeniedError: user_id given and not the owner
        """
        session = await session_crud.get_by_id(self.db, session_id)
        if session is None:
            raise SessionNotFoundError(str(session_id))
        if user_id is not None and session.user_id != user_id:
            raise PermissionDeniedError(
                "Session belongs to another user", {"session_id": str(session_id)}
            )
        return session

    async def list_sessions(
        self,
        user_id: UUID,
        limit: int | None = None,
        offset: int = 0,
    ) -> Sequence[SessionModel]:
        """A user's sessions, newest first."""
        return await session_crud.get_for_user(self.db, user_id, limit=limit, offset=offset)

    async def get_jobs(self, session_id: UUID) -> Sequence[JobModel]:
        """Every job of a session in upload order."""
        return await job_crud.get_by_session(self.db, session_id)

    async def get_progress(self, session: SessionModel) -> SessionProgress:
        """
        Snapshot of a session for clients.

        Derived from stored rows only; never calls external services.

        Args:
            session: Session to describe

        Returns:
            SessionProgress: status, processed/total units and error
        """
        jobs = await job_crud.get_by_session(self.db, session.id)
        status = derive_session_status(session.status, [job.status for job in jobs])

        error = session.error_message
        if status == SessionStatus.FAILED and not error and jobs:
            error = _failure_summary(jobs)

        return SessionProgress(
            status=status,
            processed_units=_completed_units(session, jobs),
            total_units=session.total_units,
            error=error,
        )

    async def aggregate_status(self, session: SessionModel) -> SessionStatus:
        """
        Record the status derived from the session's jobs.

        Updates completed_units, fails the session when every job is final
        and at least one did not complete, and hands fully completed
        sessions to post-processing.

        Args:
            session: Session to aggregate

        Returns:
            SessionStatus: Status after aggregation
        """
        current = await self.get_session(session.id)
        # Post-processing may roll back, which expires loaded rows.
        session_id = current.id
        stored_status = current.status
        jobs = await job_crud.get_by_session(self.db, session_id)
        derived = derive_session_status(stored_status, [job.status for job in jobs])
        completed_units = _completed_units(current, jobs)

        if stored_status in ACTIVE_SESSION_STATUSES:
            if derived == SessionStatus.FAILED:
                await session_crud.transition(
                    self.db,
                    session_id,
                    ACTIVE_SESSION_STATUSES,
                    SessionStatus.FAILED,
                    completed_units=completed_units,
                    error_message=_failure_summary(jobs),
                )
            else:
                await session_crud.transition(
                    self.db,
                    session_id,
                    ACTIVE_SESSION_STATUSES,
                    derived,
                    completed_units=completed_units,
                )
            await self.db.commit()

        if derived == SessionStatus.POST_PROCESSING and current.post_processing_status is None:
            try:
                await self.post_processor.run(session_id)
            except BundlingError as e:
                log_with_context(
                    logger,
                    logging.ERROR,
                    "Session failed during bundling",
                    session_id=session_id,
                    error_detail=e.message,
                )

        final = await self.get_session(session_id)
        if final.status != stored_status:
            log_with_context(
                logger,
                logging.INFO,
                "Session status changed",
                session_id=session_id,
                from_status=stored_status.value,
                to_status=final.status.value,
            )
        return final.status

    async def cancel(self, session: SessionModel) -> SessionModel:
        """
        Cancel a session and refund its unfinished jobs.

        Completed jobs keep their charge.

        Raises:
            InvalidStateTransitionError: Session is not UPLOADING or PROCESSING
        """
        current = await self.get_session(session.id)
        session_id = current.id
        if current.status not in ACTIVE_SESSION_STATUSES:
            raise InvalidStateTransitionError(
                f"Cannot cancel a session in status {current.status.value}",
                current_status=current.status.value,
            )

        won = await session_crud.transition(
            self.db,
            session_id,
            ACTIVE_SESSION_STATUSES,
            SessionStatus.CANCELLED,
            error_message="Cancelled by user",
        )
        if not won:
            await self.db.rollback()
            latest = await self.get_session(session_id)
            raise InvalidStateTransitionError(
                f"Cannot cancel a session in status {latest.status.value}",
                current_status=latest.status.value,
            )

        cancelled = 0
        for job in await job_crud.get_by_session(self.db, session_id):
            if await self.tracker.cancel_job(job):
                cancelled += 1
        await self.db.commit()

        log_with_context(
            logger,
            logging.INFO,
            "Session cancelled",
            session_id=session_id,
            jobs_cancelled=cancelled,
        )
        return await self.get_session(session_id)

    async def get_download_url(self, session: SessionModel) -> tuple[str, int]:
        """
        Time-limited link to the result bundle.

        Raises:
            SessionExpiredError: Past expires_at or EXPIRED, even if the bundle still exists
            SessionNotReadyError: Bundle not produced yet

        Returns:
            tuple[str, int]: URL and its lifetime in seconds
        """
        current = await self.get_session(session.id)
        if current.status == SessionStatus.EXPIRED or utcnow() > ensure_utc(current.expires_at):
            raise SessionExpiredError(str(current.id))
        if current.status != SessionStatus.COMPLETED or not current.result_bundle_ref:
            raise SessionNotReadyError(
                "Result bundle is not available yet",
                current_status=current.status.value,
            )

        expires_in = self.download_url_expiry
        url = await asyncio.to_thread(
            self.storage.generate_download_url, current.result_bundle_ref, expires_in
        )
        return url, expires_in

    async def accelerate_expiration(
        self,
        session: SessionModel,
        expires_at: datetime | None = None,
    ) -> SessionModel:
        """
        Move a session's expiry earlier (administrative).

        Args:
            session: Session to expire sooner
            expires_at: New expiry; now when omitted. Naive values are UTC.

        Raises:
            ValidationError: The new expiry is not earlier than the current one
        """
        target = ensure_utc(expires_at) if expires_at else utcnow()
        if not await session_crud.shorten_expiry(self.db, session.id, target):
            current = await self.get_session(session.id)
            raise ValidationError(
                "Expiration can only be moved earlier",
                field="expires_at",
                details={"current_expires_at": ensure_utc(current.expires_at).isoformat()},
            )
        await self.db.commit()

        log_with_context(
            logger,
            logging.INFO,
            "Session expiration accelerated",
            session_id=session.id,
            expires_at=target.isoformat(),
        )
        return await self.get_session(session.id)

    async def reprocess(self, session: SessionModel) -> SessionModel:
        """
        Re-run post-processing after a bundling failure (administrative).

        Raises:
            InvalidStateTransitionError: Session did not fail during bundling
            SessionExpiredError: Session is past its TTL
            BundlingError: The new attempt failed too
        """
        current = await self.get_session(session.id)
        if current.status == SessionStatus.EXPIRED or utcnow() > ensure_utc(current.expires_at):
            raise SessionExpiredError(str(current.id))

        jobs = await job_crud.get_by_session(self.db, current.id)
        all_completed = bool(jobs) and all(job.status == JobStatus.COMPLETED for job in jobs)
        if current.post_processing_status != PostProcessingStatus.FAILED or not all_completed:
            raise InvalidStateTransitionError(
                "Only sessions whose bundling failed can be reprocessed",
                current_status=current.status.value,
            )

        reset = await session_crud.transition(
            self.db,
            current.id,
            [SessionStatus.FAILED],
            SessionStatus.POST_PROCESSING,
            post_processing_status=None,
            error_message=None,
        )
        if not reset:
            raise InvalidStateTransitionError(
                "Session changed while preparing reprocessing",
                current_status=current.status.value,
            )
        await self.db.commit()

        return await self.post_processor.run(current.id)
