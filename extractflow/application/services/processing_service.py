"""
Background processing cycles.

One polling cycle submits queued jobs, polls in-flight ones and
re-aggregates every session whose jobs were touched. One cleanup cycle
runs the expiration sweep. Both are driven by the Celery beat schedule.

Dependencies: extractflow.core
System role: Background loop bodies
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.CRUD.session_crud import session_crud
from extractflow.boundary.db.models import SessionStatus
from extractflow.boundary.extraction.base import ExtractionClient
from extractflow.boundary.storage.base import BlobStorage
from extractflow.configs import Settings, get_settings
from extractflow.core.cleanup_engine import CleanupEngine
from extractflow.core.session_manager import SessionManager
from extractflow.observability.log_utils import log_exception_with_context

logger = logging.getLogger(__name__)


class ProcessingService:
    """Bodies of the poller and cleanup loops."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        extraction_client: ExtractionClient,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize processing service.

        Args:
            db: Async SQLAlchemy session
            storage: Blob storage
            extraction_client: Extraction service client
            settings: Application settings (cached settings when omitted)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.manager = SessionManager(
            db,
            storage,
            extraction_client,
            processing=self.settings.processing,
            environment=self.settings.environment,
        )
        self.cleanup_engine = CleanupEngine(db, storage)

    async def poll_cycle(self) -> dict:
        """
        Run one polling cycle.

        Returns:
            dict: Counts of touched and aggregated sessions
        """
        batch_size = self.settings.processing.polling_batch_size
        touched = await self.manager.tracker.poll_active_jobs(limit=batch_size)

        # Sessions whose last aggregation was interrupted are picked up again here.
        pending = await session_crud.get_by_statuses(
            self.db,
            [SessionStatus.UPLOADING, SessionStatus.PROCESSING, SessionStatus.POST_PROCESSING],
            limit=batch_size,
        )
        session_ids = set(touched) | {s.id for s in pending}

        aggregated = 0
        for session_id in session_ids:
            try:
                session = await session_crud.get_by_id(self.db, session_id)
                if session is None:
                    continue
                await self.manager.aggregate_status(session)
                aggregated += 1
            except Exception as e:
                await self.db.rollback()
                log_exception_with_context(
                    logger, "Session aggregation failed", e, session_id=session_id
                )

        if touched:
            logger.debug(
                f"{__name__}:poll_cycle - touched={len(touched)} aggregated={aggregated}"
            )
        return {"sessions_touched": len(touched), "sessions_aggregated": aggregated}

    async def cleanup_cycle(self) -> dict:
        """Run one expiration sweep and return its log."""
        log = await self.cleanup_engine.sweep()
        return {
            "cleanup_log_id": str(log.id),
            "status": log.status.value,
            "sessions_expired": log.sessions_expired,
            "jobs_expired": log.jobs_expired,
            "blobs_deleted": log.blobs_deleted,
        }
