"""
Post-processing pipeline.

Runs once per session after every job completed: transforms field values,
renames each unit from the naming template, writes the spreadsheet report
and stores the zip bundle. A check-and-set on post_processing_status makes
sure only one worker ever runs it.

Dependencies: sqlalchemy, extractflow.boundary, extractflow.core.naming,
extractflow.core.bundling
System role: Result bundle production
"""

import asyncio
import logging
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.boundary.db.base import ensure_utc
from extractflow.boundary.db.CRUD.job_crud import job_crud
from extractflow.boundary.db.CRUD.session_crud import session_crud
from extractflow.boundary.db.models import (
    JobStatus,
    PostProcessingStatus,
    SessionModel,
    SessionStatus,
)
from extractflow.boundary.storage.base import BlobStorage
from extractflow.boundary.storage.keys import bundle_key
from extractflow.core.bundling import BundleEntry, ReportRow, build_bundle, build_report
from extractflow.core.exceptions import BundlingError, SessionNotFoundError
from extractflow.core.naming import FieldTransformer, FileNamer
from extractflow.observability.log_utils import (
    log_exception_with_context,
    log_with_context,
)

logger = logging.getLogger(__name__)


class PostProcessor:
    """Produces and stores the result bundle of a fully completed session."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        transformer: FieldTransformer | None = None,
        namer: FileNamer | None = None,
    ) -> None:
        """
        Initialize post-processor.

        Args:
            db: Async database session
            storage: Blob storage holding units and receiving the bundle
            transformer: Field value transformer
            namer: Naming template renderer
        """
        self.db = db
        self.storage = storage
        self.transformer = transformer or FieldTransformer()
        self.namer = namer or FileNamer()

    async def run(self, session_id: UUID) -> SessionModel:
        """
        Build the bundle and complete the session.

        A caller that loses the post_processing_status claim returns the
        session untouched.

        Args:
            session_id: Session whose jobs all completed

        Returns:
            SessionModel: Session after the run

        Raises:
            BundlingError: Bundle could not be produced; session is FAILED
        """
        if not await session_crud.claim_post_processing(self.db, session_id):
            logger.info(f"{__name__}:run - Session {session_id} already claimed, skipping")
            return await self._reload(session_id)

        await session_crud.transition(
            self.db,
            session_id,
            [SessionStatus.UPLOADING, SessionStatus.PROCESSING],
            SessionStatus.POST_PROCESSING,
        )
        await self.db.commit()

        session = await self._reload(session_id)
        try:
            ref = await self._build_and_store(session)
        except Exception as e:
            await self.db.rollback()
            log_exception_with_context(
                logger, "Post-processing failed", e, session_id=session_id
            )
            await session_crud.transition(
                self.db,
                session_id,
                [SessionStatus.POST_PROCESSING],
                SessionStatus.FAILED,
                post_processing_status=PostProcessingStatus.FAILED,
                error_message=f"Bundling failed: {e}",
            )
            await self.db.commit()
            raise BundlingError(f"Bundling failed: {e}", session_id=str(session_id)) from e

        completed = await session_crud.transition(
            self.db,
            session_id,
            [SessionStatus.POST_PROCESSING],
            SessionStatus.COMPLETED,
            result_bundle_ref=ref,
            post_processing_status=PostProcessingStatus.COMPLETED,
            error_message=None,
        )
        if not completed:
            await session_crud.update_by_id(
                self.db, session_id, post_processing_status=PostProcessingStatus.COMPLETED
            )
            logger.warning(
                f"{__name__}:run - Session {session_id} left POST_PROCESSING before completion, "
                f"bundle {ref} not published"
            )
        await self.db.commit()

        log_with_context(
            logger,
            logging.INFO,
            "Session bundle ready",
            session_id=session_id,
            bundle_ref=ref,
            published=completed,
        )
        return await self._reload(session_id)

    async def _build_and_store(self, session: SessionModel) -> str:
        jobs = [
            job
            for job in await job_crud.get_by_session(self.db, session.id)
            if job.status == JobStatus.COMPLETED
        ]
        if not jobs:
            raise BundlingError("No completed jobs to bundle", session_id=str(session.id))

        taken: set[str] = set()
        entries: list[BundleEntry] = []
        rows: list[ReportRow] = []

        for job in jobs:
            values = self.transformer.transform_fields(
                job.extracted_fields, session.field_transformations
            )
            file_name = self.namer.make_unique(self._file_name_for(job, values, session), taken)
            data = await asyncio.to_thread(self.storage.get, job.blob_path)

            await job_crud.set_renamed_file_name(self.db, job.id, file_name)
            entries.append(BundleEntry(file_name=file_name, data=data))
            rows.append(
                ReportRow(
                    file_name=file_name,
                    status=job.status.value.upper(),
                    processed_at=ensure_utc(job.completed_at or job.created_at),
                    fields=values,
                )
            )

        report = build_report(rows, session.column_config)
        bundle = build_bundle(entries, report)

        key = bundle_key(session.blob_prefix, session.id)
        await asyncio.to_thread(self.storage.put, key, bundle, "application/zip")
        return key

    def _file_name_for(self, job, values: dict, session: SessionModel) -> str:
        base = self.namer.generate(session.naming_template, values)
        if not base:
            return job.file_name
        extension = job.file_name.rsplit(".", 1)[-1] if "." in job.file_name else "pdf"
        return f"{base}.{extension}"

    async def _reload(self, session_id: UUID) -> SessionModel:
        session = await session_crud.get_by_id(self.db, session_id)
        if session is None:
            raise SessionNotFoundError(str(session_id))
        return session
