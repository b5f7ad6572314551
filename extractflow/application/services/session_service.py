"""
Session service orchestrator.

Coordinates the client-facing session use cases: upload, listing,
status polling, per-job detail, cancel and download.

Dependencies: extractflow.core, extractflow.application.pdf_splitter
System role: Session use case orchestration
"""

import logging
from typing import Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.application.pdf_splitter import split_upload
from extractflow.application.services.serializers import (
    job_to_dict,
    progress_to_dict,
    session_to_dict,
)
from extractflow.boundary.storage.base import BlobStorage
from extractflow.configs import Settings, get_settings
from extractflow.core.exceptions import ValidationError
from extractflow.core.naming import FieldTransformer
from extractflow.core.session_manager import SessionManager
from extractflow.models.session import SessionOptions

logger = logging.getLogger(__name__)


class SessionService:
    """Session service orchestrator."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize session service.

        Args:
            db: Async SQLAlchemy session
            storage: Blob storage
            settings: Application settings (cached settings when omitted)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.manager = SessionManager(
            db,
            storage,
            processing=self.settings.processing,
            environment=self.settings.environment,
            download_url_expiry=self.settings.s3_storage.download_url_expiry,
        )

    async def create_session(
        self,
        user_id: UUID,
        files: Sequence[tuple[str, bytes, str | None]],
        options: SessionOptions | None = None,
    ) -> dict:
        """
        Split uploads into units and create a charged session.

        Args:
            user_id: Caller
            files: (file name, bytes, content type) per uploaded file
            options: Model, naming, spreadsheet and transformation options

        Returns:
            dict: Created session

        Raises:
            ValidationError: No files, too many files, bad options or unreadable PDF
            InsufficientCreditsError: Balance below the page count
        """
        options = options or SessionOptions()
        max_files = self.settings.processing.max_files_per_upload
        if not files:
            raise ValidationError("At least one file is required", field="files")
        if len(files) > max_files:
            raise ValidationError(
                f"At most {max_files} files can be uploaded at once",
                field="files",
                details={"received": len(files)},
            )

        transformer = FieldTransformer()
        for field_name, spec in options.field_transformations.items():
            problems = transformer.validate_config(spec.type, spec.config)
            if problems:
                raise ValidationError(
                    f"Invalid transformation for {field_name}: {'; '.join(problems)}",
                    field="field_transformations",
                )

        units = []
        for file_name, data, content_type in files:
            units.extend(split_upload(file_name, data, content_type))

        session = await self.manager.create_session(
            user_id,
            units,
            model_id=options.model_id or self.settings.extraction.default_model_id,
            naming_template=[e.model_dump(exclude_none=True) for e in options.naming_template],
            column_config=options.column_config.model_dump(exclude_none=True),
            field_transformations={
                name: spec.model_dump() for name, spec in options.field_transformations.items()
            },
        )
        return session_to_dict(session)

    async def list_sessions(self, user_id: UUID, limit: int = 100, offset: int = 0) -> list[dict]:
        """
        List the caller's sessions with derived status.

        Args:
            user_id: Caller
            limit: Maximum number of sessions
            offset: Number to skip

        Returns:
            list[dict]: Sessions, newest first
        """
        sessions = await self.manager.list_sessions(user_id, limit=limit, offset=offset)
        result = []
        for session in sessions:
            progress = await self.manager.get_progress(session)
            result.append(session_to_dict(session, progress))
        return result

    async def get_status(self, session_id: UUID, user_id: UUID) -> dict:
        """Progress snapshot for client polling."""
        session = await self.manager.get_session(session_id, user_id)
        return progress_to_dict(await self.manager.get_progress(session))

    async def get_jobs(self, session_id: UUID, user_id: UUID) -> list[dict]:
        """Per-job detail of a session."""
        session = await self.manager.get_session(session_id, user_id)
        return [job_to_dict(job) for job in await self.manager.get_jobs(session.id)]

    async def cancel(self, session_id: UUID, user_id: UUID) -> dict:
        """Cancel an in-flight session."""
        session = await self.manager.get_session(session_id, user_id)
        cancelled = await self.manager.cancel(session)
        return session_to_dict(cancelled)

    async def get_download(self, session_id: UUID, user_id: UUID) -> dict:
        """Time-limited bundle link."""
        session = await self.manager.get_session(session_id, user_id)
        url, expires_in = await self.manager.get_download_url(session)
        return {"url": url, "expires_in": expires_in}
