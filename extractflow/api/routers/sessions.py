"""
Session API endpoints.

Routes:
- POST /sessions - Upload documents and create a charged session
- GET /sessions - List the caller's sessions
- GET /sessions/{id}/status - Progress snapshot for polling
- GET /sessions/{id}/jobs - Per-unit detail
- POST /sessions/{id}/cancel - Cancel an in-flight session
- GET /sessions/{id}/download - Time-limited bundle link

Domain errors are rendered by the app-level exception handler.

Dependencies: extractflow.application.services, extractflow.models
System role: Session management HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from extractflow.api.deps import get_current_user, get_session_service
from extractflow.application.services import SessionService
from extractflow.boundary.db import UserModel
from extractflow.core.exceptions import ValidationError
from extractflow.models.job import JobResponse
from extractflow.models.session import (
    DownloadResponse,
    SessionOptions,
    SessionResponse,
    SessionStatusResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _parse_options(raw: str | None) -> SessionOptions:
    if not raw:
        return SessionOptions()
    try:
        return SessionOptions.model_validate_json(raw)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid session options",
            field="options",
            details={"errors": e.errors(include_url=False, include_context=False)},
        )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    files: list[UploadFile] = File(...),
    options: str | None = Form(default=None),
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """
    Upload documents and create a session.

    Each PDF page becomes one unit charged one credit. The whole batch is
    rejected when the balance does not cover it.

    Args:
        files: Uploaded documents
        options: JSON-encoded SessionOptions
        user: Authenticated caller
        session_service: Injected SessionService

    Returns:
        SessionResponse: Created session

    Raises:
        HTTPException(400): Invalid files or options
        HTTPException(402): Insufficient credits
    """
    parsed = _parse_options(options)
    uploads = [
        (upload.filename or "upload", await upload.read(), upload.content_type)
        for upload in files
    ]
    session = await session_service.create_session(user.id, uploads, parsed)
    logger.info(f"{__name__}:create_session - Created session {session['id']} for {user.id}")
    return SessionResponse(**session)


@router.get("", response_model=list[SessionResponse])
async def list_sessions(
    limit: int = 100,
    offset: int = 0,
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> list[SessionResponse]:
    """
    List the caller's sessions with pagination.

    Args:
        limit: Maximum number of sessions (default 100)
        offset: Number to skip (default 0)
    """
    sessions = await session_service.list_sessions(user.id, limit=limit, offset=offset)
    return [SessionResponse(**session) for session in sessions]


@router.get("/{session_id}/status", response_model=SessionStatusResponse)
async def get_session_status(
    session_id: UUID,
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionStatusResponse:
    """Progress snapshot: status, processed units and total units."""
    return SessionStatusResponse(**await session_service.get_status(session_id, user.id))


@router.get("/{session_id}/jobs", response_model=list[JobResponse])
async def get_session_jobs(
    session_id: UUID,
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> list[JobResponse]:
    """Per-unit status, extracted fields and errors."""
    jobs = await session_service.get_jobs(session_id, user.id)
    return [JobResponse(**job) for job in jobs]


@router.post("/{session_id}/cancel", response_model=SessionResponse)
async def cancel_session(
    session_id: UUID,
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> SessionResponse:
    """
    Cancel an in-flight session and refund its unfinished units.

    Raises:
        HTTPException(409): Session already finished
    """
    return SessionResponse(**await session_service.cancel(session_id, user.id))


@router.get("/{session_id}/download", response_model=DownloadResponse)
async def download_session(
    session_id: UUID,
    user: UserModel = Depends(get_current_user),
    session_service: SessionService = Depends(get_session_service),
) -> DownloadResponse:
    """
    Time-limited link to the result bundle.

    Raises:
        HTTPException(409): Bundle not ready
        HTTPException(410): Session expired
    """
    return DownloadResponse(**await session_service.get_download(session_id, user.id))
