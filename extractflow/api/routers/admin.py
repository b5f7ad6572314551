"""
Administrative API endpoints.

Routes:
- POST /admin/sessions/{id}/accelerate-expiration - Move expiry earlier
- POST /admin/sessions/{id}/reprocess - Retry failed bundling
- POST /admin/cleanup/run - Run an expiration sweep now
- GET /admin/cleanup/logs - Recent sweeps
- POST /admin/users/{id}/adjust-credits - Signed balance adjustment

Every route requires the admin role.

Dependencies: extractflow.application.services.admin_service
System role: Administrative HTTP API
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from extractflow.api.deps import get_admin_service, require_admin
from extractflow.application.services import AdminService
from extractflow.boundary.db import UserModel
from extractflow.models.cleanup import CleanupLogResponse
from extractflow.models.credit import AdjustCreditsRequest
from extractflow.models.session import AccelerateExpirationRequest, SessionResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/sessions/{session_id}/accelerate-expiration", response_model=SessionResponse)
async def accelerate_expiration(
    session_id: UUID,
    request: AccelerateExpirationRequest | None = None,
    admin: UserModel = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> SessionResponse:
    """
    Move a session's expiry earlier so the next sweep reclaims it.

    Raises:
        HTTPException(400): Requested expiry is later than the current one
        HTTPException(404): Session not found
    """
    logger.info(f"{__name__}:accelerate_expiration - {admin.id} on {session_id}")
    session = await admin_service.accelerate_expiration(session_id, request.expires_at if request else None)
    return SessionResponse(**session)


@router.post("/sessions/{session_id}/reprocess", response_model=SessionResponse)
async def reprocess_session(
    session_id: UUID,
    admin: UserModel = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> SessionResponse:
    """
    Re-run post-processing for a session whose bundling failed.

    Raises:
        HTTPException(409): Session is not in a reprocessable state
        HTTPException(410): Session expired
    """
    logger.info(f"{__name__}:reprocess_session - {admin.id} on {session_id}")
    return SessionResponse(**await admin_service.reprocess(session_id))


@router.post("/cleanup/run", response_model=CleanupLogResponse)
async def run_cleanup(
    admin: UserModel = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> CleanupLogResponse:
    """Run an expiration sweep and return its log."""
    logger.info(f"{__name__}:run_cleanup - Manual sweep by {admin.id}")
    return CleanupLogResponse(**await admin_service.run_cleanup())


@router.get("/cleanup/logs", response_model=list[CleanupLogResponse])
async def get_cleanup_logs(
    limit: int = 20,
    admin: UserModel = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> list[CleanupLogResponse]:
    """Most recent sweeps first."""
    logs = await admin_service.get_cleanup_logs(limit=limit)
    return [CleanupLogResponse(**log) for log in logs]


@router.post("/users/{user_id}/adjust-credits")
async def adjust_credits(
    user_id: UUID,
    request: AdjustCreditsRequest,
    admin: UserModel = Depends(require_admin),
    admin_service: AdminService = Depends(get_admin_service),
) -> dict:
    """
    Apply a signed credit adjustment recorded against the admin.

    Raises:
        HTTPException(400): Zero delta
        HTTPException(402): Debit larger than the balance
        HTTPException(404): Unknown user
    """
    return await admin_service.adjust_credits(user_id, request.delta, request.reason, admin.id)
