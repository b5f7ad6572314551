"""
Domain exception to HTTP response mapping.

Every ExtractFlowException leaves the API as an ErrorResponse carrying the
exception's stable code. Subclasses are matched before their parents.

Dependencies: fastapi, extractflow.core.exceptions
System role: Uniform error responses
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from extractflow.core.exceptions import (
    BlobNotFoundError,
    BundlingError,
    ExternalServiceError,
    ExtractFlowException,
    InsufficientCreditsError,
    InvalidStateTransitionError,
    JobNotFoundError,
    PermissionDeniedError,
    SessionExpiredError,
    SessionNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from extractflow.models.common import ErrorResponse

logger = logging.getLogger(__name__)

# Ordered: first isinstance match wins.
_STATUS_MAP: list[tuple[type[ExtractFlowException], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (InsufficientCreditsError, status.HTTP_402_PAYMENT_REQUIRED),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (UserNotFoundError, status.HTTP_404_NOT_FOUND),
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (JobNotFoundError, status.HTTP_404_NOT_FOUND),
    (BlobNotFoundError, status.HTTP_404_NOT_FOUND),
    (SessionExpiredError, status.HTTP_410_GONE),
    (InvalidStateTransitionError, status.HTTP_409_CONFLICT),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
    (BundlingError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc: ExtractFlowException) -> int:
    """HTTP status for a domain exception."""
    for exc_type, code in _STATUS_MAP:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_extractflow_exception(request: Request, exc: ExtractFlowException) -> JSONResponse:
    """Render a domain exception as an ErrorResponse."""
    http_status = status_for(exc)
    log_level = logging.ERROR if http_status >= 500 else logging.WARNING
    logger.log(
        log_level,
        f"{request.method} {request.url.path} -> {http_status} {exc.code}",
        extra={"error_code": exc.code, "error_msg": exc.message},
    )
    body = ErrorResponse(code=exc.code, error=exc.message, details=exc.details or None)
    return JSONResponse(status_code=http_status, content=body.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain exception handler on an app."""
    app.add_exception_handler(ExtractFlowException, handle_extractflow_exception)
