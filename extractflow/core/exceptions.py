"""
Exception hierarchy for ExtractFlow.

Provides layered exception structure for domain-specific errors.
All exceptions include context for observability and debugging.

Dependencies: None (pure domain layer)
System role: Centralized exception handling across the application
"""

from typing import Any


class ExtractFlowException(Exception):
    """Base exception for all ExtractFlow application errors."""

    code = "EXTRACTFLOW_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize base exception with message and optional context.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional context for debugging
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including details."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(ExtractFlowException):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Field name that failed validation
            details: Additional context
        """
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class UserNotFoundError(ExtractFlowException):
    """Raised when a user cannot be found."""

    code = "USER_NOT_FOUND"

    def __init__(self, user_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["user_id"] = user_id
        super().__init__(f"User not found: {user_id}", details)


class SessionNotFoundError(ExtractFlowException):
    """Raised when a session cannot be found."""

    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str, details: dict[str, Any] | None = None) -> None:
        """
        Initialize session not found error.

        Args:
            session_id: ID of the missing session
            details: Additional context
        """
        details = details or {}
        details["session_id"] = session_id
        super().__init__(f"Session not found: {session_id}", details)


class JobNotFoundError(ExtractFlowException):
    """Raised when a job cannot be found."""

    code = "JOB_NOT_FOUND"

    def __init__(self, job_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["job_id"] = job_id
        super().__init__(f"Job not found: {job_id}", details)


class PermissionDeniedError(ExtractFlowException):
    """Raised when a caller acts on a resource it does not own."""

    code = "PERMISSION_DENIED"


class InvalidStateTransitionError(ExtractFlowException):
    """Raised when an operation is not allowed in the current lifecycle state."""

    code = "INVALID_STATE"

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize invalid state transition error.

        Args:
            message: Error message
            current_status: Status the entity was in when the operation was refused
            details: Additional context
        """
        details = details or {}
        if current_status:
            details["current_status"] = current_status
        super().__init__(message, details)


class InsufficientCreditsError(ExtractFlowException):
    """Raised when a debit exceeds the user's balance. Nothing is persisted."""

    code = "INSUFFICIENT_CREDITS"

    def __init__(
        self,
        user_id: str,
        required: int,
        available: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize insufficient credits error.

        Args:
            user_id: User whose balance was too low
            required: Credits the operation needed
            available: Credits the user had at the time of the check
            details: Additional context
        """
        details = details or {}
        details.update({"user_id": user_id, "required": required, "available": available})
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits: {required} required, {available} available",
            details,
        )


class ExternalServiceError(ExtractFlowException):
    """Raised when the extraction service rejects or fails a unit."""

    code = "EXTERNAL_SERVICE_ERROR"

    def __init__(
        self,
        message: str,
        operation_ref: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize external service error.

        Args:
            message: Error message
            operation_ref: External operation reference, if one was issued
            details: Additional context
        """
        details = details or {}
        if operation_ref:
            details["operation_ref"] = operation_ref
        super().__init__(message, details)


class PollTimeoutError(ExternalServiceError):
    """Raised when a job has been polled past the hard ceiling."""

    code = "POLL_TIMEOUT"


class BundlingError(ExtractFlowException):
    """Raised when post-processing cannot produce the result bundle."""

    code = "BUNDLING_ERROR"

    def __init__(
        self,
        message: str,
        session_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if session_id:
            details["session_id"] = session_id
        super().__init__(message, details)


class SessionExpiredError(ExtractFlowException):
    """Raised when a session is past its TTL. Not retryable."""

    code = "SESSION_EXPIRED"

    def __init__(self, session_id: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["session_id"] = session_id
        super().__init__(f"Session has expired: {session_id}", details)


class SessionNotReadyError(InvalidStateTransitionError):
    """Raised when a download is requested before the bundle exists."""

    code = "SESSION_NOT_READY"


class CleanupItemError(ExtractFlowException):
    """Raised for a single item that failed during an expiration sweep."""

    code = "CLEANUP_ITEM_ERROR"

    def __init__(
        self,
        message: str,
        item_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if item_id:
            details["item_id"] = item_id
        super().__init__(message, details)


class BlobNotFoundError(ExtractFlowException):
    """Raised when a blob key does not exist in storage."""

    code = "BLOB_NOT_FOUND"

    def __init__(self, key: str, details: dict[str, Any] | None = None) -> None:
        details = details or {}
        details["key"] = key
        super().__init__(f"Blob not found: {key}", details)
