"""
Session status derivation.

A session's effective status is a pure function of its stored lifecycle
decision and its jobs' statuses. Every reader (status API, poller, cleanup)
goes through this one function.

Dependencies: extractflow.boundary.db.models
System role: Single source of truth for session status
"""

from typing import Iterable

from extractflow.boundary.db.models import (
    FINAL_JOB_STATUSES,
    JobStatus,
    SessionStatus,
)

# Decided outside job aggregation (bundling, cancel, expiry) and never re-derived.
STICKY_SESSION_STATUSES: frozenset[SessionStatus] = frozenset(
    {
        SessionStatus.POST_PROCESSING,
        SessionStatus.COMPLETED,
        SessionStatus.FAILED,
        SessionStatus.CANCELLED,
        SessionStatus.EXPIRED,
    }
)

ACTIVE_SESSION_STATUSES: frozenset[SessionStatus] = frozenset(
    {SessionStatus.UPLOADING, SessionStatus.PROCESSING}
)


def derive_session_status(
    stored_status: SessionStatus,
    job_statuses: Iterable[JobStatus],
) -> SessionStatus:
    """
    Compute the effective session status.

    Rules:
        - Sticky stored states win.
        - Any non-final job: PROCESSING once any job left QUEUED, else UPLOADING.
        - All jobs final and all COMPLETED: POST_PROCESSING.
        - All jobs final with at least one FAILED/CANCELLED/EXPIRED: FAILED.

    Args:
        stored_status: Status persisted on the session row
        job_statuses: Current status of every job in the session

    Returns:
        SessionStatus: Effective status
    """
    if stored_status in STICKY_SESSION_STATUSES:
        return stored_status

    statuses = list(job_statuses)
    if not statuses:
        return stored_status

    if any(s not in FINAL_JOB_STATUSES for s in statuses):
        if all(s == JobStatus.QUEUED for s in statuses):
            return SessionStatus.UPLOADING
        return SessionStatus.PROCESSING

    if all(s == JobStatus.COMPLETED for s in statuses):
        return SessionStatus.POST_PROCESSING
    return SessionStatus.FAILED
