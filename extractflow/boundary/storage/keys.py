"""
Blob key layout.

Every key starts with the environment, then the owning user and session,
so development and production data (and different sessions) never collide:

    {environment}/users/{user_id}/sessions/{session_id}/uploads/{job_id}.pdf
    {environment}/users/{user_id}/sessions/{session_id}/exports/session_{session_id}.zip

Dependencies: None
System role: Storage namespacing rules
"""

from uuid import UUID


def session_prefix(environment: str, user_id: UUID, session_id: UUID) -> str:
    """Prefix owning every blob a session writes (trailing slash included)."""
    return f"{environment}/users/{user_id}/sessions/{session_id}/"


def unit_key(prefix: str, job_id: UUID, file_name: str) -> str:
    """Key for the bytes of one uploaded unit."""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
    return f"{prefix}uploads/{job_id}.{extension}"


def bundle_key(prefix: str, session_id: UUID) -> str:
    """Key for the downloadable zip bundle of a session."""
    return f"{prefix}exports/session_{session_id}.zip"


def standalone_job_key(environment: str, user_id: UUID, job_id: UUID, file_name: str) -> str:
    """Key for legacy jobs that do not belong to a session."""
    extension = file_name.rsplit(".", 1)[-1].lower() if "." in file_name else "bin"
    return f"{environment}/users/{user_id}/jobs/{job_id}.{extension}"
