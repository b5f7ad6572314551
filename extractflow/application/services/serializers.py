"""
Row to response-dict conversion shared by the services.

Dependencies: extractflow.boundary.db.models
System role: Service output shaping
"""

from extractflow.boundary.db.base import ensure_utc
from extractflow.boundary.db.models import (
    CleanupLogModel,
    JobModel,
    SessionModel,
    TransactionModel,
)
from extractflow.core.session_manager import SessionProgress


def session_to_dict(session: SessionModel, progress: SessionProgress | None = None) -> dict:
    """Session row as API dict; progress overrides the stored status."""
    return {
        "id": session.id,
        "status": (progress.status if progress else session.status).value,
        "total_units": session.total_units,
        "completed_units": progress.processed_units if progress else session.completed_units,
        "model_id": session.model_id,
        "expires_at": ensure_utc(session.expires_at),
        "created_at": ensure_utc(session.created_at),
        "updated_at": ensure_utc(session.updated_at),
        "post_processing_status": (
            session.post_processing_status.value if session.post_processing_status else None
        ),
        "error_message": progress.error if progress else session.error_message,
        "has_result": session.result_bundle_ref is not None,
    }


def progress_to_dict(progress: SessionProgress) -> dict:
    return {
        "status": progress.status.value,
        "processed_units": progress.processed_units,
        "total_units": progress.total_units,
        "error": progress.error,
    }


def job_to_dict(job: JobModel) -> dict:
    return {
        "id": job.id,
        "status": job.status.value,
        "file_name": job.file_name,
        "page_number": job.page_number,
        "page_count": job.page_count,
        "credits_charged": job.credits_charged,
        "renamed_file_name": job.renamed_file_name,
        "extracted_fields": job.extracted_fields,
        "error": job.error,
        "created_at": ensure_utc(job.created_at),
        "completed_at": ensure_utc(job.completed_at),
    }


def transaction_to_dict(transaction: TransactionModel) -> dict:
    return {
        "id": transaction.id,
        "type": transaction.type.value,
        "credits_delta": transaction.credits_delta,
        "status": transaction.status.value,
        "description": transaction.description,
        "session_id": transaction.session_id,
        "job_id": transaction.job_id,
        "related_transaction_id": transaction.related_transaction_id,
        "balance_after": transaction.balance_after,
        "created_at": ensure_utc(transaction.created_at),
    }


def cleanup_log_to_dict(log: CleanupLogModel) -> dict:
    return {
        "id": log.id,
        "status": log.status.value,
        "started_at": ensure_utc(log.started_at),
        "completed_at": ensure_utc(log.completed_at),
        "sessions_processed": log.sessions_processed,
        "sessions_expired": log.sessions_expired,
        "jobs_expired": log.jobs_expired,
        "blobs_deleted": log.blobs_deleted,
        "errors": list(log.errors or []),
    }
