"""
Database models package.

Exports:
  - UserModel, UserRole: Account and role
  - SessionModel, SessionStatus, PostProcessingStatus: Session aggregate
  - JobModel, JobStatus: Per-unit job state machine
  - TransactionModel, TransactionType, TransactionStatus: Credit ledger
  - CleanupLogModel, CleanupStatus: Expiration sweep audit trail

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Database model definitions for domain entities
"""

from extractflow.boundary.db.models.user_model import UserModel, UserRole
from extractflow.boundary.db.models.session_model import (
    PostProcessingStatus,
    SessionModel,
    SessionStatus,
)
from extractflow.boundary.db.models.job_model import (
    ACTIVE_JOB_STATUSES,
    FINAL_JOB_STATUSES,
    JobModel,
    JobStatus,
)
from extractflow.boundary.db.models.transaction_model import (
    TransactionModel,
    TransactionStatus,
    TransactionType,
)
from extractflow.boundary.db.models.cleanup_log_model import CleanupLogModel, CleanupStatus

__all__ = [
    "UserModel",
    "UserRole",
    "SessionModel",
    "SessionStatus",
    "PostProcessingStatus",
    "JobModel",
    "JobStatus",
    "ACTIVE_JOB_STATUSES",
    "FINAL_JOB_STATUSES",
    "TransactionModel",
    "TransactionStatus",
    "TransactionType",
    "CleanupLogModel",
    "CleanupStatus",
]
