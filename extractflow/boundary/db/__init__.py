"""
Database boundary layer: ORM models, CRUD operations, and connection management.

Exports:
  - Base, UUIDMixin, TimestampMixin: Model building blocks
  - get_async_engine(), get_async_session_factory(), get_async_db(): Async connection management
  - UserModel, SessionModel, JobModel, TransactionModel, CleanupLogModel: Domain entities
  - Status / type enums for each entity
  - user_crud, session_crud, job_crud, transaction_crud, cleanup_log_crud: CRUD singletons

Dependencies: sqlalchemy, extractflow.configs
System role: Database adapter providing persistent storage for sessions,
jobs, the credit ledger and the cleanup audit trail.
"""

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin, ensure_utc, utcnow
from extractflow.boundary.db.connection import (
    get_async_db,
    get_async_engine,
    get_async_session_factory,
)
from extractflow.boundary.db.models import (
    ACTIVE_JOB_STATUSES,
    FINAL_JOB_STATUSES,
    CleanupLogModel,
    CleanupStatus,
    JobModel,
    JobStatus,
    PostProcessingStatus,
    SessionModel,
    SessionStatus,
    TransactionModel,
    TransactionStatus,
    TransactionType,
    UserModel,
    UserRole,
)
from extractflow.boundary.db.CRUD import (
    BaseCRUD,
    CleanupLogCRUD,
    JobCRUD,
    SessionCRUD,
    TransactionCRUD,
    UserCRUD,
    cleanup_log_crud,
    job_crud,
    session_crud,
    transaction_crud,
    user_crud,
)

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    "ensure_utc",
    # Connection
    "get_async_db",
    "get_async_engine",
    "get_async_session_factory",
    # Models
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
    # CRUD classes
    "BaseCRUD",
    "UserCRUD",
    "SessionCRUD",
    "JobCRUD",
    "TransactionCRUD",
    "CleanupLogCRUD",
    # CRUD singletons
    "user_crud",
    "session_crud",
    "job_crud",
    "transaction_crud",
    "cleanup_log_crud",
]
