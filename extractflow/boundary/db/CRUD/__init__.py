"""
CRUD operations for database models.

Exports base CRUD class and model-specific CRUD implementations
with pre-instantiated singletons for direct use.

Usage:
    from extractflow.boundary.db.CRUD import session_crud, job_crud

    # Use singleton instances
    session = await session_crud.get_by_id(db, session_id)

    # Or instantiate classes directly for custom behavior
    from extractflow.boundary.db.CRUD import SessionCRUD
    custom_crud = SessionCRUD()
"""

from extractflow.boundary.db.CRUD.base_crud import BaseCRUD
from extractflow.boundary.db.CRUD.user_crud import UserCRUD, user_crud
from extractflow.boundary.db.CRUD.session_crud import SessionCRUD, session_crud
from extractflow.boundary.db.CRUD.job_crud import JobCRUD, job_crud
from extractflow.boundary.db.CRUD.transaction_crud import TransactionCRUD, transaction_crud
from extractflow.boundary.db.CRUD.cleanup_log_crud import CleanupLogCRUD, cleanup_log_crud

__all__ = [
    "BaseCRUD",
    "UserCRUD",
    "user_crud",
    "SessionCRUD",
    "session_crud",
    "JobCRUD",
    "job_crud",
    "TransactionCRUD",
    "transaction_crud",
    "CleanupLogCRUD",
    "cleanup_log_crud",
]
