"""
Application services.

Exports:
  - SessionService: Upload, status, cancel and download use cases
  - CreditService: Balance and transaction history
  - AdminService: Administrative session, cleanup and credit operations
  - ProcessingService: Background polling and cleanup cycles
"""

from extractflow.application.services.admin_service import AdminService
from extractflow.application.services.credit_service import CreditService
from extractflow.application.services.processing_service import ProcessingService
from extractflow.application.services.session_service import SessionService

__all__ = [
    "SessionService",
    "CreditService",
    "AdminService",
    "ProcessingService",
]
