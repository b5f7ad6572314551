"""
Administrative service.

Expiration acceleration, bundle reprocessing, manual cleanup runs, sweep
history and credit adjustments. Role checks happen at the HTTP layer.

Dependencies: extractflow.core
System role: Administrative use case orchestration
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from extractflow.application.services.serializers import (
    cleanup_log_to_dict,
    session_to_dict,
)
from extractflow.boundary.db.CRUD.cleanup_log_crud import cleanup_log_crud
from extractflow.boundary.storage.base import BlobStorage
from extractflow.configs import Settings, get_settings
from extractflow.core.cleanup_engine import CleanupEngine
from extractflow.core.credit_ledger import CreditLedger
from extractflow.core.session_manager import SessionManager
from extractflow.observability.log_utils import log_with_context

logger = logging.getLogger(__name__)


class AdminService:
    """Administrative operations."""

    def __init__(
        self,
        db: AsyncSession,
        storage: BlobStorage,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize admin service.

        Args:
            db: Async SQLAlchemy session
            storage: Blob storage
            settings: Application settings (cached settings when omitted)
        """
        self.db = db
        self.settings = settings or get_settings()
        self.manager = SessionManager(
            db,
            storage,
            processing=self.settings.processing,
            environment=self.settings.environment,
            download_url_expiry=self.settings.s3_storage.download_url_expiry,
        )
        self.cleanup_engine = CleanupEngine(db, storage)
        self.ledger = CreditLedger(db)

    async def accelerate_expiration(self, session_id: UUID, expires_at: datetime | None) -> dict:
        """Move a session's expiry earlier."""
        session = await self.manager.get_session(session_id)
        updated = await self.manager.accelerate_expiration(session, expires_at)
        return session_to_dict(updated)

    async def reprocess(self, session_id: UUID) -> dict:
        """Re-run post-processing of a session whose bundling failed."""
        session = await self.manager.get_session(session_id)
        updated = await self.manager.reprocess(session)
        return session_to_dict(updated)

    async def run_cleanup(self) -> dict:
        """Run an expiration sweep now."""
        log = await self.cleanup_engine.sweep()
        return cleanup_log_to_dict(log)

    async def get_cleanup_logs(self, limit: int = 20) -> list[dict]:
        """Most recent sweeps first."""
        logs = await cleanup_log_crud.get_recent(self.db, limit=limit)
        return [cleanup_log_to_dict(log) for log in logs]

    async def adjust_credits(
        self,
        user_id: UUID,
        delta: int,
        reason: str,
        admin_id: UUID,
    ) -> dict:
        """
        Apply a signed adjustment and commit it.

        Raises:
            ValidationError: delta is zero
            UserNotFoundError: Unknown user
            InsufficientCreditsError: Negative delta larger than the balance
        """
        try:
            transaction_id = await self.ledger.admin_adjust(user_id, delta, reason, admin_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        log_with_context(
            logger,
            logging.INFO,
            "Admin credit adjustment",
            user_id=user_id,
            delta=delta,
            admin_id=admin_id,
        )
        return {
            "transaction_id": transaction_id,
            "user_id": user_id,
            "balance": await self.ledger.balance(user_id),
        }
