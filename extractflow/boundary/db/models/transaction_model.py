"""
Transaction ORM model.

Append-only credit ledger rows. The sum of a user's COMPLETED deltas is
their balance.

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Credit ledger persistence
"""

import enum
from uuid import UUID

from sqlalchemy import Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class TransactionType(str, enum.Enum):
    """Why credits moved."""

    PURCHASE = "purchase"
    USAGE = "usage"
    REFUND = "refund"
    ADMIN_CREDIT = "admin_credit"
    ADMIN_DEBIT = "admin_debit"
    BONUS = "bonus"
    MANUAL_ADJUSTMENT = "manual_adjustment"


class TransactionStatus(str, enum.Enum):
    """
    Settlement state.

    Only COMPLETED rows count towards the balance. REFUNDED is reserved for
    payment-side reversals; extraction refunds are new REFUND rows.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class TransactionModel(Base, UUIDMixin, TimestampMixin):
    """
    Transaction ORM model.

    Attributes:
        user_id: Account the delta applies to
        type: Transaction type enum
        credits_delta: Signed credit change
        status: Settlement state
        description: Human-readable reason
        session_id: Session that caused the movement, if any
        job_id: Job that caused the movement (refunds), if any
        related_transaction_id: Transaction this one reverses
        idempotency_key: Unique key guarding against duplicate writes
        balance_after: Cached balance right after this row was applied
    """

    __tablename__ = "transactions"

    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[TransactionType] = mapped_column(
        Enum(TransactionType, native_enum=False),
        nullable=False,
    )
    credits_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False),
        nullable=False,
        default=TransactionStatus.COMPLETED,
    )
    description: Mapped[str] = mapped_column(String(512), nullable=False, default="")
    session_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("sessions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    job_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("jobs.id", ondelete="SET NULL"),
        nullable=True,
    )
    related_transaction_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("transactions.id", ondelete="SET NULL"),
        nullable=True,
    )
    idempotency_key: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
    )
    balance_after: Mapped[int | None] = mapped_column(Integer, nullable=True)
