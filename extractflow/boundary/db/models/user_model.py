"""
User ORM model.

Holds identity, role and the cached credit balance that the ledger backs.

Dependencies: sqlalchemy, extractflow.boundary.db.base
System role: Account owner for sessions and credit transactions
"""

import enum

from sqlalchemy import CheckConstraint, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from extractflow.boundary.db.base import Base, TimestampMixin, UUIDMixin


class UserRole(str, enum.Enum):
    """
    Access roles.

    USER: Uploads documents and manages own sessions
    ADMIN: Additionally runs administrative lifecycle and credit operations
    """

    USER = "user"
    ADMIN = "admin"


class UserModel(Base, UUIDMixin, TimestampMixin):
    """
    User ORM model.

    credit_balance is a cached value. The transactions table is the source
    of truth; only CreditLedger mutates this column, and always in the same
    database transaction as the matching TransactionModel row.

    Attributes:
        id: UUID primary key
        email: Unique login email
        display_name: Optional human-readable name
        role: Access role enum
        credit_balance: Cached sum of COMPLETED transaction deltas (never negative)
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("credit_balance >= 0", name="ck_users_credit_balance_non_negative"),
    )

    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False),
        nullable=False,
        default=UserRole.USER,
    )
    credit_balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
