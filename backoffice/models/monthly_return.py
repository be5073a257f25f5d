"""
Monthly return (payout) model.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


class ReturnStatus(str, Enum):
    """Payout states of a monthly return."""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class MonthlyReturn(SQLModel, table=True):
    """
    SQLModel table definition for ``monthly_returns``.

    One row per investor per month (``YYYY-MM``); the composite unique
    constraint is the safety net behind the service's duplicate pre-check.
    """

    __tablename__ = "monthly_returns"  # type: ignore[assignment]

    __table_args__ = (
        UniqueConstraint("investor_id", "month", name="uq_monthly_returns_investor_month"),
        CheckConstraint("amount >= 0", name="ck_monthly_returns_amount_non_negative"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        index=True,
        ondelete="CASCADE",
    )
    month: str = Field(max_length=7, index=True)
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    return_percent: Decimal = Field(max_digits=5, decimal_places=2)
    status: ReturnStatus = Field(default=ReturnStatus.PENDING, index=True)
    paid_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<MonthlyReturn id={self.id} investor={self.investor_id} "
            f"month={self.month} status={self.status.value}>"
        )
