"""
Investment domain model.

A single capital contribution by an investor.  Rows are immutable once
written; the sum over an investor's rows is their gross contributed capital.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, SQLModel


class Investment(SQLModel, table=True):
    """
    SQLModel table definition for investments.

    - ``investor_id`` cascades on delete: removing an investor removes their
      contributions.
    - ``ix_investments_investor_date`` serves the per-investor listing
      (newest first) and the per-investor sum.
    """

    __tablename__ = "investments"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_investments_investor_date", "investor_id", "invested_date"),
        CheckConstraint("amount > 0", name="ck_investments_amount_positive"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        index=True,
        ondelete="CASCADE",
    )
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    invested_date: date
    promised_return: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<Investment id={self.id} investor={self.investor_id} amount={self.amount}>"
