"""
Waiting-period entry model.

A portion of an investor's capital on its way back to them.  The entry
matures (the capital counts as returned) once it is manually delivered or
its 60-day window has elapsed; see ``backoffice.services.ledger``.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, SQLModel


class WaitingPeriodEntry(SQLModel, table=True):
    """
    SQLModel table definition for ``waiting_period_entries``.

    ``delivered`` is a one-way flag: the application only ever flips it from
    false to true, stamping ``delivered_at`` in the same statement.
    """

    __tablename__ = "waiting_period_entries"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_waiting_period_entries_investor_initialized", "investor_id", "initialized_date"),
        CheckConstraint("amount > 0", name="ck_waiting_period_entries_amount_positive"),
        CheckConstraint(
            "delivered_at IS NULL OR delivered",
            name="ck_waiting_period_entries_delivered_at_requires_flag",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    investor_id: uuid.UUID = Field(
        foreign_key="investors.id",
        index=True,
        ondelete="CASCADE",
    )
    amount: Decimal = Field(max_digits=20, decimal_places=2)
    initialized_date: datetime = Field(
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        nullable=False,
    )
    delivered: bool = Field(default=False, nullable=False)
    delivered_at: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )
    notes: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return (
            f"<WaitingPeriodEntry id={self.id} investor={self.investor_id} "
            f"amount={self.amount} delivered={self.delivered}>"
        )
