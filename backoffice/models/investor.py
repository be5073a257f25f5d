"""
Investor domain model.

An investor of the firm, persisted in the ``investors`` table, plus the
``client_id_sequence`` table that hands out the externally visible
``S91-INV-NNN`` client ids.
"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InvestorStatus(str, Enum):
    """Investor lifecycle states."""

    ACTIVE = "active"
    WAITING_PERIOD = "waiting_period"
    INACTIVE = "inactive"
    EXITED = "exited"


class ClientIdSequence(SQLModel, table=True):
    """
    Monotonic source of client-id numbers.

    One row is inserted per new investor; its autoincrement key becomes the
    numeric part of the client id.  Works the same on PostgreSQL and SQLite
    and never reuses a number, even after the investor is deleted.
    """

    __tablename__ = "client_id_sequence"  # type: ignore[assignment]

    id: Optional[int] = Field(default=None, primary_key=True)
    issued_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )


class Investor(SQLModel, table=True):
    """
    SQLModel table definition for investors.

    Constraints:
    - ``client_id`` is unique and never reassigned.
    - ``promised_return`` is a percentage between 0 and 100.
    - There is no stored running total of invested capital; the total is
      summed from ``investments`` at read time.
    """

    __tablename__ = "investors"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint("length(full_name) > 0", name="ck_investors_full_name_not_empty"),
        CheckConstraint(
            "promised_return IS NULL OR (promised_return >= 0 AND promised_return <= 100)",
            name="ck_investors_promised_return_range",
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    client_id: Optional[str] = Field(default=None, unique=True, index=True, max_length=32)
    full_name: str = Field(index=True, max_length=100)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=20)
    address: Optional[str] = Field(default=None, max_length=200)
    promised_return: Optional[Decimal] = Field(default=None, max_digits=5, decimal_places=2)
    joining_date: Optional[date] = Field(default=None)
    status: InvestorStatus = Field(default=InvestorStatus.ACTIVE, index=True)
    waiting_period_start: Optional[datetime] = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )
    created_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=_utcnow,
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<Investor id={self.id} client_id={self.client_id} status={self.status.value}>"
