"""
Trading account and daily P&L models.

These feed the firm-wide capital figures: allocated capital comes from
``trading_accounts`` and the running P&L from ``daily_pnl``.
"""

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index
from sqlmodel import Field, SQLModel


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class TradingAccount(SQLModel, table=True):
    """SQLModel table definition for ``trading_accounts``."""

    __tablename__ = "trading_accounts"  # type: ignore[assignment]

    __table_args__ = (
        CheckConstraint(
            "capital_allocated >= 0", name="ck_trading_accounts_capital_non_negative"
        ),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True, max_length=50)
    broker: Optional[str] = Field(default=None, max_length=100)
    capital_allocated: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    status: AccountStatus = Field(default=AccountStatus.ACTIVE)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<TradingAccount id={self.id} name='{self.name}'>"


class DailyPnL(SQLModel, table=True):
    """SQLModel table definition for ``daily_pnl``. ``pnl_amount`` may be negative."""

    __tablename__ = "daily_pnl"  # type: ignore[assignment]

    __table_args__ = (
        Index("ix_daily_pnl_account_date", "account_id", "date"),
        CheckConstraint("capital_used >= 0", name="ck_daily_pnl_capital_used_non_negative"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    account_id: uuid.UUID = Field(
        foreign_key="trading_accounts.id",
        index=True,
        ondelete="CASCADE",
    )
    date: dt.date = Field(index=True)
    index_name: Optional[str] = Field(default=None, max_length=50)
    pnl_amount: Decimal = Field(max_digits=20, decimal_places=2)
    capital_used: Decimal = Field(default=Decimal("0"), max_digits=20, decimal_places=2)
    notes: Optional[str] = Field(default=None, max_length=500)
    created_at: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(dt.timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
    )

    def __repr__(self) -> str:
        return f"<DailyPnL id={self.id} account={self.account_id} date={self.date}>"
