"""
Pydantic schemas for derived capital figures: the per-investor summary and
the firm-wide dashboard.  Nothing here is persisted.
"""

import datetime as dt
from decimal import Decimal
from typing import List
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer

from backoffice.schemas.monthly_return import MonthlyReturnResponse
from backoffice.schemas.waiting_period import WaitingPeriodEntryResponse


class InvestorSummaryResponse(BaseModel):
    """Schema for ``GET /investors/{id}/summary``."""

    investor_id: UUID
    as_of: dt.datetime
    total_invested: Decimal
    remaining_capital: Decimal = Field(
        ..., description="Invested minus matured returns, never negative"
    )
    returnable_capital: Decimal = Field(
        ..., description="Invested minus every return entry; the most a new return may be"
    )
    capital_returned: Decimal
    pending_capital: Decimal
    pending_entries: List[WaitingPeriodEntryResponse]
    delivered_entries: List[WaitingPeriodEntryResponse]
    monthly_returns: List[MonthlyReturnResponse]

    @field_serializer(
        "total_invested",
        "remaining_capital",
        "returnable_capital",
        "capital_returned",
        "pending_capital",
    )
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)


class EquityPointResponse(BaseModel):
    date: dt.date
    equity: Decimal

    @field_serializer("equity")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        return float(v)


class DashboardResponse(BaseModel):
    """Schema for ``GET /dashboard``."""

    as_of: dt.datetime
    total_investors: int
    new_investors_this_month: int
    total_invested: Decimal
    total_allocated: Decimal
    total_delivered: Decimal = Field(..., description="Sum of matured waiting-period entries")
    total_pnl: Decimal
    pending_returns: Decimal = Field(..., description="Sum of monthly returns still pending")
    active_allocated: Decimal
    firm_capital: Decimal
    investor_capital: Decimal
    internal_capital: Decimal
    growth_percent: float
    equity_curve: List[EquityPointResponse]

    @field_serializer(
        "total_invested",
        "total_allocated",
        "total_delivered",
        "total_pnl",
        "pending_returns",
        "active_allocated",
        "firm_capital",
        "investor_capital",
        "internal_capital",
    )
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)
