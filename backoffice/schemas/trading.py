"""
Pydantic schemas for trading accounts and daily P&L.
"""

import datetime as dt
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from backoffice.models.trading import AccountStatus
from backoffice.schemas.common import MAX_AMOUNT, MAX_DAILY_PNL


class TradingAccountBase(BaseModel):
    name: str = Field(..., min_length=3, max_length=50, examples=["Nifty Options Desk"])
    broker: Optional[str] = Field(default=None, max_length=100, examples=["Zerodha"])
    capital_allocated: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT)
    status: AccountStatus = Field(default=AccountStatus.ACTIVE)

    @field_validator("name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        """Reject whitespace-only names."""
        if not v.strip():
            raise ValueError("name must not be blank")
        return v.strip()


class TradingAccountCreate(TradingAccountBase):
    """Schema for ``POST /trading-accounts``."""

    pass


class TradingAccountResponse(TradingAccountBase):
    id: UUID
    created_at: dt.datetime

    @field_serializer("capital_allocated")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)

    model_config = ConfigDict(from_attributes=True)


class DailyPnLBase(BaseModel):
    date: dt.date = Field(..., examples=["2025-06-02"])
    index_name: Optional[str] = Field(default=None, max_length=50, examples=["NIFTY"])
    pnl_amount: Decimal = Field(
        ...,
        ge=-MAX_DAILY_PNL,
        le=MAX_DAILY_PNL,
        description="Profit (positive) or loss (negative) for the day",
        examples=[-2000],
    )
    capital_used: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT)
    notes: Optional[str] = Field(default=None, max_length=500)


class DailyPnLCreate(DailyPnLBase):
    """Schema for ``POST /trading-accounts/{account_id}/pnl``."""

    pass


class DailyPnLResponse(DailyPnLBase):
    id: UUID
    account_id: UUID
    created_at: dt.datetime

    @field_serializer("pnl_amount", "capital_used")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)

    model_config = ConfigDict(from_attributes=True)
