"""
Pydantic schemas for Investment API request / response serialisation.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from backoffice.schemas.common import MAX_AMOUNT


class InvestmentBase(BaseModel):
    """Fields common to investment creation and response payloads."""

    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        description="Contributed capital (must be positive)",
        examples=[250000],
    )
    invested_date: date = Field(
        default_factory=date.today,
        description="Date the capital was received (ISO-8601)",
        examples=["2025-03-15"],
    )
    promised_return: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Promised monthly return for this contribution, in percent",
    )
    notes: Optional[str] = Field(default=None, max_length=500)


class InvestmentCreate(InvestmentBase):
    """
    Schema for ``POST /investors/{investor_id}/investments``.

    The investor comes from the URL path.
    """

    @field_validator("invested_date")
    @classmethod
    def validate_invested_date_not_future(cls, v: date) -> date:
        """Capital cannot be received more than a day ahead (time-zone slack)."""
        max_date = date.today() + timedelta(days=1)
        if v > max_date:
            raise ValueError(f"invested_date cannot be in the future (max: {max_date})")
        return v


class InvestmentResponse(InvestmentBase):
    """Schema returned by investment endpoints."""

    id: UUID
    investor_id: UUID
    created_at: datetime

    @field_serializer("amount", "promised_return")
    @classmethod
    def serialize_decimal_as_number(cls, v: Optional[Decimal]) -> Optional[float]:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return None if v is None else float(v)

    model_config = ConfigDict(from_attributes=True)
