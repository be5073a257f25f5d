"""
Pydantic schemas for monthly return (payout) serialisation.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from backoffice.models.monthly_return import ReturnStatus

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class MonthlyReturnCreate(BaseModel):
    """
    Schema for ``POST /investors/{investor_id}/monthly-returns``.

    The amount is not supplied: it is computed from the investor's remaining
    capital.  ``return_percent`` defaults to the investor's promised return.
    """

    month: str = Field(..., pattern=MONTH_PATTERN, examples=["2025-06"])
    return_percent: Optional[Decimal] = Field(default=None, ge=0, le=100, examples=[2.5])


class MonthlyReturnStatusUpdate(BaseModel):
    """Schema for ``PUT /monthly-returns/{id}/status``."""

    status: ReturnStatus = Field(..., examples=["paid"])


class MonthlyReturnResponse(BaseModel):
    """Schema returned by monthly return endpoints."""

    id: UUID
    investor_id: UUID
    month: str
    amount: Decimal
    return_percent: Decimal
    status: ReturnStatus
    paid_at: Optional[datetime]
    created_at: datetime

    @field_serializer("amount", "return_percent")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)

    model_config = ConfigDict(from_attributes=True)
