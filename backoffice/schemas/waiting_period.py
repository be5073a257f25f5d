"""
Pydantic schemas for capital returns and waiting-period entries.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.schemas.common import MAX_AMOUNT
from backoffice.services import ledger


class EntryState(str, Enum):
    """Filter values for ``GET /waiting-period-entries``."""

    PENDING = "pending"
    DELIVERED = "delivered"


class CapitalReturnCreate(BaseModel):
    """Schema for ``POST /investors/{investor_id}/capital-returns``."""

    amount: Decimal = Field(
        ...,
        gt=0,
        le=MAX_AMOUNT,
        description="Capital to return; at most the investor's returnable capital",
        examples=[300000],
    )
    initialized_date: Optional[datetime] = Field(
        default=None,
        description="When the waiting period starts (UTC); defaults to now",
    )
    notes: Optional[str] = Field(default=None, max_length=500)
    transition_investor: bool = Field(
        default=False,
        description="Also move the investor into the waiting_period status",
    )


class WaitingPeriodEntryResponse(BaseModel):
    """
    A waiting-period entry together with its maturation view at ``as_of``.

    ``matured`` is true once the entry was delivered manually or its window
    elapsed; ``maturity_source`` says which.
    """

    id: UUID
    investor_id: UUID
    amount: Decimal
    initialized_date: datetime
    delivered: bool
    delivered_at: Optional[datetime]
    notes: Optional[str]
    created_at: datetime
    matured: bool = False
    maturity_source: Optional[str] = None
    maturity_date: Optional[datetime] = None
    days_remaining: int = 0

    @field_serializer("amount")
    @classmethod
    def serialize_decimal_as_number(cls, v: Decimal) -> float:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return float(v)

    @classmethod
    def from_entry(
        cls, entry: WaitingPeriodEntry, as_of: Optional[datetime] = None
    ) -> "WaitingPeriodEntryResponse":
        response = cls.model_validate(entry)
        response.initialized_date = ledger.as_utc(entry.initialized_date)
        if entry.delivered_at is not None:
            response.delivered_at = ledger.as_utc(entry.delivered_at)
        response.matured = ledger.is_matured(entry, as_of)
        response.maturity_source = ledger.maturity_source(entry, as_of)
        response.maturity_date = ledger.maturity_date(entry)
        response.days_remaining = ledger.days_remaining(entry, as_of)
        return response

    model_config = ConfigDict(from_attributes=True)


class DeliverResponse(BaseModel):
    """
    Result of ``POST /waiting-period-entries/{id}/deliver``.

    Delivering an already delivered entry is not an error; it returns the
    entry unchanged with ``already_delivered`` set.
    """

    entry: WaitingPeriodEntryResponse
    already_delivered: bool
