"""
Pydantic schemas for Investor API request / response serialisation.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_serializer, field_validator

from backoffice.models.investor import Investor, InvestorStatus
from backoffice.schemas.common import MAX_AMOUNT
from backoffice.services import ledger

NAME_PATTERN = r"^[a-zA-Z\s\.]+$"
PHONE_PATTERN = r"^\+?[0-9]{10,15}$"


class InvestorBase(BaseModel):
    """Contact and terms fields shared by create and response payloads."""

    full_name: str = Field(
        ...,
        min_length=2,
        max_length=100,
        pattern=NAME_PATTERN,
        description="Full name (letters, spaces and dots only)",
        examples=["Ravi K. Sharma"],
    )
    email: Optional[EmailStr] = Field(default=None, examples=["ravi@example.com"])
    phone: Optional[str] = Field(
        default=None,
        pattern=PHONE_PATTERN,
        description="10 to 15 digits, optionally prefixed with +",
        examples=["+919876543210"],
    )
    address: Optional[str] = Field(default=None, max_length=200)
    promised_return: Optional[Decimal] = Field(
        default=None,
        ge=0,
        le=100,
        description="Promised monthly return in percent",
        examples=[2.5],
    )
    joining_date: Optional[date] = Field(default=None, examples=["2025-01-15"])

    @field_validator("full_name")
    @classmethod
    def validate_name_not_blank(cls, v: str) -> str:
        """Reject whitespace-only names."""
        if not v.strip():
            raise ValueError("full_name must not be blank")
        return v.strip()


class InvestorCreate(InvestorBase):
    """
    Schema for ``POST /investors``.

    ``investment_amount``, when given, is recorded as the investor's first
    investment dated ``joining_date`` (or today).
    """

    investment_amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        le=MAX_AMOUNT,
        description="Initial capital contribution",
        examples=[500000],
    )


class InvestorUpdate(BaseModel):
    """
    Schema for ``PATCH /investors/{id}``.

    Only the fields present in the body are changed.  Status has its own
    endpoint and the client id never changes.
    """

    full_name: Optional[str] = Field(
        default=None, min_length=2, max_length=100, pattern=NAME_PATTERN
    )
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    address: Optional[str] = Field(default=None, max_length=200)
    promised_return: Optional[Decimal] = Field(default=None, ge=0, le=100)
    joining_date: Optional[date] = None


class InvestorStatusUpdate(BaseModel):
    """Schema for ``PUT /investors/{id}/status``."""

    status: InvestorStatus = Field(..., examples=["waiting_period"])


class InvestorResponse(InvestorBase):
    """Schema returned by all investor endpoints."""

    id: UUID
    client_id: Optional[str]
    status: InvestorStatus
    waiting_period_start: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    investment_amount: Decimal = Field(
        default=Decimal("0"),
        description="Sum of the investor's investments, computed on read",
    )

    # Stored rows predate the create-time pattern checks, so responses
    # must not re-validate them.
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None

    @field_serializer("investment_amount", "promised_return")
    @classmethod
    def serialize_decimal_as_number(cls, v: Optional[Decimal]) -> Optional[float]:
        """Serialize Decimal as a JSON number (float) rather than a string."""
        return None if v is None else float(v)

    @classmethod
    def from_investor(cls, investor: Investor, investment_amount: Decimal) -> "InvestorResponse":
        response = cls.model_validate(investor)
        response.investment_amount = investment_amount
        # SQLite hands back naive datetimes; every stored timestamp is UTC.
        response.created_at = ledger.as_utc(investor.created_at)
        response.updated_at = ledger.as_utc(investor.updated_at)
        if investor.waiting_period_start is not None:
            response.waiting_period_start = ledger.as_utc(investor.waiting_period_start)
        return response

    model_config = ConfigDict(from_attributes=True)
