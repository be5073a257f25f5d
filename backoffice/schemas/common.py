"""
Common / shared Pydantic schemas used across multiple endpoints.

Defines the error response models so that the OpenAPI document shows the
error payloads as well as the happy path, plus the money bounds shared by
the request schemas.
"""

from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

# Upper bound on any single amount entered through the API.
MAX_AMOUNT = Decimal("10000000000")
# Upper bound (in either direction) on one day's P&L.
MAX_DAILY_PNL = Decimal("1000000000")


class ErrorResponse(BaseModel):
    """
    Standard error envelope returned by all non-validation error handlers.

    ``details`` is present only when the error carries extra context, e.g.
    the failing ``source`` of a 503 or the committed entry id of a partial
    write.
    """

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        ..., description="Human-readable error description", examples=["Investor not found"]
    )
    details: Optional[Any] = Field(default=None, description="Extra error context")


class ValidationErrorDetail(BaseModel):
    """Single field-level validation failure."""

    field: str = Field(
        ...,
        description="Dot-separated path to the invalid field",
        examples=["body -> amount"],
    )
    message: str = Field(
        ...,
        description="Explanation of the validation failure",
        examples=["Input should be greater than 0"],
    )


class ValidationErrorResponse(BaseModel):
    """
    Response body for 422 Unprocessable Entity (schema validation failure).

    Includes a ``details`` array so clients can map errors to individual
    form fields.
    """

    error: bool = Field(default=True, description="Always ``true`` for errors")
    message: str = Field(
        default="Validation failed",
        description="Summary message",
    )
    details: List[ValidationErrorDetail] = Field(..., description="Per-field validation failures")
