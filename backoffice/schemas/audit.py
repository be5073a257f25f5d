"""
Pydantic schemas for the audit trail and the maturation sweep job.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AuditLogResponse(BaseModel):
    id: UUID
    action: str
    reference_id: Optional[str]
    module: Optional[str]
    notes: Optional[str]
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)


class SweepResponse(BaseModel):
    """Result of ``POST /jobs/maturation-sweep``."""

    as_of: datetime
    count: int = Field(..., description="Investors moved to inactive by this run")
    investor_ids: List[UUID]
    failed_ids: List[UUID] = Field(
        default_factory=list,
        description="Investors whose transition failed and should be retried",
    )
