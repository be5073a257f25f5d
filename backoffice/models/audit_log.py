"""
Audit log model.

Append-only record of every mutating action.  The application inserts rows
and lists them; it never updates or deletes them.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class AuditLogEntry(SQLModel, table=True):
    """SQLModel table definition for ``audit_logs``."""

    __tablename__ = "audit_logs"  # type: ignore[assignment]

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    action: str = Field(max_length=120)
    reference_id: Optional[str] = Field(default=None, max_length=64, index=True)
    module: Optional[str] = Field(default=None, max_length=40)
    notes: Optional[str] = Field(default=None, max_length=1000)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_type=DateTime(timezone=True),  # type: ignore[arg-type]
        index=True,
    )

    def __repr__(self) -> str:
        return f"<AuditLogEntry action='{self.action}' reference={self.reference_id}>"
