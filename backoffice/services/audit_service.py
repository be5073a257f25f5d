"""
Audit service — append-only trail of mutating actions.

Every command in the other services records one entry here *after* its
own write has committed.  A failure to write the audit row is logged and
does not undo or fail the business operation it describes.  The one
exception is the maturation sweep, which writes its audit row inside the
same transaction as the status change (see ``maturation_sweep``).
"""

import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from backoffice.core.exceptions import UpstreamFetchException
from backoffice.models.audit_log import AuditLogEntry
from backoffice.repositories.audit_repo import AuditLogRepository

logger = logging.getLogger(__name__)

# ── Modules ──
MODULE_INVESTORS = "Investors"
MODULE_INVESTMENTS = "Investments"
MODULE_WAITING_PERIOD = "Waiting Period"
MODULE_RETURNS = "Monthly Returns"
MODULE_TRADING = "Trading"

# ── Actions ──
ACTION_INVESTOR_CREATED = "Created Investor"
ACTION_INVESTOR_UPDATED = "Investor Updated"
ACTION_INVESTOR_DELETED = "Investor Deleted"
ACTION_STATUS_CHANGED = "Status Changed"
ACTION_INVESTMENT_ADDED = "Investment Added"
ACTION_RETURN_INITIALIZED = "Capital Return Initialized"
ACTION_RETURN_DELIVERED = "Capital Return Delivered"
ACTION_MONTHLY_RETURN_ADDED = "Monthly Return Added"
ACTION_RETURN_STATUS_UPDATED = "Return Status Updated"
ACTION_ACCOUNT_CREATED = "Trading Account Created"
ACTION_PNL_ADDED = "Daily P&L Added"
ACTION_AUTO_INACTIVE = "Auto-transitioned to Inactive"


def build_entry(
    action: str,
    reference_id: Optional[object] = None,
    module: Optional[str] = None,
    notes: Optional[str] = None,
) -> AuditLogEntry:
    return AuditLogEntry(
        action=action,
        reference_id=None if reference_id is None else str(reference_id),
        module=module,
        notes=notes,
    )


class AuditService:
    """Records and lists :class:`AuditLogEntry` rows."""

    def __init__(self, audit_repo: AuditLogRepository):
        self._repo = audit_repo

    async def record(
        self,
        action: str,
        reference_id: Optional[object] = None,
        module: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Optional[AuditLogEntry]:
        """
        Append one audit entry and commit it.

        Returns ``None`` (after logging a warning) if the row could not be
        written; the caller's own change is already committed by then.
        """
        entry = build_entry(action, reference_id, module, notes)
        try:
            return await self._repo.create(entry)
        except (SQLAlchemyError, UpstreamFetchException) as exc:
            await self._repo.db.rollback()
            logger.warning(
                "Audit entry '%s' for %s could not be written: %s", action, reference_id, exc
            )
            return None

    async def list_recent(
        self,
        limit: int = 100,
        module: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> List[AuditLogEntry]:
        return await self._repo.list_recent(limit=limit, module=module, reference_id=reference_id)
