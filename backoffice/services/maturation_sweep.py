"""
Maturation sweep — moves investors out of ``waiting_period``.

An investor whose ``waiting_period_start`` is at least 60 days old is set
to ``inactive`` and an "Auto-transitioned to Inactive" audit entry is
written.  Both happen in one transaction per investor, so an investor is
either moved *and* logged, or neither.

The update is conditional (``WHERE status = 'waiting_period'``).  When two
runs overlap, only one of them matches the row; the other skips the
investor without writing a second audit entry.  Running the sweep again
at the same ``as_of`` is therefore a no-op.

This clock is the investor-level ``waiting_period_start``.  It is separate
from the per-entry ``initialized_date`` that drives capital maturation.

Invoked by an external scheduler through ``python -m backoffice.sweep`` or
``POST /api/v1/jobs/maturation-sweep``; nothing here schedules itself.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.cache import cache
from backoffice.core.config import settings
from backoffice.core.exceptions import AppException
from backoffice.db.session import AsyncSessionLocal
from backoffice.models.audit_log import AuditLogEntry
from backoffice.models.investor import Investor, InvestorStatus
from backoffice.repositories.audit_repo import AuditLogRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.services import ledger
from backoffice.services.audit_service import ACTION_AUTO_INACTIVE, MODULE_INVESTORS, build_entry
from backoffice.services.investor_service import CACHE_ENTITY as INVESTOR_CACHE_ENTITY

logger = logging.getLogger(__name__)


@dataclass
class SweepResult:
    as_of: datetime
    investor_ids: List[UUID] = field(default_factory=list)
    failed_ids: List[UUID] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.investor_ids)


class MaturationSweep:
    """
    Parameters
    ----------
    session_factory : callable
        Returns a new ``AsyncSession`` usable as an async context manager.
        One session is opened for the candidate query and one per investor.
    """

    def __init__(self, session_factory: Callable[[], AsyncSession] = AsyncSessionLocal):
        self._session_factory = session_factory

    async def run(self, as_of: Optional[datetime] = None) -> SweepResult:
        """
        Transition every due investor and report what happened.

        A failure for one investor is logged and listed in ``failed_ids``;
        the remaining investors are still processed.  A failure of the
        candidate query itself propagates.
        """
        now = ledger.utcnow() if as_of is None else ledger.as_utc(as_of)
        cutoff = now - ledger.WAITING_PERIOD
        result = SweepResult(as_of=now)

        async with self._session_factory() as session:
            due = await InvestorRepository(Investor, session).list_due_for_sweep(cutoff)
        logger.info("Maturation sweep at %s: %d investor(s) due", now.isoformat(), len(due))

        for investor in due:
            try:
                moved = await self._transition(investor, now)
            except (SQLAlchemyError, AppException) as exc:
                logger.warning(
                    "Maturation sweep could not transition investor %s: %s",
                    investor.id,
                    exc,
                    extra={"investor_id": str(investor.id)},
                )
                result.failed_ids.append(investor.id)
                continue
            if moved:
                result.investor_ids.append(investor.id)
            else:
                logger.info("Investor %s already left waiting_period; skipped", investor.id)

        logger.info(
            "Maturation sweep finished: %d transitioned, %d failed",
            result.count,
            len(result.failed_ids),
        )
        return result

    async def _transition(self, investor: Investor, now: datetime) -> bool:
        """Status change and audit entry in a single transaction."""
        async with self._session_factory() as session:
            investor_repo = InvestorRepository(Investor, session)
            audit_repo = AuditLogRepository(AuditLogEntry, session)
            try:
                changed = await investor_repo.transition_status(
                    investor.id,
                    expected=InvestorStatus.WAITING_PERIOD,
                    new_status=InvestorStatus.INACTIVE,
                    now=now,
                )
                if not changed:
                    await session.rollback()
                    return False
                await audit_repo.add(
                    build_entry(
                        ACTION_AUTO_INACTIVE,
                        investor.client_id or investor.id,
                        MODULE_INVESTORS,
                        f"{investor.full_name} moved to inactive after "
                        f"{settings.WAITING_PERIOD_DAYS} days in waiting period",
                    )
                )
                await session.commit()
            except (SQLAlchemyError, AppException):
                await session.rollback()
                raise

        cache.invalidate_entity(INVESTOR_CACHE_ENTITY, investor.id)
        logger.info(
            "Investor %s moved to inactive", investor.id, extra={"investor_id": str(investor.id)}
        )
        return True
