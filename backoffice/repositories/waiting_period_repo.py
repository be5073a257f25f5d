"""
Waiting-period repository — data-access layer for ``waiting_period_entries``.

The ``delivered`` flag is only ever set through :meth:`mark_delivered`, a
conditional update, so two concurrent manual deliveries cannot both report
that they changed the row.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.future import select

from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.base import BaseRepository


class WaitingPeriodRepository(BaseRepository[WaitingPeriodEntry]):
    """Concrete repository for :class:`WaitingPeriodEntry` entities."""

    async def list_entries(self, investor_id: Optional[UUID] = None) -> List[WaitingPeriodEntry]:
        """Entries (optionally of one investor), most recently initialised first."""

        async def _list() -> List[WaitingPeriodEntry]:
            stmt = select(self.model)
            if investor_id is not None:
                stmt = stmt.where(self.model.investor_id == investor_id)
            stmt = stmt.order_by(self.model.initialized_date.desc(), self.model.created_at.desc())
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)

    async def sum_for_investor(self, investor_id: UUID) -> Decimal:
        """Sum of every entry of an investor, pending or delivered."""

        async def _sum() -> Decimal:
            stmt = select(func.coalesce(func.sum(self.model.amount), 0)).where(
                self.model.investor_id == investor_id
            )
            result = await self.db.execute(stmt)
            return Decimal(str(result.scalar_one()))

        return await self._read(_sum)

    async def mark_delivered(self, entry_id: UUID, delivered_at: datetime) -> bool:
        """
        ``UPDATE ... SET delivered = true, delivered_at = ? WHERE id = ? AND NOT delivered``.

        Commits and returns ``True`` only if this call flipped the flag.
        """

        async def _mark() -> bool:
            stmt = (
                update(self.model)
                .where(self.model.id == entry_id, self.model.delivered.is_(False))
                .values(delivered=True, delivered_at=delivered_at)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self._commit("mark_delivered")
            return result.rowcount == 1

        return await self._execute_with_circuit_breaker(_mark)

    async def refetch(self, entry_id: UUID) -> Optional[WaitingPeriodEntry]:
        """Load an entry bypassing the session's identity map."""

        async def _refetch() -> Optional[WaitingPeriodEntry]:
            return await self.db.get(self.model, entry_id, populate_existing=True)

        return await self._read(_refetch)
