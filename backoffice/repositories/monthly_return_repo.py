"""
Monthly return repository — data-access layer for ``monthly_returns``.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.future import select

from backoffice.models.monthly_return import MonthlyReturn, ReturnStatus
from backoffice.repositories.base import BaseRepository


class MonthlyReturnRepository(BaseRepository[MonthlyReturn]):
    """Concrete repository for :class:`MonthlyReturn` entities."""

    async def get_by_investor_month(self, investor_id: UUID, month: str) -> Optional[MonthlyReturn]:
        """
        Look up the payout of an investor for ``month`` (``YYYY-MM``).

        Used by the duplicate pre-check before the composite unique
        constraint fires.
        """

        async def _get() -> Optional[MonthlyReturn]:
            stmt = select(self.model).where(
                self.model.investor_id == investor_id, self.model.month == month
            )
            result = await self.db.execute(stmt)
            return result.scalars().first()

        return await self._read(_get)

    async def list_returns(
        self,
        investor_id: Optional[UUID] = None,
        status: Optional[ReturnStatus] = None,
    ) -> List[MonthlyReturn]:
        """Payouts, newest month first, optionally filtered by investor and status."""

        async def _list() -> List[MonthlyReturn]:
            stmt = select(self.model)
            if investor_id is not None:
                stmt = stmt.where(self.model.investor_id == investor_id)
            if status is not None:
                stmt = stmt.where(self.model.status == status)
            stmt = stmt.order_by(self.model.month.desc(), self.model.created_at.desc())
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)
