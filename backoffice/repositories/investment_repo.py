"""
Investment repository — data-access layer for the ``investments`` table.

Extends generic CRUD with the investor-scoped queries behind
``GET /investors/{id}/investments`` and the capital figures.
"""

from decimal import Decimal
from typing import List
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.future import select

from backoffice.models.investment import Investment
from backoffice.repositories.base import BaseRepository


class InvestmentRepository(BaseRepository[Investment]):
    """Concrete repository for :class:`Investment` entities."""

    async def list_by_investor(
        self, investor_id: UUID, skip: int = 0, limit: int = 1000
    ) -> List[Investment]:
        """
        Return an investor's investments, most recent first.

        Served by ``ix_investments_investor_date``.  ``created_at`` breaks
        ties between contributions recorded on the same day.
        """

        async def _list() -> List[Investment]:
            stmt = (
                select(self.model)
                .where(self.model.investor_id == investor_id)
                .order_by(self.model.invested_date.desc(), self.model.created_at.desc())
                .offset(skip)
                .limit(limit)
            )
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)

    async def list_all(self) -> List[Investment]:
        async def _list_all() -> List[Investment]:
            stmt = select(self.model).order_by(self.model.invested_date)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list_all)

    async def sum_for_investor(self, investor_id: UUID) -> Decimal:
        """Gross contributed capital of one investor, ``0`` if none."""

        async def _sum() -> Decimal:
            stmt = select(func.coalesce(func.sum(self.model.amount), 0)).where(
                self.model.investor_id == investor_id
            )
            result = await self.db.execute(stmt)
            return Decimal(str(result.scalar_one()))

        return await self._read(_sum)
