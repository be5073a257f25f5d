"""
Trading repositories — ``trading_accounts`` and ``daily_pnl``.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy.future import select

from backoffice.models.trading import DailyPnL, TradingAccount
from backoffice.repositories.base import BaseRepository


class TradingAccountRepository(BaseRepository[TradingAccount]):
    """Concrete repository for :class:`TradingAccount` entities."""

    async def list_accounts(self) -> List[TradingAccount]:
        async def _list() -> List[TradingAccount]:
            stmt = select(self.model).order_by(self.model.name)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)


class DailyPnLRepository(BaseRepository[DailyPnL]):
    """Concrete repository for :class:`DailyPnL` entities."""

    async def list_ordered(self, account_id: Optional[UUID] = None) -> List[DailyPnL]:
        """
        P&L rows in ascending date order, optionally for one account.

        The equity curve is a running sum over this list, so the order is
        part of the contract.
        """

        async def _list() -> List[DailyPnL]:
            stmt = select(self.model)
            if account_id is not None:
                stmt = stmt.where(self.model.account_id == account_id)
            stmt = stmt.order_by(self.model.date, self.model.created_at)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list)
