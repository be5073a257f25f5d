"""
Investor repository — data-access layer for the ``investors`` table.

Adds to generic CRUD:
- client-id issuance from ``client_id_sequence`` inside the insert transaction,
- the list query that sums each investor's investments on read,
- the conditional status update used by the maturation sweep.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.future import select

from backoffice.core.config import settings
from backoffice.models.investment import Investment
from backoffice.models.investor import ClientIdSequence, Investor, InvestorStatus
from backoffice.repositories.base import BaseRepository


def format_client_id(number: int) -> str:
    """``7`` -> ``S91-INV-007``.  Numbers wider than the padding keep all digits."""
    return f"{settings.CLIENT_ID_PREFIX}{number:0{settings.CLIENT_ID_WIDTH}d}"


class InvestorRepository(BaseRepository[Investor]):
    """Concrete repository for :class:`Investor` entities."""

    async def create(self, obj_in: Investor) -> Investor:
        """
        Insert an investor with a freshly issued client id.

        A ``client_id_sequence`` row is flushed first and its autoincrement
        key becomes the numeric part of the id, all in the same transaction
        as the investor insert.  Numbers are never reused.
        """

        async def _create() -> Investor:
            issued = ClientIdSequence()
            self.db.add(issued)
            await self.db.flush()
            obj_in.client_id = format_client_id(issued.id)
            self.db.add(obj_in)
            await self._commit("create")
            await self.db.refresh(obj_in)
            return obj_in

        return await self._execute_with_circuit_breaker(_create)

    async def get_for_update(self, investor_id: UUID) -> Optional[Investor]:
        """
        Load the investor with ``SELECT ... FOR UPDATE``.

        Holds the row lock until the caller's transaction ends, serialising
        concurrent capital-return initialisations for the same investor.
        SQLite has no row locks and ignores the clause.
        """

        async def _get() -> Optional[Investor]:
            stmt = (
                select(Investor)
                .where(Investor.id == investor_id)
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            result = await self.db.execute(stmt)
            return result.scalars().first()

        return await self._read(_get)

    async def list_with_totals(
        self,
        status: Optional[InvestorStatus] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Tuple[Investor, Decimal]]:
        """
        Return ``(investor, investment_amount)`` pairs, newest investor first.

        ``investment_amount`` is summed from ``investments`` by a correlated
        subquery; investors without investments get ``0``.  ``search``
        matches the name or the client id, case-insensitively.
        """
        invested = (
            select(func.coalesce(func.sum(Investment.amount), 0))
            .where(Investment.investor_id == Investor.id)
            .correlate(Investor)
            .scalar_subquery()
        )

        async def _list() -> List[Tuple[Investor, Decimal]]:
            stmt = select(Investor, invested.label("investment_amount"))
            if status is not None:
                stmt = stmt.where(Investor.status == status)
            if search:
                pattern = f"%{search}%"
                stmt = stmt.where(
                    or_(Investor.full_name.ilike(pattern), Investor.client_id.ilike(pattern))
                )
            stmt = stmt.order_by(Investor.created_at.desc()).offset(skip).limit(limit)
            result = await self.db.execute(stmt)
            return [(row[0], Decimal(str(row[1]))) for row in result.all()]

        return await self._read(_list)

    async def list_all(self) -> List[Investor]:
        """Every investor, oldest first.  Feeds the dashboard."""

        async def _list_all() -> List[Investor]:
            stmt = select(Investor).order_by(Investor.created_at)
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_list_all)

    async def list_due_for_sweep(self, cutoff: datetime) -> List[Investor]:
        """Investors still in ``waiting_period`` whose window opened at or before ``cutoff``."""

        async def _due() -> List[Investor]:
            stmt = (
                select(Investor)
                .where(
                    Investor.status == InvestorStatus.WAITING_PERIOD,
                    Investor.waiting_period_start.is_not(None),
                    Investor.waiting_period_start <= cutoff,
                )
                .order_by(Investor.waiting_period_start)
            )
            result = await self.db.execute(stmt)
            return list(result.scalars().all())

        return await self._read(_due)

    async def transition_status(
        self,
        investor_id: UUID,
        expected: InvestorStatus,
        new_status: InvestorStatus,
        now: datetime,
    ) -> bool:
        """
        ``UPDATE investors SET status = new_status WHERE id = ? AND status = expected``.

        Does not commit; the caller commits together with its audit record.
        Returns ``False`` when no row matched, i.e. the investor was already
        moved (or deleted) by someone else.
        """

        async def _transition() -> bool:
            stmt = (
                update(Investor)
                .where(Investor.id == investor_id, Investor.status == expected)
                .values(status=new_status, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            return result.rowcount == 1

        return await self._execute_with_circuit_breaker(_transition)
