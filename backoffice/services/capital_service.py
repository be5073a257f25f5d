"""
Capital service — per-investor summaries and the firm-wide dashboard.

Both views need several independent reads.  They run concurrently with
``asyncio.gather``; each repository handed to this service must sit on its
own ``AsyncSession`` (see ``backoffice.db.session.read_sessions``), because
one session cannot serve two coroutines at once.

Failure semantics:
    An empty table is a legitimate zero.  A read that *fails* fails the
    whole call with :class:`UpstreamFetchException` naming the table.  It is
    never turned into a zero, which would silently misstate capital.  All
    reads are allowed to settle before the first failure is re-raised so
    no query is left running on a session that is about to close.
"""

import asyncio
import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional
from uuid import UUID

from backoffice.core.exceptions import NotFoundException
from backoffice.models.monthly_return import ReturnStatus
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.monthly_return_repo import MonthlyReturnRepository
from backoffice.repositories.trading_repo import DailyPnLRepository, TradingAccountRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.schemas.capital import (
    DashboardResponse,
    EquityPointResponse,
    InvestorSummaryResponse,
)
from backoffice.schemas.monthly_return import MonthlyReturnResponse
from backoffice.schemas.waiting_period import WaitingPeriodEntryResponse
from backoffice.services import capital, ledger

logger = logging.getLogger(__name__)


async def gather_reads(*reads: Any) -> List[Any]:
    """Await ``reads`` concurrently; once all settle, re-raise the first failure."""
    results = await asyncio.gather(*reads, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return list(results)


class CapitalService:
    """Computes derived capital figures on read.  Nothing is cached or stored."""

    def __init__(
        self,
        investor_repo: InvestorRepository,
        investment_repo: InvestmentRepository,
        entry_repo: WaitingPeriodRepository,
        return_repo: MonthlyReturnRepository,
        account_repo: TradingAccountRepository,
        pnl_repo: DailyPnLRepository,
    ):
        self._investor_repo = investor_repo
        self._investment_repo = investment_repo
        self._entry_repo = entry_repo
        self._return_repo = return_repo
        self._account_repo = account_repo
        self._pnl_repo = pnl_repo

    async def investor_summary(
        self, investor_id: UUID, as_of: Optional[datetime] = None
    ) -> InvestorSummaryResponse:
        """Capital figures and classified entries of one investor at ``as_of``."""
        now = ledger.utcnow() if as_of is None else ledger.as_utc(as_of)

        investor, investments, entries, returns = await gather_reads(
            self._investor_repo.get(investor_id),
            self._investment_repo.list_by_investor(investor_id),
            self._entry_repo.list_entries(investor_id),
            self._return_repo.list_returns(investor_id=investor_id),
        )
        if investor is None:
            raise NotFoundException("Investor", investor_id)

        figures = capital.summarize_investor(investments, entries, now)
        return InvestorSummaryResponse(
            investor_id=investor_id,
            as_of=now,
            total_invested=figures.total_invested,
            remaining_capital=figures.remaining_capital,
            returnable_capital=figures.returnable_capital,
            capital_returned=figures.capital_returned,
            pending_capital=figures.pending_capital,
            pending_entries=[
                WaitingPeriodEntryResponse.from_entry(e, now) for e in figures.partition.pending
            ],
            delivered_entries=[
                WaitingPeriodEntryResponse.from_entry(e, now) for e in figures.partition.delivered
            ],
            monthly_returns=[MonthlyReturnResponse.model_validate(r) for r in returns],
        )

    async def dashboard(self, as_of: Optional[datetime] = None) -> DashboardResponse:
        """Firm-wide figures at ``as_of`` from six concurrent reads."""
        now = ledger.utcnow() if as_of is None else ledger.as_utc(as_of)

        investors, pnl, returns, accounts, investments, entries = await gather_reads(
            self._investor_repo.list_all(),
            self._pnl_repo.list_ordered(),
            self._return_repo.list_returns(),
            self._account_repo.list_accounts(),
            self._investment_repo.list_all(),
            self._entry_repo.list_entries(),
        )

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        new_this_month = sum(
            1 for i in investors if month_start <= ledger.as_utc(i.created_at) <= now
        )
        total_allocated = sum((Decimal(a.capital_allocated) for a in accounts), capital.ZERO)
        pending_returns = sum(
            (Decimal(r.amount) for r in returns if r.status == ReturnStatus.PENDING),
            capital.ZERO,
        )
        invested = capital.total_invested(investments)
        firm = capital.summarize_firm(total_allocated, invested, entries, pnl, now)

        logger.debug(
            "Dashboard at %s: firm capital %s from %d accounts and %d P&L rows",
            now.isoformat(),
            firm.firm_capital,
            len(accounts),
            len(pnl),
        )
        return DashboardResponse(
            as_of=now,
            total_investors=len(investors),
            new_investors_this_month=new_this_month,
            total_invested=invested,
            total_allocated=firm.total_allocated,
            total_delivered=firm.total_delivered,
            total_pnl=firm.total_pnl,
            pending_returns=pending_returns,
            active_allocated=firm.active_allocated,
            firm_capital=firm.firm_capital,
            investor_capital=firm.split.investor_capital,
            internal_capital=firm.split.internal_capital,
            growth_percent=firm.equity_curve.growth_percent,
            equity_curve=[
                EquityPointResponse(date=p.date, equity=p.equity) for p in firm.equity_curve
            ],
        )
