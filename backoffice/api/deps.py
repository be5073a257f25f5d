"""
Service builders shared by several endpoint modules.

FastAPI's ``Depends()`` creates fresh service instances per request.  Within
one request ``get_db`` is resolved once, so every service built here for a
write path shares that request's session and transaction.

The capital service is the exception: its reads run concurrently, so it gets
one session per repository from ``read_sessions``.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.session import get_db, read_sessions
from backoffice.models.audit_log import AuditLogEntry
from backoffice.models.investment import Investment
from backoffice.models.investor import Investor
from backoffice.models.monthly_return import MonthlyReturn
from backoffice.models.trading import DailyPnL, TradingAccount
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.audit_repo import AuditLogRepository
from backoffice.repositories.investment_repo import InvestmentRepository
from backoffice.repositories.investor_repo import InvestorRepository
from backoffice.repositories.monthly_return_repo import MonthlyReturnRepository
from backoffice.repositories.trading_repo import DailyPnLRepository, TradingAccountRepository
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository
from backoffice.services.audit_service import AuditService
from backoffice.services.capital_service import CapitalService
from backoffice.services.investor_service import InvestorService
from backoffice.services.maturation_sweep import MaturationSweep

CAPITAL_READS = 6


def get_audit_service(db: AsyncSession = Depends(get_db)) -> AuditService:
    return AuditService(AuditLogRepository(AuditLogEntry, db))


def get_investor_service(
    db: AsyncSession = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> InvestorService:
    """Build an InvestorService wired to the current request's DB session."""
    return InvestorService(
        investor_repo=InvestorRepository(Investor, db),
        investment_repo=InvestmentRepository(Investment, db),
        audit=audit,
    )


async def get_capital_service() -> AsyncGenerator[CapitalService, None]:
    """
    Build a CapitalService with one session per repository.

    The sessions close when the request finishes.
    """
    async with read_sessions(CAPITAL_READS) as sessions:
        investors, investments, entries, returns, accounts, pnl = sessions
        yield CapitalService(
            investor_repo=InvestorRepository(Investor, investors),
            investment_repo=InvestmentRepository(Investment, investments),
            entry_repo=WaitingPeriodRepository(WaitingPeriodEntry, entries),
            return_repo=MonthlyReturnRepository(MonthlyReturn, returns),
            account_repo=TradingAccountRepository(TradingAccount, accounts),
            pnl_repo=DailyPnLRepository(DailyPnL, pnl),
        )


def get_maturation_sweep() -> MaturationSweep:
    return MaturationSweep()
