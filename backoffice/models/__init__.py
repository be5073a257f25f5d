"""SQLModel table models — import here so metadata is populated."""

from backoffice.models.audit_log import AuditLogEntry  # noqa: F401
from backoffice.models.investment import Investment  # noqa: F401
from backoffice.models.investor import ClientIdSequence, Investor, InvestorStatus  # noqa: F401
from backoffice.models.monthly_return import MonthlyReturn, ReturnStatus  # noqa: F401
from backoffice.models.trading import AccountStatus, DailyPnL, TradingAccount  # noqa: F401
from backoffice.models.waiting_period import WaitingPeriodEntry  # noqa: F401
