"""
Database model registry.

Importing this module registers every table with ``SQLModel.metadata``,
which is required before ``create_all()``.
"""

from backoffice.models.audit_log import AuditLogEntry  # noqa: F401
from backoffice.models.investment import Investment  # noqa: F401
from backoffice.models.investor import ClientIdSequence, Investor  # noqa: F401
from backoffice.models.monthly_return import MonthlyReturn  # noqa: F401
from backoffice.models.trading import DailyPnL, TradingAccount  # noqa: F401
from backoffice.models.waiting_period import WaitingPeriodEntry  # noqa: F401
