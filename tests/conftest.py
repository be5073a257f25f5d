"""
Shared pytest fixtures for unit and integration tests.

All tests run with ``USE_SQLITE=true``.  Service and endpoint tests use
mocked repositories, so no database I/O happens there.  The few
integration tests that need real SQL use the ``db_session`` fixture, an
in-memory SQLite database created fresh for each test.
"""

import os

os.environ.setdefault("USE_SQLITE", "true")

import uuid  # noqa: E402
from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402
from unittest.mock import AsyncMock, MagicMock  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from backoffice.core.cache import TTLCache  # noqa: E402
from backoffice.models.audit_log import AuditLogEntry  # noqa: E402
from backoffice.models.investment import Investment  # noqa: E402
from backoffice.models.investor import Investor, InvestorStatus  # noqa: E402
from backoffice.models.monthly_return import MonthlyReturn, ReturnStatus  # noqa: E402
from backoffice.models.trading import DailyPnL, TradingAccount  # noqa: E402
from backoffice.models.waiting_period import WaitingPeriodEntry  # noqa: E402

# ────────────────────────────────────────────────────────────────────────────
# Factory helpers — create domain objects with sensible defaults
# ────────────────────────────────────────────────────────────────────────────

INVESTOR_ID = uuid.UUID("22222222-2222-2222-2222-222222222222")
INVESTMENT_ID = uuid.UUID("33333333-3333-3333-3333-333333333333")
ENTRY_ID = uuid.UUID("44444444-4444-4444-4444-444444444444")
INVESTOR_ID_2 = uuid.UUID("55555555-5555-5555-5555-555555555555")
RETURN_ID = uuid.UUID("66666666-6666-6666-6666-666666666666")
ACCOUNT_ID = uuid.UUID("77777777-7777-7777-7777-777777777777")

# A fixed "now" so maturation tests do not depend on the wall clock.
NOW = datetime(2025, 6, 30, 12, 0, 0, tzinfo=timezone.utc)


def make_investor(
    *,
    id: uuid.UUID = INVESTOR_ID,
    client_id: str = "S91-INV-001",
    full_name: str = "Test Investor",
    email: str | None = "test@example.com",
    promised_return: Decimal | None = Decimal("2.50"),
    status: InvestorStatus = InvestorStatus.ACTIVE,
    waiting_period_start: datetime | None = None,
    created_at: datetime | None = None,
) -> Investor:
    """Create an Investor domain object with sensible test defaults."""
    return Investor(
        id=id,
        client_id=client_id,
        full_name=full_name,
        email=email,
        promised_return=promised_return,
        status=status,
        waiting_period_start=waiting_period_start,
        created_at=created_at or NOW,
        updated_at=created_at or NOW,
    )


def make_investment(
    *,
    id: uuid.UUID | None = None,
    investor_id: uuid.UUID = INVESTOR_ID,
    amount: Decimal = Decimal("1000000"),
    invested_date: date = date(2025, 1, 15),
) -> Investment:
    """Create an Investment domain object with sensible test defaults."""
    return Investment(
        id=id or uuid.uuid4(),
        investor_id=investor_id,
        amount=amount,
        invested_date=invested_date,
        created_at=NOW,
    )


def make_entry(
    *,
    id: uuid.UUID | None = None,
    investor_id: uuid.UUID = INVESTOR_ID,
    amount: Decimal = Decimal("100000"),
    initialized_date: datetime | None = None,
    days_ago: float | None = None,
    delivered: bool = False,
    delivered_at: datetime | None = None,
) -> WaitingPeriodEntry:
    """
    Create a WaitingPeriodEntry.

    ``days_ago`` is a shortcut for ``initialized_date = NOW - days_ago``.
    """
    if initialized_date is None:
        initialized_date = NOW - timedelta(days=days_ago or 0)
    return WaitingPeriodEntry(
        id=id or uuid.uuid4(),
        investor_id=investor_id,
        amount=amount,
        initialized_date=initialized_date,
        delivered=delivered,
        delivered_at=delivered_at,
        created_at=initialized_date,
    )


def make_monthly_return(
    *,
    id: uuid.UUID = RETURN_ID,
    investor_id: uuid.UUID = INVESTOR_ID,
    month: str = "2025-06",
    amount: Decimal = Decimal("25000"),
    return_percent: Decimal = Decimal("2.50"),
    status: ReturnStatus = ReturnStatus.PENDING,
) -> MonthlyReturn:
    return MonthlyReturn(
        id=id,
        investor_id=investor_id,
        month=month,
        amount=amount,
        return_percent=return_percent,
        status=status,
        created_at=NOW,
    )


def make_account(
    *,
    id: uuid.UUID = ACCOUNT_ID,
    name: str = "Nifty Desk",
    capital_allocated: Decimal = Decimal("100000"),
) -> TradingAccount:
    return TradingAccount(id=id, name=name, capital_allocated=capital_allocated, created_at=NOW)


def make_pnl(
    pnl_amount: Decimal,
    *,
    day: date,
    account_id: uuid.UUID = ACCOUNT_ID,
) -> DailyPnL:
    return DailyPnL(
        id=uuid.uuid4(),
        account_id=account_id,
        date=day,
        pnl_amount=pnl_amount,
        created_at=NOW,
    )


def make_audit_entry(action: str = "Created Investor") -> AuditLogEntry:
    return AuditLogEntry(
        id=uuid.uuid4(),
        action=action,
        reference_id="S91-INV-001",
        module="Investors",
        timestamp=NOW,
    )


def mock_repo():
    """An AsyncMock repository whose ``db`` session is mocked too."""
    repo = AsyncMock()
    repo.db = AsyncMock()
    return repo


# ────────────────────────────────────────────────────────────────────────────
# Pytest fixtures
# ────────────────────────────────────────────────────────────────────────────


@pytest.fixture()
def mock_db():
    """A mocked AsyncSession that tracks add/commit/refresh/rollback calls."""
    session = AsyncMock()
    session.add = MagicMock()
    session.commit = AsyncMock()
    session.refresh = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock()
    session.merge = AsyncMock()
    session.delete = AsyncMock()
    return session


@pytest.fixture()
def audit():
    """Mocked AuditService."""
    return AsyncMock()


@pytest.fixture()
def test_cache():
    """A fresh TTL cache instance for test isolation."""
    return TTLCache(ttl=30.0, max_size=100, enabled=True)


@pytest.fixture()
def disabled_cache():
    """A disabled TTL cache — all operations are no-ops."""
    return TTLCache(ttl=30.0, max_size=100, enabled=False)


@pytest.fixture(autouse=True)
def _clear_global_cache():
    """
    Clear the global cache before each test to prevent cross-test pollution.

    Uses autouse=True so every test gets a clean cache automatically.
    """
    from backoffice.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def _reset_circuit_breaker():
    """Close the global DB circuit breaker so one test's failures never leak."""
    from backoffice.core.resilience import db_circuit_breaker

    db_circuit_breaker.reset()
    yield


@pytest_asyncio.fixture()
async def db_session():
    """
    A session on a freshly created in-memory SQLite schema.

    The engine is disposed afterwards, which drops the in-memory database.
    """
    from sqlmodel import SQLModel

    import backoffice.db.base  # noqa: F401
    from backoffice.db.session import AsyncSessionLocal, engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    async with AsyncSessionLocal() as session:
        yield session
    await engine.dispose()
