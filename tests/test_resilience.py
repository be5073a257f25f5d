"""
Unit tests for the database circuit breaker and its use by repositories.

Tests cover:
- CircuitBreaker state machine: CLOSED → OPEN → HALF_OPEN → CLOSED
- Fast-fail behaviour and ``retry_after`` while the circuit is open
- Which exceptions count as failures
- get_status() health-check dict
- Repository reads: driver failures become UpstreamFetchException
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from backoffice.core.exceptions import UpstreamFetchException
from backoffice.core.resilience import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
    db_circuit_breaker,
)
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.repositories.waiting_period_repo import WaitingPeriodRepository


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cb(clock):
    return CircuitBreaker(
        name="test",
        failure_threshold=2,
        recovery_timeout=10.0,
        expected_exceptions=(ValueError, ConnectionError),
        clock=clock,
    )


async def _fail(cb: CircuitBreaker, times: int) -> None:
    func = AsyncMock(side_effect=ValueError("fail"))
    for _ in range(times):
        with pytest.raises(ValueError):
            await cb.call(func)


class TestCircuitBreakerError:
    def test_attributes(self):
        err = CircuitBreakerError("db", 5.5)
        assert err.name == "db"
        assert err.retry_after == 5.5
        assert "'db' is OPEN" in str(err)
        assert "5.5s" in str(err)


class TestClosed:
    @pytest.mark.asyncio
    async def test_passes_calls_through(self, cb):
        func = AsyncMock(return_value="ok")

        assert await cb.call(func, 1, key="v") == "ok"
        func.assert_awaited_once_with(1, key="v")
        assert cb.state == CircuitState.CLOSED

    @pytest.mark.asyncio
    async def test_failure_below_threshold_stays_closed(self, cb):
        await _fail(cb, 1)
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 1

    @pytest.mark.asyncio
    async def test_success_clears_the_count(self, cb):
        await _fail(cb, 1)
        await cb.call(AsyncMock(return_value="ok"))
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_not_counted(self, cb):
        with pytest.raises(TypeError):
            await cb.call(AsyncMock(side_effect=TypeError("bug")))
        assert cb.failure_count == 0
        assert cb.state == CircuitState.CLOSED


class TestOpen:
    @pytest.mark.asyncio
    async def test_opens_at_threshold(self, cb):
        await _fail(cb, 2)
        assert cb.state == CircuitState.OPEN

    @pytest.mark.asyncio
    async def test_fails_fast_without_calling(self, cb, clock):
        await _fail(cb, 2)
        clock.advance(4)
        func = AsyncMock(return_value="ok")

        with pytest.raises(CircuitBreakerError) as exc_info:
            await cb.call(func)

        func.assert_not_awaited()
        assert exc_info.value.name == "test"
        assert exc_info.value.retry_after == pytest.approx(6.0)

    @pytest.mark.asyncio
    async def test_reset_closes(self, cb):
        await _fail(cb, 2)
        cb.reset()
        assert cb.state == CircuitState.CLOSED
        assert cb.retry_after() == 0


class TestHalfOpen:
    @pytest.mark.asyncio
    async def test_half_open_after_timeout(self, cb, clock):
        await _fail(cb, 2)
        clock.advance(10)
        assert cb.state == CircuitState.HALF_OPEN

    @pytest.mark.asyncio
    async def test_successful_probe_closes(self, cb, clock):
        await _fail(cb, 2)
        clock.advance(10)

        assert await cb.call(AsyncMock(return_value="recovered")) == "recovered"
        assert cb.state == CircuitState.CLOSED
        assert cb.failure_count == 0

    @pytest.mark.asyncio
    async def test_failed_probe_reopens_for_a_full_timeout(self, cb, clock):
        await _fail(cb, 2)
        clock.advance(10)

        await _fail(cb, 1)

        assert cb.state == CircuitState.OPEN
        assert cb.retry_after() == pytest.approx(10.0)


class TestGetStatus:
    def test_closed_status(self):
        status = CircuitBreaker(name="db", failure_threshold=5, recovery_timeout=30.0).get_status()
        assert status == {
            "name": "db",
            "state": "closed",
            "failure_count": 0,
            "failure_threshold": 5,
            "recovery_timeout_s": 30.0,
            "retry_after_s": 0.0,
            "last_error": None,
        }

    @pytest.mark.asyncio
    async def test_open_status_names_the_last_error(self, cb, clock):
        await _fail(cb, 2)
        clock.advance(2.5)

        status = cb.get_status()

        assert status["state"] == "open"
        assert status["retry_after_s"] == 7.5
        assert status["last_error"] == "ValueError: fail"


# ────────────────────────────────────────────────────────────────────────────
# Repository reads through the database breaker
# ────────────────────────────────────────────────────────────────────────────


class TestRepositoryReads:
    """A failed read surfaces as UpstreamFetchException, never as empty data."""

    def _repo(self, mock_db):
        return WaitingPeriodRepository(WaitingPeriodEntry, mock_db)

    def test_circuit_breaker_error_is_an_upstream_failure(self):
        err = CircuitBreakerError("database", 3.0)
        assert isinstance(err, UpstreamFetchException)
        assert err.status_code == 503
        assert err.source == "database"

    @pytest.mark.asyncio
    async def test_driver_error_names_the_table(self, mock_db):
        mock_db.get.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))

        with pytest.raises(UpstreamFetchException) as exc_info:
            await self._repo(mock_db).get("some-id")

        assert exc_info.value.source == "waiting_period_entries"
        assert isinstance(exc_info.value.__cause__, OperationalError)

    @pytest.mark.asyncio
    async def test_connection_failures_open_the_breaker(self, mock_db):
        mock_db.get.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))
        repo = self._repo(mock_db)

        for _ in range(db_circuit_breaker.failure_threshold):
            with pytest.raises(UpstreamFetchException):
                await repo.get("some-id")

        mock_db.get.reset_mock()
        with pytest.raises(CircuitBreakerError):
            await repo.get("some-id")
        mock_db.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_integrity_error_does_not_trip_the_breaker(self, mock_db):
        mock_db.commit.side_effect = IntegrityError("INSERT", {}, Exception("UNIQUE"))

        with pytest.raises(IntegrityError):
            await self._repo(mock_db).create(WaitingPeriodEntry(amount=1))

        assert db_circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_operational_error_on_commit_rolls_back(self, mock_db):
        mock_db.commit.side_effect = OperationalError("COMMIT", {}, Exception("gone"))

        with pytest.raises(OperationalError):
            await self._repo(mock_db).create(WaitingPeriodEntry(amount=1))

        mock_db.rollback.assert_awaited_once()
