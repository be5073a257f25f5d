"""
Database circuit breaker.

After ``failure_threshold`` consecutive connection-level failures the circuit
opens and every repository call fails fast with :class:`CircuitBreakerError`
(an :class:`UpstreamFetchException`, so callers see a 503 rather than a
timeout).  After ``recovery_timeout`` seconds one probe call is let through;
success closes the circuit, failure re-opens it.

   CLOSED  → normal operation; failures are counted.
   OPEN    → all calls fail immediately.
   HALF_OPEN → a single probe call is allowed.

The breaker never retries.  Retrying a failed read or write is left to the
caller (the UI or the scheduler that invokes the maturation sweep).
"""

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import InterfaceError, OperationalError

from backoffice.core.config import settings
from backoffice.core.exceptions import UpstreamFetchException

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Possible states of a circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(UpstreamFetchException):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(
            source=name,
            message=(
                f"Circuit breaker '{name}' is OPEN — failing fast. "
                f"Retry after {retry_after:.1f}s."
            ),
        )


class CircuitBreaker:
    """
    Async circuit breaker guarding one downstream dependency.

    Parameters
    ----------
    name : str
        Identifier used in logs and in the error's ``source``.
    failure_threshold : int
        Consecutive failures that open the circuit.
    recovery_timeout : float
        Seconds the circuit stays OPEN before a probe is let through.
    expected_exceptions : tuple
        Exception types that count as failures.  Anything else (for example
        an ``IntegrityError`` from a duplicate month) passes through without
        affecting the circuit.
    clock : callable
        Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[Exception], ...] = (Exception,),
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions
        self._clock = clock
        self.reset()

    def reset(self) -> None:
        """Close the circuit and forget every recorded failure."""
        self._state = CircuitState.CLOSED
        self._failures = 0
        self._opened_at = 0.0
        self._last_error: Optional[str] = None

    @property
    def failure_count(self) -> int:
        return self._failures

    @property
    def state(self) -> CircuitState:
        """Current state.  An OPEN circuit turns HALF_OPEN once the timeout passes."""
        if self._state == CircuitState.OPEN and self.retry_after() == 0:
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit '%s' → HALF_OPEN, letting a probe through", self.name)
        return self._state

    def retry_after(self) -> float:
        """Seconds until an OPEN circuit accepts a probe; 0 otherwise."""
        if self._state != CircuitState.OPEN:
            return 0.0
        return max(self.recovery_timeout - (self._clock() - self._opened_at), 0.0)

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s' → CLOSED after a successful probe", self.name)
        self.reset()

    def _on_failure(self, exc: Exception) -> None:
        self._failures += 1
        self._last_error = f"{type(exc).__name__}: {exc}"
        probe_failed = self._state == CircuitState.HALF_OPEN
        if probe_failed or self._failures >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._opened_at = self._clock()
            logger.error(
                "Circuit '%s' → OPEN after %d failure(s), failing fast for %.1fs: %s",
                self.name,
                self._failures,
                self.recovery_timeout,
                self._last_error,
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d: %s",
                self.name,
                self._failures,
                self.failure_threshold,
                self._last_error,
            )

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await ``func(*args, **kwargs)`` unless the circuit is OPEN.

        Raises :class:`CircuitBreakerError` without calling ``func`` while
        the circuit is OPEN.
        """
        if self.state == CircuitState.OPEN:
            raise CircuitBreakerError(self.name, self.retry_after())

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions as exc:
            self._on_failure(exc)
            raise
        self._on_success()
        return result

    def get_status(self) -> Dict[str, Any]:
        """Snapshot for the health endpoint."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failures,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout_s": self.recovery_timeout,
            "retry_after_s": round(self.retry_after(), 1),
            "last_error": self._last_error,
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=(
        ConnectionError,
        OSError,
        TimeoutError,
        OperationalError,
        InterfaceError,
    ),
)
