"""
Waiting-period ledger — the maturation rule for capital returns.

An entry is **matured** (its capital has left the "still invested" bucket
and counts as returned) if and only if it was manually delivered, or at
least ``WAITING_PERIOD`` has elapsed since its ``initialized_date``.

:func:`is_matured` is the only place that rule is evaluated.  Investor
summaries, the entry list filters, the dashboard and any report all go
through :func:`classify`, so two screens can never disagree about whether
an entry is pending.

Time policy:
    Everything is compared in UTC.  Naive datetimes (SQLite hands them back
    that way) are read as UTC, and a bare ``date`` means midnight UTC.  The
    check is on the exact elapsed duration, not on calendar dates, so an
    entry initialised at 10:00 matures at 10:00 sixty days later.

Nothing in this module performs I/O.
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Iterable, List, Optional, Union

from backoffice.core.config import settings
from backoffice.models.waiting_period import WaitingPeriodEntry

WAITING_PERIOD = timedelta(days=settings.WAITING_PERIOD_DAYS)

_ONE_DAY = timedelta(days=1)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Union[datetime, date]) -> datetime:
    """Normalise a datetime (or date) to an aware UTC datetime."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _resolve(as_of: Optional[datetime]) -> datetime:
    return utcnow() if as_of is None else as_utc(as_of)


def elapsed(entry: WaitingPeriodEntry, as_of: Optional[datetime] = None) -> timedelta:
    """Time since the entry's window opened.  Negative for future-dated entries."""
    return _resolve(as_of) - as_utc(entry.initialized_date)


def is_matured(entry: WaitingPeriodEntry, as_of: Optional[datetime] = None) -> bool:
    """True once the entry is manually delivered or its window has fully elapsed."""
    if entry.delivered:
        return True
    return elapsed(entry, as_of) >= WAITING_PERIOD


def maturity_source(entry: WaitingPeriodEntry, as_of: Optional[datetime] = None) -> Optional[str]:
    """``"manual"``, ``"elapsed"`` or ``None`` while the entry is still pending."""
    if entry.delivered:
        return "manual"
    if is_matured(entry, as_of):
        return "elapsed"
    return None


def scheduled_maturity(entry: WaitingPeriodEntry) -> datetime:
    """When the entry matures on its own, ignoring any manual delivery."""
    return as_utc(entry.initialized_date) + WAITING_PERIOD


def maturity_date(entry: WaitingPeriodEntry) -> datetime:
    """The manual delivery time if there is one, otherwise the scheduled maturity."""
    if entry.delivered and entry.delivered_at is not None:
        return as_utc(entry.delivered_at)
    return scheduled_maturity(entry)


def days_remaining(entry: WaitingPeriodEntry, as_of: Optional[datetime] = None) -> int:
    """Whole days (rounded up) until the entry matures; 0 once matured."""
    now = _resolve(as_of)
    if is_matured(entry, now):
        return 0
    remaining = scheduled_maturity(entry) - now
    return math.ceil(remaining / _ONE_DAY)


@dataclass(frozen=True)
class LedgerPartition:
    """Entries split by maturation at a single instant ``as_of``."""

    as_of: datetime
    pending: List[WaitingPeriodEntry] = field(default_factory=list)
    delivered: List[WaitingPeriodEntry] = field(default_factory=list)

    @property
    def pending_total(self) -> Decimal:
        return sum_amount(self.pending)

    @property
    def delivered_total(self) -> Decimal:
        return sum_amount(self.delivered)


def classify(
    entries: Iterable[WaitingPeriodEntry], as_of: Optional[datetime] = None
) -> LedgerPartition:
    """
    Partition ``entries`` into pending and delivered.

    Every entry lands in exactly one group and input order is kept within
    each group.  ``as_of`` is resolved once, so the whole partition is
    evaluated at the same instant.
    """
    now = _resolve(as_of)
    partition = LedgerPartition(as_of=now)
    for entry in entries:
        if is_matured(entry, now):
            partition.delivered.append(entry)
        else:
            partition.pending.append(entry)
    return partition


def sum_amount(entries: Iterable[WaitingPeriodEntry]) -> Decimal:
    """Total ``amount`` over ``entries``."""
    return sum((Decimal(entry.amount) for entry in entries), Decimal("0"))
