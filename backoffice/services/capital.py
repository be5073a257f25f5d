"""
Capital aggregation — pure functions over already-loaded rows.

Per investor:

    total_invested      sum of investments
    capital_returned    sum of matured waiting-period entries
    pending_capital     sum of entries still in their window
    remaining_capital   max(0, total_invested - capital_returned)
    returnable_capital  max(0, total_invested - every entry)

``remaining_capital`` is what the investor still has working with the firm
and is the base for monthly payouts.  ``returnable_capital`` additionally
subtracts entries that are still pending; it is the most that may be put
into a new waiting period.

Firm-wide:

    active_allocated    max(0, total_allocated - total_delivered)
    firm_capital        active_allocated + total_pnl
    investor_capital    max(0, total_invested - total_delivered)
    internal_capital    max(0, firm_capital - investor_capital)

Maturation is always decided by :func:`backoffice.services.ledger.classify`.
Nothing in this module performs I/O.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Iterator, List, Optional, Sequence

from backoffice.models.investment import Investment
from backoffice.models.trading import DailyPnL
from backoffice.models.waiting_period import WaitingPeriodEntry
from backoffice.services.ledger import LedgerPartition, classify, sum_amount

ZERO = Decimal("0")
_WHOLE_UNIT = Decimal("1")
_ONE_DECIMAL = Decimal("0.1")
_HUNDRED = Decimal("100")


def _floor_zero(value: Decimal) -> Decimal:
    return value if value > ZERO else ZERO


# ── Per investor ──


def total_invested(investments: Iterable[Investment]) -> Decimal:
    return sum((Decimal(i.amount) for i in investments), ZERO)


def capital_returned(
    entries: Iterable[WaitingPeriodEntry], as_of: Optional[datetime] = None
) -> Decimal:
    return classify(entries, as_of).delivered_total


def pending_capital(
    entries: Iterable[WaitingPeriodEntry], as_of: Optional[datetime] = None
) -> Decimal:
    return classify(entries, as_of).pending_total


def remaining_capital(
    investments: Iterable[Investment],
    entries: Iterable[WaitingPeriodEntry],
    as_of: Optional[datetime] = None,
) -> Decimal:
    """Contributed capital not yet returned, never negative."""
    return _floor_zero(total_invested(investments) - capital_returned(entries, as_of))


def returnable_capital(
    investments: Iterable[Investment], entries: Iterable[WaitingPeriodEntry]
) -> Decimal:
    """
    Capital not yet committed to any return, never negative.

    Independent of time: a pending entry already claims its amount.
    """
    return _floor_zero(total_invested(investments) - sum_amount(entries))


def monthly_return_amount(remaining: Decimal, percent: Decimal) -> Decimal:
    """``remaining * percent / 100`` rounded half-up to a whole currency unit."""
    raw = Decimal(remaining) * Decimal(percent) / _HUNDRED
    return raw.quantize(_WHOLE_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class InvestorCapital:
    """Capital figures for one investor at ``partition.as_of``."""

    total_invested: Decimal
    remaining_capital: Decimal
    returnable_capital: Decimal
    partition: LedgerPartition

    @property
    def capital_returned(self) -> Decimal:
        return self.partition.delivered_total

    @property
    def pending_capital(self) -> Decimal:
        return self.partition.pending_total


def summarize_investor(
    investments: Sequence[Investment],
    entries: Sequence[WaitingPeriodEntry],
    as_of: Optional[datetime] = None,
) -> InvestorCapital:
    """Classify once and derive every per-investor figure from that partition."""
    partition = classify(entries, as_of)
    invested = total_invested(investments)
    return InvestorCapital(
        total_invested=invested,
        remaining_capital=_floor_zero(invested - partition.delivered_total),
        returnable_capital=_floor_zero(invested - sum_amount(entries)),
        partition=partition,
    )


# ── Firm-wide ──


def active_allocated(total_allocated: Decimal, total_delivered: Decimal) -> Decimal:
    return _floor_zero(Decimal(total_allocated) - Decimal(total_delivered))


def firm_wide_capital(
    total_allocated: Decimal, total_delivered: Decimal, total_pnl: Decimal
) -> Decimal:
    """
    Allocated capital net of delivered returns, floored at zero, plus P&L.

    This supersedes the older ``total_allocated + total_pnl`` figure, which
    kept counting capital that had already been handed back.  The result
    itself may be negative when losses exceed the active allocation.
    """
    return active_allocated(total_allocated, total_delivered) + Decimal(total_pnl)


@dataclass(frozen=True)
class CapitalSplit:
    investor_capital: Decimal
    internal_capital: Decimal


def investor_capital_split(
    total_invested_amount: Decimal, total_delivered: Decimal, firm_capital: Decimal
) -> CapitalSplit:
    """Split firm capital into the investors' share and the firm's own."""
    investor_capital = _floor_zero(Decimal(total_invested_amount) - Decimal(total_delivered))
    internal_capital = _floor_zero(Decimal(firm_capital) - investor_capital)
    return CapitalSplit(investor_capital=investor_capital, internal_capital=internal_capital)


# ── Equity curve ──


@dataclass(frozen=True)
class EquityPoint:
    date: date
    equity: Decimal


def growth_percent(start: Decimal, end: Decimal) -> float:
    """``(end - start) / start * 100`` to one decimal place; ``0.0`` when ``start <= 0``."""
    start = Decimal(start)
    if start <= ZERO:
        return 0.0
    growth = (Decimal(end) - start) / start * _HUNDRED
    return float(growth.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


class EquityCurve:
    """
    Running equity over P&L rows, starting from ``starting_base``.

    Iterating yields one :class:`EquityPoint` per P&L row, computed lazily.
    Every ``iter()`` starts again from the base, so the curve can be walked
    more than once.  The rows must already be ordered by date.
    """

    def __init__(self, pnl_entries: Sequence[DailyPnL], starting_base: Decimal):
        self._entries = list(pnl_entries)
        self.start_equity = Decimal(starting_base)

    def __iter__(self) -> Iterator[EquityPoint]:
        equity = self.start_equity
        for entry in self._entries:
            equity += Decimal(entry.pnl_amount)
            yield EquityPoint(date=entry.date, equity=equity)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def end_equity(self) -> Decimal:
        return self.start_equity + sum((Decimal(e.pnl_amount) for e in self._entries), ZERO)

    @property
    def growth_percent(self) -> float:
        return growth_percent(self.start_equity, self.end_equity)

    def points(self) -> List[EquityPoint]:
        return list(self)


@dataclass(frozen=True)
class FirmCapital:
    """Firm-wide figures shown on the dashboard."""

    total_allocated: Decimal
    total_delivered: Decimal
    total_pnl: Decimal
    active_allocated: Decimal
    firm_capital: Decimal
    split: CapitalSplit
    equity_curve: EquityCurve


def summarize_firm(
    total_allocated: Decimal,
    total_invested_amount: Decimal,
    entries: Iterable[WaitingPeriodEntry],
    pnl_entries: Sequence[DailyPnL],
    as_of: Optional[datetime] = None,
) -> FirmCapital:
    """Combine allocation, investments, matured returns and P&L into firm figures."""
    delivered = capital_returned(entries, as_of)
    total_pnl = sum((Decimal(p.pnl_amount) for p in pnl_entries), ZERO)
    base = active_allocated(total_allocated, delivered)
    firm_capital = base + total_pnl
    return FirmCapital(
        total_allocated=Decimal(total_allocated),
        total_delivered=delivered,
        total_pnl=total_pnl,
        active_allocated=base,
        firm_capital=firm_capital,
        split=investor_capital_split(total_invested_amount, delivered, firm_capital),
        equity_curve=EquityCurve(pnl_entries, base),
    )
