"""
Unit tests for the capital aggregation functions.

Pure functions over factory-built rows.  Tests cover remaining vs.
returnable capital, the floors at zero, firm-wide capital and its split,
the equity curve and monthly return rounding.
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice.services import capital

from .conftest import NOW, make_entry, make_investment, make_pnl

D = Decimal


class TestInvestorFigures:
    """remaining_capital, returnable_capital, capital_returned, pending_capital."""

    def test_no_entries(self):
        investments = [make_investment(amount=D("1000000"))]
        assert capital.remaining_capital(investments, [], NOW) == D("1000000")
        assert capital.returnable_capital(investments, []) == D("1000000")

    def test_pending_entry_does_not_reduce_remaining(self):
        investments = [make_investment(amount=D("1000000"))]
        entries = [make_entry(amount=D("200000"), days_ago=10)]

        assert capital.remaining_capital(investments, entries, NOW) == D("1000000")
        assert capital.pending_capital(entries, NOW) == D("200000")
        assert capital.capital_returned(entries, NOW) == D("0")
        assert capital.returnable_capital(investments, entries) == D("800000")

    def test_matured_entry_reduces_remaining(self):
        investments = [make_investment(amount=D("1000000"))]
        entries = [make_entry(amount=D("200000"), days_ago=60)]

        assert capital.remaining_capital(investments, entries, NOW) == D("800000")
        assert capital.capital_returned(entries, NOW) == D("200000")

    def test_remaining_never_negative(self):
        investments = [make_investment(amount=D("100"))]
        entries = [make_entry(amount=D("500"), days_ago=90)]
        assert capital.remaining_capital(investments, entries, NOW) == D("0")
        assert capital.returnable_capital(investments, entries) == D("0")

    def test_multiple_investments_sum(self):
        investments = [make_investment(amount=D("400000")), make_investment(amount=D("600000"))]
        assert capital.total_invested(investments) == D("1000000")

    def test_summarize_investor_uses_one_partition(self):
        investments = [make_investment(amount=D("1000000"))]
        entries = [
            make_entry(amount=D("500000"), days_ago=60),
            make_entry(amount=D("200000"), days_ago=10),
        ]

        figures = capital.summarize_investor(investments, entries, NOW)

        assert figures.total_invested == D("1000000")
        assert figures.remaining_capital == D("500000")
        assert figures.returnable_capital == D("300000")
        assert figures.capital_returned == D("500000")
        assert figures.pending_capital == D("200000")
        assert figures.partition.as_of == NOW


class TestMonthlyReturnAmount:
    @pytest.mark.parametrize(
        "remaining, percent, expected",
        [
            (D("1000000"), D("2.5"), D("25000")),
            (D("333333"), D("1.5"), D("5000")),  # 4999.995 rounds half up
            (D("10"), D("5"), D("1")),  # 0.5 rounds half up
            (D("10"), D("4"), D("0")),  # 0.4 rounds down
            (D("0"), D("3"), D("0")),
        ],
    )
    def test_rounds_half_up_to_whole_units(self, remaining, percent, expected):
        assert capital.monthly_return_amount(remaining, percent) == expected


class TestFirmWide:
    def test_firm_capital_subtracts_delivered_then_adds_pnl(self):
        assert capital.firm_wide_capital(D("1000000"), D("200000"), D("50000")) == D("850000")

    def test_allocation_floors_before_pnl(self):
        # Delivered exceeds allocation: active allocation is 0, P&L still counts.
        assert capital.firm_wide_capital(D("100000"), D("300000"), D("20000")) == D("20000")
        assert capital.firm_wide_capital(D("100000"), D("300000"), D("-20000")) == D("-20000")

    def test_split(self):
        split = capital.investor_capital_split(D("800000"), D("200000"), D("1000000"))
        assert split.investor_capital == D("600000")
        assert split.internal_capital == D("400000")

    def test_split_floors_at_zero(self):
        split = capital.investor_capital_split(D("800000"), D("900000"), D("-5000"))
        assert split.investor_capital == D("0")
        assert split.internal_capital == D("0")

    def test_internal_never_negative_when_investors_exceed_firm(self):
        split = capital.investor_capital_split(D("2000000"), D("0"), D("1000000"))
        assert split.internal_capital == D("0")

    def test_summarize_firm(self):
        entries = [
            make_entry(amount=D("30000"), days_ago=61),
            make_entry(amount=D("99999"), days_ago=1),
        ]
        pnl = [make_pnl(D("5000"), day=date(2025, 6, 1)), make_pnl(D("-1000"), day=date(2025, 6, 2))]

        firm = capital.summarize_firm(D("100000"), D("90000"), entries, pnl, NOW)

        assert firm.total_delivered == D("30000")
        assert firm.active_allocated == D("70000")
        assert firm.total_pnl == D("4000")
        assert firm.firm_capital == D("74000")
        assert firm.split.investor_capital == D("60000")
        assert firm.split.internal_capital == D("14000")
        assert firm.equity_curve.start_equity == D("70000")


class TestEquityCurve:
    def _pnl(self):
        return [
            make_pnl(D("5000"), day=date(2025, 6, 2)),
            make_pnl(D("-2000"), day=date(2025, 6, 3)),
            make_pnl(D("1000"), day=date(2025, 6, 4)),
        ]

    def test_running_sum_from_base(self):
        curve = capital.EquityCurve(self._pnl(), D("100000"))
        assert [p.equity for p in curve] == [D("105000"), D("103000"), D("104000")]
        assert [p.date for p in curve] == [date(2025, 6, 2), date(2025, 6, 3), date(2025, 6, 4)]

    def test_growth_percent(self):
        curve = capital.EquityCurve(self._pnl(), D("100000"))
        assert curve.end_equity == D("104000")
        assert curve.growth_percent == 4.0

    def test_iteration_restarts(self):
        curve = capital.EquityCurve(self._pnl(), D("100000"))
        first = curve.points()
        second = curve.points()
        assert first == second
        assert len(curve) == 3

    def test_zero_base_has_zero_growth(self):
        curve = capital.EquityCurve(self._pnl(), D("0"))
        assert curve.growth_percent == 0.0
        assert [p.equity for p in curve][-1] == D("4000")

    def test_no_pnl(self):
        curve = capital.EquityCurve([], D("50000"))
        assert list(curve) == []
        assert curve.end_equity == D("50000")
        assert curve.growth_percent == 0.0

    def test_growth_rounds_to_one_decimal(self):
        assert capital.growth_percent(D("3"), D("4")) == 33.3
        assert capital.growth_percent(D("1000"), D("1000.5")) == 0.1  # 0.05 rounds half up
        assert capital.growth_percent(D("-10"), D("5")) == 0.0
