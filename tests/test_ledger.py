"""
Unit tests for the waiting-period ledger (maturation rule).

Pure functions, no mocks needed.  Tests cover:
- is_matured: the exact 60-day boundary, manual delivery, future dates,
  naive timestamps, monotonicity in time
- classify: disjoint + complete partition, order preservation, one instant
- maturity_date / days_remaining / maturity_source
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backoffice.services import ledger

from .conftest import NOW, make_entry

SIXTY_DAYS = timedelta(days=60)


class TestIsMatured:
    """Tests for ledger.is_matured."""

    def test_exactly_sixty_days_is_matured(self):
        entry = make_entry(initialized_date=NOW - SIXTY_DAYS)
        assert ledger.is_matured(entry, NOW) is True

    def test_one_second_short_is_pending(self):
        entry = make_entry(initialized_date=NOW - SIXTY_DAYS + timedelta(seconds=1))
        assert ledger.is_matured(entry, NOW) is False

    def test_fresh_entry_is_pending(self):
        assert ledger.is_matured(make_entry(days_ago=10), NOW) is False

    def test_manual_delivery_matures_immediately(self):
        entry = make_entry(days_ago=1, delivered=True, delivered_at=NOW)
        assert ledger.is_matured(entry, NOW) is True

    def test_future_initialized_date_is_pending(self):
        entry = make_entry(initialized_date=NOW + timedelta(days=5))
        assert ledger.is_matured(entry, NOW) is False

    def test_naive_timestamps_are_read_as_utc(self):
        naive_start = (NOW - SIXTY_DAYS).replace(tzinfo=None)
        entry = make_entry(initialized_date=naive_start)
        assert ledger.is_matured(entry, NOW) is True
        assert ledger.is_matured(entry, NOW.replace(tzinfo=None) - timedelta(seconds=1)) is False

    def test_other_timezones_are_normalised(self):
        ist = timezone(timedelta(hours=5, minutes=30))
        entry = make_entry(initialized_date=(NOW - SIXTY_DAYS).astimezone(ist))
        assert ledger.is_matured(entry, NOW) is True

    def test_defaults_to_now(self):
        entry = make_entry(initialized_date=ledger.utcnow() - SIXTY_DAYS - timedelta(minutes=1))
        assert ledger.is_matured(entry) is True

    @pytest.mark.parametrize("days_ago", [0, 30, 59.9, 60, 61, 365])
    def test_once_matured_stays_matured(self, days_ago):
        entry = make_entry(days_ago=days_ago)
        if ledger.is_matured(entry, NOW):
            for later in (timedelta(seconds=1), timedelta(days=1), timedelta(days=400)):
                assert ledger.is_matured(entry, NOW + later) is True


class TestClassify:
    """Tests for ledger.classify."""

    def test_partition_is_disjoint_and_complete(self):
        entries = [
            make_entry(days_ago=61),
            make_entry(days_ago=5),
            make_entry(days_ago=2, delivered=True, delivered_at=NOW),
            make_entry(days_ago=59),
        ]

        partition = ledger.classify(entries, NOW)

        pending_ids = {e.id for e in partition.pending}
        delivered_ids = {e.id for e in partition.delivered}
        assert pending_ids.isdisjoint(delivered_ids)
        assert pending_ids | delivered_ids == {e.id for e in entries}
        assert len(partition.pending) + len(partition.delivered) == len(entries)

    def test_preserves_input_order(self):
        a, b, c = make_entry(days_ago=1), make_entry(days_ago=70), make_entry(days_ago=3)
        partition = ledger.classify([a, b, c], NOW)
        assert partition.pending == [a, c]
        assert partition.delivered == [b]

    def test_totals(self):
        entries = [
            make_entry(amount=Decimal("200000"), days_ago=10),
            make_entry(amount=Decimal("500000"), days_ago=60),
        ]
        partition = ledger.classify(entries, NOW)
        assert partition.pending_total == Decimal("200000")
        assert partition.delivered_total == Decimal("500000")

    def test_empty(self):
        partition = ledger.classify([], NOW)
        assert partition.pending == [] and partition.delivered == []
        assert partition.pending_total == Decimal("0")

    def test_records_the_instant(self):
        assert ledger.classify([], NOW).as_of == NOW

    def test_accepts_generators(self):
        partition = ledger.classify((make_entry(days_ago=d) for d in (1, 90)), NOW)
        assert len(partition.pending) == 1 and len(partition.delivered) == 1


class TestSumAmount:
    def test_sums_decimals(self):
        entries = [make_entry(amount=Decimal("0.10")), make_entry(amount=Decimal("0.20"))]
        assert ledger.sum_amount(entries) == Decimal("0.30")

    def test_empty_is_zero(self):
        assert ledger.sum_amount([]) == Decimal("0")


class TestMaturityDetails:
    """maturity_date, days_remaining and maturity_source."""

    def test_scheduled_maturity_date(self):
        start = datetime(2025, 1, 1, 10, 0, tzinfo=timezone.utc)
        entry = make_entry(initialized_date=start)
        assert ledger.maturity_date(entry) == start + SIXTY_DAYS

    def test_manual_delivery_date_wins(self):
        delivered_at = datetime(2025, 1, 10, tzinfo=timezone.utc)
        entry = make_entry(
            initialized_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
            delivered=True,
            delivered_at=delivered_at,
        )
        assert ledger.maturity_date(entry) == delivered_at

    def test_days_remaining_rounds_up(self):
        entry = make_entry(initialized_date=NOW - timedelta(days=10, hours=1))
        assert ledger.days_remaining(entry, NOW) == 50

    def test_days_remaining_last_second(self):
        entry = make_entry(initialized_date=NOW - SIXTY_DAYS + timedelta(seconds=1))
        assert ledger.days_remaining(entry, NOW) == 1

    def test_days_remaining_zero_once_matured(self):
        assert ledger.days_remaining(make_entry(days_ago=75), NOW) == 0
        delivered = make_entry(days_ago=1, delivered=True, delivered_at=NOW)
        assert ledger.days_remaining(delivered, NOW) == 0

    def test_future_entry_counts_the_full_window(self):
        entry = make_entry(initialized_date=NOW + timedelta(days=5))
        assert ledger.days_remaining(entry, NOW) == 65

    def test_maturity_source(self):
        assert ledger.maturity_source(make_entry(days_ago=1), NOW) is None
        assert ledger.maturity_source(make_entry(days_ago=60), NOW) == "elapsed"
        delivered = make_entry(days_ago=1, delivered=True, delivered_at=NOW)
        assert ledger.maturity_source(delivered, NOW) == "manual"


class TestAsUtc:
    def test_date_is_midnight_utc(self):
        assert ledger.as_utc(date(2025, 3, 1)) == datetime(2025, 3, 1, tzinfo=timezone.utc)

    def test_aware_is_converted(self):
        plus_two = timezone(timedelta(hours=2))
        value = datetime(2025, 3, 1, 2, 0, tzinfo=plus_two)
        assert ledger.as_utc(value) == datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)
        assert ledger.as_utc(value).tzinfo == timezone.utc
