"""
Tests for the rent-a-room summary and the daily-sweep predicates.
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from tenancy_engines.expiry import (
    is_expiring_soon,
    next_sweep_at,
    reminder_due,
    should_sweep,
    termination_reached,
)
from tenancy_engines.tax import summarize_tax_year, tax_year_bounds, tax_year_containing


class TestTaxYear:

    def test_bounds(self):
        assert tax_year_bounds(2024) == (date(2024, 4, 6), date(2025, 4, 5))

    def test_year_containing(self):
        assert tax_year_containing(date(2024, 4, 5)) == 2023
        assert tax_year_containing(date(2024, 4, 6)) == 2024

    def test_under_allowance(self):
        summary = summarize_tax_year(
            [
                (date(2024, 4, 5), Decimal("999")),
                (date(2024, 4, 6), Decimal("1000")),
                (date(2025, 4, 5), Decimal("2000")),
                (date(2025, 4, 6), Decimal("999")),
            ],
            2024,
        )
        assert summary.tax_year == "2024/25"
        assert summary.total_income == Decimal("3000.00")
        assert summary.taxable_income == Decimal("0")
        assert summary.remaining_allowance == Decimal("4500.00")

    def test_over_allowance(self):
        summary = summarize_tax_year([(date(2024, 6, 1), Decimal("9000"))], 2024)
        assert summary.taxable_income == Decimal("1500.00")
        assert summary.remaining_allowance == Decimal("0")


class TestExpiryPredicates:

    def test_expiring_window_is_inclusive(self):
        today = date(2024, 6, 1)
        assert is_expiring_soon(date(2024, 6, 1), today, 30)
        assert is_expiring_soon(date(2024, 7, 1), today, 30)
        assert not is_expiring_soon(date(2024, 7, 2), today, 30)
        assert not is_expiring_soon(date(2024, 5, 31), today, 30)
        assert not is_expiring_soon(None, today, 30)

    def test_reminder_cooldown(self):
        today = date(2024, 6, 1)
        assert reminder_due(None, today, 35)
        assert not reminder_due(date(2024, 5, 1), today, 35)
        assert reminder_due(date(2024, 4, 27), today, 35)

    def test_termination_reached_day_after(self):
        assert not termination_reached(date(2024, 6, 1), date(2024, 6, 1))
        assert termination_reached(date(2024, 6, 1), date(2024, 6, 2))
        assert not termination_reached(None, date(2024, 6, 2))


class TestSweepTiming:

    def test_first_sweep_waits_for_hour(self):
        assert not should_sweep(None, datetime(2024, 1, 1, 8, 59, tzinfo=timezone.utc), 9)
        assert should_sweep(None, datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc), 9)

    def test_once_per_day(self):
        last = datetime(2024, 1, 1, 9, 5, tzinfo=timezone.utc)
        assert not should_sweep(last, datetime(2024, 1, 1, 23, 0, tzinfo=timezone.utc), 9)
        assert should_sweep(last, datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc), 9)

    def test_next_sweep_at(self):
        now = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert next_sweep_at(now, 9) == datetime(2024, 1, 2, 9, 0, tzinfo=timezone.utc)
