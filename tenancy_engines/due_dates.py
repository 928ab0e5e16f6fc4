"""
Module: tenancy_engines.due_dates
Responsibility:
    The calendar engine: pure date arithmetic for payment schedules.
    Computes due dates under the two scheduling policies, inclusive day
    counts for pro-rata, and the daily rate used by final settlements.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Leaf of the engine
    dependency graph; the schedule generator and the settlement engine
    build on it.

Policies:
    cycle     due dates advance by a fixed number of days.
    calendar  the first due date is the tenancy start date verbatim; every
              later due date is the configured day of the following month.
              A day past the end of the target month is clamped to the
              month's last day (31 -> 29 Feb 2024 -> 31 Mar 2024).

Invariants enforced:
    - next_due_date(p, d) > d for every valid policy.
    - days_between(a, a) == 1 (inclusive count).
    - daily_rate is returned unrounded; callers round once, at output.

Failure modes:
    - InvalidPaymentTypeError for an unknown policy name.
    - PaymentDayOutOfRangeError for a calendar policy without a 1-31 day.
    - ValueError for a non-positive cycle length.

Usage:
    from tenancy_engines.due_dates import SchedulePolicy, next_due_date

    policy = SchedulePolicy.cycle(28)
    next_due_date(policy, date(2024, 1, 1))          # date(2024, 1, 29)

    policy = SchedulePolicy.calendar(1)
    next_due_date(policy, date(2024, 1, 15))         # date(2024, 2, 1)
"""

from __future__ import annotations

import calendar
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from tenancy_kernel.domain.types import PaymentFrequency, PaymentType
from tenancy_kernel.exceptions import (
    InvalidPaymentFrequencyError,
    InvalidPaymentTypeError,
    PaymentDayOutOfRangeError,
)

DEFAULT_FREQUENCY_DAYS: Mapping[str, int] = {
    PaymentFrequency.WEEKLY.value: 7,
    PaymentFrequency.BI_WEEKLY.value: 14,
    PaymentFrequency.MONTHLY.value: 30,
    PaymentFrequency.FOUR_WEEKLY.value: 28,
}


@dataclass(frozen=True)
class SchedulePolicy:
    """
    Due-date policy for one tenancy.

    ``cycle_days`` is always set: calendar tenancies still use it as the
    coverage length of a period for final settlement.
    """

    payment_type: PaymentType
    cycle_days: int
    payment_day_of_month: int | None = None

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "payment_type", PaymentType(self.payment_type))
        except ValueError:
            raise InvalidPaymentTypeError(self.payment_type) from None
        if self.cycle_days < 1:
            raise ValueError(f"cycle_days must be positive, got {self.cycle_days}")
        if self.payment_type is PaymentType.CALENDAR:
            day = self.payment_day_of_month
            if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 31:
                raise PaymentDayOutOfRangeError(day)

    @classmethod
    def cycle(cls, cycle_days: int) -> SchedulePolicy:
        return cls(PaymentType.CYCLE, cycle_days)

    @classmethod
    def calendar(cls, payment_day_of_month: int, cycle_days: int = 28) -> SchedulePolicy:
        return cls(PaymentType.CALENDAR, cycle_days, payment_day_of_month)


def cycle_days_for_frequency(
    frequency: str | PaymentFrequency | None,
    table: Mapping[str, int] = DEFAULT_FREQUENCY_DAYS,
    default: int = 28,
) -> int:
    """Map a payment frequency label to its cycle length in days.

    ``None`` falls back to ``default``; an unknown label is rejected.
    """
    if frequency is None:
        return default
    key = frequency.value if isinstance(frequency, PaymentFrequency) else frequency
    if key not in table:
        raise InvalidPaymentFrequencyError(frequency, tuple(table))
    return table[key]


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, clamping ``day`` to the length of the month."""
    return date(year, month, min(day, calendar.monthrange(year, month)[1]))


def add_months(start: date, months: int, day_of_month: int | None = None) -> date:
    """Shift ``start`` by whole months, clamping to the target month's end.

    ``day_of_month`` replaces the day of ``start`` when given.
    """
    index = start.year * 12 + (start.month - 1) + months
    year, month = divmod(index, 12)
    return clamp_day(year, month + 1, day_of_month or start.day)


def next_due_date(policy: SchedulePolicy, previous_due_date: date) -> date:
    """Due date of the period after the one due on ``previous_due_date``."""
    if policy.payment_type is PaymentType.CYCLE:
        return previous_due_date + timedelta(days=policy.cycle_days)
    return add_months(previous_due_date, 1, policy.payment_day_of_month)


def days_between(start: date, end: date) -> int:
    """Inclusive day count: ``(end - start) + 1``."""
    return (end - start).days + 1


def daily_rate(monthly_rent: Decimal, cycle_days: int) -> Decimal:
    """Unrounded daily rate: ``monthly_rent / cycle_days``."""
    if cycle_days < 1:
        raise ValueError(f"cycle_days must be positive, got {cycle_days}")
    return Decimal(monthly_rent) / Decimal(cycle_days)


def aligned_end_date(
    policy: SchedulePolicy,
    anchor_due_date: date,
    earliest_end: date,
) -> date:
    """
    First payment-day-aligned date on or after ``earliest_end``.

    Steps forward from ``anchor_due_date`` along the policy; used to tell a
    lodger or landlord when a notice lines up with the rent cycle.
    """
    candidate = anchor_due_date
    while candidate < earliest_end:
        candidate = next_due_date(policy, candidate)
    return candidate
