"""
Module: tenancy_engines.schedule
Responsibility:
    The schedule generator: produces ordered payment-period records from a
    start date, a rent and a due-date policy.  Serves both initial tenancy
    creation and incremental extension of an existing schedule.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Builds on tenancy_engines.due_dates.

Invariants enforced:
    - Payment number 1 carries twice the monthly rent (current period plus
      one month in advance); every other generated period carries the
      monthly rent.
    - Generated periods start unpaid and their balances chain:
      previous_balance(i) == balance(i-1), balance(i) == previous_balance(i) - rent_due(i).
    - Due dates strictly increase with payment number.

Failure modes:
    - ValueError for a non-positive count or a negative rent.

Usage:
    from tenancy_engines.due_dates import SchedulePolicy
    from tenancy_engines.schedule import generate_schedule

    periods = generate_schedule(
        start_date=date(2024, 1, 1),
        monthly_rent=Decimal("1000"),
        count=3,
        policy=SchedulePolicy.cycle(28),
    )
    [p.balance for p in periods]   # [-2000.00, -3000.00, -4000.00]
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from tenancy_kernel.domain.money import ZERO, round_money
from tenancy_engines.due_dates import SchedulePolicy, add_months, next_due_date
from tenancy_engines.tracer import traced_engine

ADVANCE_MULTIPLIER = Decimal("2")


@dataclass(frozen=True)
class ScheduledPeriod:
    """One row of a payment schedule as seen by the pure engines."""

    payment_number: int
    due_date: date
    rent_due: Decimal
    rent_paid: Decimal = ZERO
    previous_balance: Decimal = ZERO
    balance: Decimal = ZERO

    def __post_init__(self) -> None:
        if self.payment_number < 1:
            raise ValueError(f"payment_number must be positive, got {self.payment_number}")
        if self.rent_due < 0:
            raise ValueError(f"rent_due must not be negative, got {self.rent_due}")


def rent_due_for(payment_number: int, monthly_rent: Decimal) -> Decimal:
    """Rent charged for a generated period."""
    if payment_number == 1:
        return round_money(monthly_rent * ADVANCE_MULTIPLIER)
    return round_money(monthly_rent)


@traced_engine(
    "schedule",
    "1.0",
    fingerprint_fields=(
        "start_date",
        "monthly_rent",
        "count",
        "policy",
        "first_payment_number",
        "opening_balance",
    ),
)
def generate_schedule(
    *,
    start_date: date,
    monthly_rent: Decimal,
    count: int,
    policy: SchedulePolicy,
    first_payment_number: int = 1,
    opening_balance: Decimal = ZERO,
) -> tuple[ScheduledPeriod, ...]:
    """
    Generate ``count`` consecutive periods.

    ``start_date`` is the due date of the first generated period, taken
    verbatim.  ``first_payment_number`` and ``opening_balance`` let an
    extension continue an existing schedule.
    """
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    if monthly_rent < 0:
        raise ValueError(f"monthly_rent must not be negative, got {monthly_rent}")

    periods: list[ScheduledPeriod] = []
    due = start_date
    previous = Decimal(opening_balance)
    for index in range(count):
        number = first_payment_number + index
        if index:
            due = next_due_date(policy, due)
        rent_due = rent_due_for(number, monthly_rent)
        balance = previous - rent_due
        periods.append(
            ScheduledPeriod(
                payment_number=number,
                due_date=due,
                rent_due=rent_due,
                rent_paid=ZERO,
                previous_balance=round_money(previous),
                balance=round_money(balance),
            )
        )
        previous = balance
    return tuple(periods)


def needs_extension(last_due_date: date, today: date, horizon_months: int) -> bool:
    """True when the last scheduled due date falls inside the horizon."""
    return last_due_date < add_months(today, horizon_months)


def plan_extension(
    *,
    last_period: ScheduledPeriod,
    monthly_rent: Decimal,
    policy: SchedulePolicy,
    count: int,
) -> tuple[ScheduledPeriod, ...]:
    """
    Periods that continue a schedule after ``last_period``.

    Numbering continues from the last period, the first new due date is one
    policy step after the last one, and the running balance carries over.
    """
    return generate_schedule(
        start_date=next_due_date(policy, last_period.due_date),
        monthly_rent=monthly_rent,
        count=count,
        policy=policy,
        first_payment_number=last_period.payment_number + 1,
        opening_balance=last_period.balance,
    )
