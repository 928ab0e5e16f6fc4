"""
Module: tenancy_engines.balance
Responsibility:
    The balance ledger: recomputes the carried balance across a schedule
    whenever a confirmed amount (or a charge) changes, and derives the
    display status of a period.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - previous_balance(first) == opening balance (0 for a whole schedule).
    - previous_balance(i) == balance(i-1) for every later period.
    - balance(i) == previous_balance(i) + rent_paid(i) - rent_due(i).
    - An edit ripples forward only: periods before the edited one are
      returned unchanged.
    - Lodger submissions never enter the ledger; only confirmed amounts do.

Failure modes:
    - KeyError when the edited payment number is not in the schedule.
    - ValueError for a negative confirmed amount.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from tenancy_kernel.domain.money import ZERO, round_money
from tenancy_kernel.domain.types import PaymentStatus
from tenancy_engines.schedule import ScheduledPeriod
from tenancy_engines.tracer import traced_engine


def ripple_balances(
    schedule: Sequence[ScheduledPeriod],
    from_payment_number: int | None = None,
    opening_balance: Decimal = ZERO,
) -> tuple[ScheduledPeriod, ...]:
    """
    Re-derive balances from ``from_payment_number`` onward.

    Periods are processed in ascending payment number.  Periods before the
    starting point keep their stored balances; the first recomputed period
    takes its previous balance from the period just before it (or the
    opening balance when there is none).
    """
    ordered = sorted(schedule, key=lambda p: p.payment_number)
    start = ordered[0].payment_number if from_payment_number is None and ordered else from_payment_number

    result: list[ScheduledPeriod] = []
    previous: Decimal = Decimal(opening_balance)
    for period in ordered:
        if start is None or period.payment_number < start:
            result.append(period)
            previous = period.balance
            continue
        balance = round_money(previous + period.rent_paid - period.rent_due)
        result.append(
            dataclasses.replace(
                period,
                previous_balance=round_money(previous),
                balance=balance,
            )
        )
        previous = balance
    return tuple(result)


@traced_engine("balance_ledger", "1.0", fingerprint_fields=("payment_number", "amount_paid"))
def recompute(
    schedule: Sequence[ScheduledPeriod],
    *,
    payment_number: int,
    amount_paid: Decimal,
) -> tuple[ScheduledPeriod, ...]:
    """Set ``rent_paid`` on one period and ripple balances forward from it."""
    if amount_paid < 0:
        raise ValueError(f"amount_paid must not be negative, got {amount_paid}")
    if not any(p.payment_number == payment_number for p in schedule):
        raise KeyError(payment_number)
    edited = [
        dataclasses.replace(p, rent_paid=round_money(amount_paid))
        if p.payment_number == payment_number
        else p
        for p in schedule
    ]
    return ripple_balances(edited, from_payment_number=payment_number)


def is_consistent(schedule: Sequence[ScheduledPeriod], opening_balance: Decimal = ZERO) -> bool:
    """Check the running-balance invariant over a whole schedule."""
    previous = Decimal(opening_balance)
    for period in sorted(schedule, key=lambda p: p.payment_number):
        if period.previous_balance != previous:
            return False
        if period.balance != period.previous_balance + period.rent_paid - period.rent_due:
            return False
        previous = period.balance
    return True


def derive_status(
    *,
    rent_due: Decimal,
    rent_paid: Decimal,
    confirmed: bool,
    awaiting_confirmation: bool,
    waived: bool,
    due_date: date,
    today: date,
    refund: bool = False,
) -> PaymentStatus:
    """
    Display status of one period.

    Precedence: waived, paid (confirmed and covered), submitted (a lodger
    claim not yet confirmed), partial (confirmed but short), overdue (due
    date passed), pending.

    A refund settlement row is owed to the lodger and is never overdue.
    """
    if waived:
        return PaymentStatus.WAIVED
    if confirmed and rent_paid >= rent_due:
        return PaymentStatus.PAID
    if awaiting_confirmation:
        return PaymentStatus.SUBMITTED
    if confirmed and rent_paid > 0:
        return PaymentStatus.PARTIAL
    if due_date < today and not refund:
        return PaymentStatus.OVERDUE
    return PaymentStatus.PENDING
