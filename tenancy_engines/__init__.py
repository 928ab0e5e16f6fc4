"""
Pure calculation engines for the tenancy financial lifecycle.

Zero I/O: every function here takes plain values (dates, Decimals, frozen
dataclasses) and returns plain values or raises a typed kernel exception.

    due_dates    calendar engine (cycle / calendar policies, pro-rata counts)
    schedule     schedule generator (initial and extension)
    balance      balance ledger (ripple recompute, status derivation)
    notices      notice and termination state machine guards
    settlement   final settlement (charge or refund)
    deductions   deduction ledger over the deposit and advance pools
    tax          rent-a-room allowance summary
    expiry       daily sweep predicates
"""

from tenancy_engines.balance import derive_status, recompute, ripple_balances
from tenancy_engines.deductions import AvailableFunds, allocate_deduction, available_funds
from tenancy_engines.due_dates import (
    SchedulePolicy,
    add_months,
    daily_rate,
    days_between,
    next_due_date,
)
from tenancy_engines.schedule import ScheduledPeriod, generate_schedule, plan_extension
from tenancy_engines.settlement import FinalSettlement, compute_final_settlement

__all__ = [
    "AvailableFunds",
    "FinalSettlement",
    "ScheduledPeriod",
    "SchedulePolicy",
    "add_months",
    "allocate_deduction",
    "available_funds",
    "compute_final_settlement",
    "daily_rate",
    "days_between",
    "derive_status",
    "generate_schedule",
    "next_due_date",
    "plan_extension",
    "recompute",
    "ripple_balances",
]
