"""
Module: tenancy_engines.deductions
Responsibility:
    The deduction ledger: validates a withdrawal against the two fund pools
    held for a tenancy (deposit and advance rent) and reports what remains.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller supplies the
    aggregate of prior deductions; the deduction service reads it under a
    row lock on the tenancy so the check and the insert cannot interleave
    with another deduction.

Invariants enforced:
    - amount_from_deposit + amount_from_advance == amount, exactly.
    - amount_from_deposit <= deposit pool - already deducted from deposit.
    - amount_from_advance <= advance pool - already deducted from advance.
    - Available funds are floored at zero for display.

Failure modes:
    - InvalidAmountError for a non-positive total or a negative component.
    - InsufficientFundsError (pool, available, requested) for an overdraw.
    - AllocationMismatchError (amount, allocated) when the split is off.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from tenancy_kernel.domain.money import ZERO, round_money
from tenancy_kernel.domain.types import DeductedFrom
from tenancy_kernel.exceptions import (
    AllocationMismatchError,
    InsufficientFundsError,
    InvalidAmountError,
)
from tenancy_engines.tracer import traced_engine

DEPOSIT_POOL = "deposit"
ADVANCE_POOL = "advance_rent"


@dataclass(frozen=True)
class AvailableFunds:
    original_deposit: Decimal
    original_advance: Decimal
    deducted_from_deposit: Decimal
    deducted_from_advance: Decimal

    @property
    def available_deposit(self) -> Decimal:
        return max(ZERO, round_money(self.original_deposit - self.deducted_from_deposit))

    @property
    def available_advance(self) -> Decimal:
        return max(ZERO, round_money(self.original_advance - self.deducted_from_advance))

    @property
    def total_available(self) -> Decimal:
        return self.available_deposit + self.available_advance


@dataclass(frozen=True)
class DeductionAllocation:
    amount: Decimal
    amount_from_deposit: Decimal
    amount_from_advance: Decimal
    deducted_from: DeductedFrom


def available_funds(
    *,
    deposit_amount: Decimal,
    initial_payment: Decimal,
    deducted_from_deposit: Decimal = ZERO,
    deducted_from_advance: Decimal = ZERO,
) -> AvailableFunds:
    return AvailableFunds(
        original_deposit=round_money(deposit_amount),
        original_advance=round_money(initial_payment),
        deducted_from_deposit=round_money(deducted_from_deposit),
        deducted_from_advance=round_money(deducted_from_advance),
    )


def deducted_from_tag(amount_from_deposit: Decimal, amount_from_advance: Decimal) -> DeductedFrom:
    if amount_from_deposit > 0 and amount_from_advance > 0:
        return DeductedFrom.BOTH
    if amount_from_advance > 0:
        return DeductedFrom.ADVANCE_RENT
    return DeductedFrom.DEPOSIT


@traced_engine(
    "deduction_ledger",
    "1.0",
    fingerprint_fields=("amount", "amount_from_deposit", "amount_from_advance", "funds"),
)
def allocate_deduction(
    *,
    amount: Decimal,
    amount_from_deposit: Decimal,
    amount_from_advance: Decimal,
    funds: AvailableFunds,
) -> DeductionAllocation:
    """Validate a deduction split against the remaining pools."""
    if amount <= 0:
        raise InvalidAmountError("amount", amount, "must be greater than zero")
    if amount_from_deposit < 0:
        raise InvalidAmountError("amount_from_deposit", amount_from_deposit, "must not be negative")
    if amount_from_advance < 0:
        raise InvalidAmountError("amount_from_advance", amount_from_advance, "must not be negative")

    amount = round_money(amount)
    from_deposit = round_money(amount_from_deposit)
    from_advance = round_money(amount_from_advance)

    if from_deposit > funds.available_deposit:
        raise InsufficientFundsError(DEPOSIT_POOL, funds.available_deposit, from_deposit)
    if from_advance > funds.available_advance:
        raise InsufficientFundsError(ADVANCE_POOL, funds.available_advance, from_advance)
    if from_deposit + from_advance != amount:
        raise AllocationMismatchError(amount, from_deposit + from_advance)

    return DeductionAllocation(
        amount=amount,
        amount_from_deposit=from_deposit,
        amount_from_advance=from_advance,
        deducted_from=deducted_from_tag(from_deposit, from_advance),
    )
