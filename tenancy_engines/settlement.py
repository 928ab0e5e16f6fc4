"""
Module: tenancy_engines.settlement
Responsibility:
    Final settlement when a tenancy ends by notice or escalated breach:
    compares the notice's effective date with the last date covered by the
    schedule and produces either a charge (lodger owes for uncovered days,
    less the advance credit) or a refund (unused days plus the advance
    credit).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Builds on tenancy_engines.due_dates.

Definitions:
    last_covered_date = last_due_date + cycle_days
    daily_rate        = monthly_rent / cycle_days
    advance_credit    = monthly_rent (the extra month taken at signing)

    effective_date > last_covered_date:
        days          = effective_date - last_covered_date
        signed_amount = daily_rate * days - advance_credit
    otherwise:
        days          = last_covered_date - effective_date
        signed_amount = -(daily_rate * days + advance_credit)

Invariants enforced:
    - kind == CHARGE  iff  signed_amount > 0; otherwise REFUND.
    - amount == |signed_amount|, rounded half-up to pence once, at output.
    - The note's "PAYMENT DUE" / "REFUND DUE" wording always agrees with kind.

Failure modes:
    - ValueError for a non-positive cycle length (from daily_rate).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from tenancy_kernel.domain.money import format_gbp, round_money
from tenancy_kernel.domain.types import SettlementKind
from tenancy_engines.due_dates import daily_rate
from tenancy_engines.tracer import traced_engine

PAYMENT_DUE_LABEL = "PAYMENT DUE FROM TENANT."
REFUND_DUE_LABEL = "REFUND DUE TO TENANT."


@dataclass(frozen=True)
class FinalSettlement:
    kind: SettlementKind
    amount: Decimal
    signed_amount: Decimal
    last_covered_date: date
    effective_date: date
    days: int
    pro_rata_amount: Decimal
    advance_credit: Decimal
    note: str

    @property
    def is_refund(self) -> bool:
        return self.kind is SettlementKind.REFUND

    @property
    def label(self) -> str:
        return REFUND_DUE_LABEL if self.is_refund else PAYMENT_DUE_LABEL


def settlement_kind(signed_amount: Decimal) -> SettlementKind:
    return SettlementKind.CHARGE if signed_amount > 0 else SettlementKind.REFUND


@traced_engine(
    "final_settlement",
    "1.0",
    fingerprint_fields=("last_due_date", "effective_date", "monthly_rent", "cycle_days"),
)
def compute_final_settlement(
    *,
    last_due_date: date,
    effective_date: date,
    monthly_rent: Decimal,
    cycle_days: int,
) -> FinalSettlement:
    """Settle a schedule whose last period is due on ``last_due_date``."""
    rate = daily_rate(monthly_rent, cycle_days)
    advance_credit = round_money(monthly_rent)
    last_covered = last_due_date + timedelta(days=cycle_days)

    if effective_date > last_covered:
        days = (effective_date - last_covered).days
        pro_rata = rate * days
        signed = round_money(pro_rata - monthly_rent)
        kind = settlement_kind(signed)
        if kind is SettlementKind.REFUND:
            note = (
                f"Final settlement: {format_gbp(advance_credit)} advance credit minus "
                f"{format_gbp(pro_rata)} for {days} days. {REFUND_DUE_LABEL}"
            )
        else:
            note = (
                f"Final pro-rata payment for {days} days after advance credit "
                f"applied. {PAYMENT_DUE_LABEL}"
            )
    else:
        days = (last_covered - effective_date).days
        pro_rata = rate * days
        signed = -round_money(pro_rata + monthly_rent)
        kind = SettlementKind.REFUND
        note = (
            f"Final settlement: Refund of {format_gbp(-signed)} ({days} days overpaid "
            f"+ {format_gbp(advance_credit)} advance credit). {REFUND_DUE_LABEL}"
        )

    return FinalSettlement(
        kind=kind,
        amount=abs(signed),
        signed_amount=signed,
        last_covered_date=last_covered,
        effective_date=effective_date,
        days=days,
        pro_rata_amount=round_money(pro_rata),
        advance_credit=advance_credit,
        note=note,
    )


def settlement_due_date(effective_date: date, basis_due_date: date | None) -> date:
    """Due date for the appended settlement period.

    The effective date, unless that would not fall strictly after the due
    date of the period it follows.
    """
    if basis_due_date is None or effective_date > basis_due_date:
        return effective_date
    return basis_due_date + timedelta(days=1)
