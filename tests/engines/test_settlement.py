"""
Tests for the final-settlement calculation.

Last period due 2024-01-01 on a 28-day cycle at 1000/period, so the last
covered date is 2024-01-29 and the daily rate is 1000/28.
"""

from datetime import date
from decimal import Decimal

from tenancy_kernel.domain.types import SettlementKind
from tenancy_engines.settlement import (
    PAYMENT_DUE_LABEL,
    REFUND_DUE_LABEL,
    compute_final_settlement,
    settlement_due_date,
    settlement_kind,
)


def _settle(effective):
    return compute_final_settlement(
        last_due_date=date(2024, 1, 1),
        effective_date=effective,
        monthly_rent=Decimal("1000"),
        cycle_days=28,
    )


class TestChargeDue:

    def test_long_gap_charges_after_advance_credit(self):
        result = _settle(date(2024, 3, 9))
        assert result.last_covered_date == date(2024, 1, 29)
        assert result.days == 40
        assert result.pro_rata_amount == Decimal("1428.57")
        assert result.signed_amount == Decimal("428.57")
        assert result.amount == Decimal("428.57")
        assert result.kind is SettlementKind.CHARGE
        assert result.note.endswith(PAYMENT_DUE_LABEL)


class TestRefundDue:

    def test_short_gap_is_covered_by_advance(self):
        result = _settle(date(2024, 2, 12))
        assert result.days == 14
        assert result.signed_amount == Decimal("-500.00")
        assert result.amount == Decimal("500.00")
        assert result.kind is SettlementKind.REFUND
        assert result.label == REFUND_DUE_LABEL
        assert REFUND_DUE_LABEL in result.note

    def test_leaving_before_covered_date_refunds_unused_days_plus_advance(self):
        result = _settle(date(2024, 1, 15))
        assert result.days == 14
        assert result.signed_amount == Decimal("-1500.00")
        assert result.amount == Decimal("1500.00")
        assert result.is_refund
        assert "14 days overpaid" in result.note

    def test_effective_on_covered_date_refunds_advance(self):
        result = _settle(date(2024, 1, 29))
        assert result.days == 0
        assert result.signed_amount == Decimal("-1000.00")


class TestSignConvention:

    def test_zero_is_a_refund(self):
        assert settlement_kind(Decimal("0")) is SettlementKind.REFUND

    def test_positive_is_a_charge(self):
        assert settlement_kind(Decimal("0.01")) is SettlementKind.CHARGE


class TestSettlementDueDate:

    def test_effective_date_after_basis(self):
        assert settlement_due_date(date(2024, 3, 9), date(2024, 3, 1)) == date(2024, 3, 9)

    def test_effective_date_not_after_basis(self):
        assert settlement_due_date(date(2024, 1, 15), date(2024, 1, 29)) == date(2024, 1, 30)

    def test_no_basis(self):
        assert settlement_due_date(date(2024, 1, 15), None) == date(2024, 1, 15)
