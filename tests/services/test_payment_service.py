"""
Tests for PaymentService.

Submissions are advisory and leave balances alone; confirmations are the
only path that changes ``rent_paid`` and they ripple balances forward.
"""

from datetime import date
from decimal import Decimal

import pytest

from tenancy_kernel.domain.types import PaymentStatus, SettlementKind
from tenancy_kernel.exceptions import (
    InvalidAmountError,
    PaymentAlreadySettledError,
    TenancyNotFoundError,
)
from tenancy_services import RecordingNotifier, TenancyOrchestrator


@pytest.fixture
def schedule(orchestrator, active_tenancy):
    tenancy = active_tenancy()
    return orchestrator.get_schedule(tenancy.id)


class TestRecordSubmission:

    def test_submission_leaves_ledger_untouched(
        self, orchestrator, schedule, lodger_id, landlord_id, notifier,
    ):
        first = schedule[0]

        result = orchestrator.record_submission(
            first.id, lodger_id, Decimal("2000"), reference="BACS-001", method="bank_transfer",
        )

        assert result.status is PaymentStatus.SUBMITTED
        assert result.submitted_amount == Decimal("2000.00")
        assert result.rent_paid == Decimal("0")
        assert result.balance == Decimal("-2000.00")

        sent = notifier.of_kind("payment_submitted")
        assert len(sent) == 1
        assert sent[0].user_id == landlord_id
        assert sent[0].payment_id == first.id
        assert "£2,000.00" in sent[0].body

    def test_landlord_cannot_submit(self, orchestrator, schedule, landlord_id):
        with pytest.raises(TenancyNotFoundError):
            orchestrator.record_submission(schedule[0].id, landlord_id, Decimal("100"))

    def test_zero_amount_rejected(self, orchestrator, schedule, lodger_id):
        with pytest.raises(InvalidAmountError):
            orchestrator.record_submission(schedule[0].id, lodger_id, Decimal("0"))

    def test_cannot_submit_for_paid_period(self, orchestrator, schedule, lodger_id, landlord_id):
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))

        with pytest.raises(PaymentAlreadySettledError):
            orchestrator.record_submission(schedule[0].id, lodger_id, Decimal("2000"))


class TestConfirmPayment:

    def test_confirmation_ripples_balances(self, orchestrator, schedule, landlord_id, lodger_id, notifier):
        result = orchestrator.confirm_payment(
            schedule[0].id, landlord_id, Decimal("2000"), method="cash",
        )

        assert result.status is PaymentStatus.PAID
        assert result.balance == Decimal("0.00")
        assert result.payment_date == date(2024, 1, 1)
        assert result.payment_method == "cash"

        after = orchestrator.get_schedule(schedule[0].tenancy_id)
        assert after[1].previous_balance == Decimal("0.00")
        assert after[1].balance == Decimal("-1000.00")
        assert after[-1].balance == Decimal("-23000.00")

        sent = notifier.of_kind("payment_confirmed")
        assert len(sent) == 1
        assert sent[0].user_id == lodger_id

    def test_confirmation_clears_submission(self, orchestrator, schedule, landlord_id, lodger_id):
        orchestrator.record_submission(schedule[0].id, lodger_id, Decimal("2000"))

        result = orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))

        assert result.status is PaymentStatus.PAID
        assert result.submitted_amount == Decimal("2000.00")

    def test_partial_confirmation(self, orchestrator, schedule, landlord_id):
        result = orchestrator.confirm_payment(schedule[1].id, landlord_id, Decimal("400"))

        assert result.status is PaymentStatus.PARTIAL
        assert result.balance == Decimal("-2600.00")

    def test_reconfirmation_replaces_amount(self, orchestrator, schedule, landlord_id):
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2500"))
        result = orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))

        assert result.rent_paid == Decimal("2000.00")
        assert result.balance == Decimal("0.00")

    def test_overpayment_carries_forward(self, orchestrator, schedule, landlord_id):
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2500"))

        after = orchestrator.get_schedule(schedule[0].tenancy_id)
        assert after[0].balance == Decimal("500.00")
        assert after[1].balance == Decimal("-500.00")

    def test_lodger_cannot_confirm(self, orchestrator, schedule, lodger_id):
        with pytest.raises(TenancyNotFoundError):
            orchestrator.confirm_payment(schedule[0].id, lodger_id, Decimal("2000"))

        after = orchestrator.get_schedule(schedule[0].tenancy_id)
        assert after[0].rent_paid == Decimal("0")


class TestWaivePayment:

    def test_waive_forgives_remainder(self, orchestrator, schedule, landlord_id):
        result = orchestrator.waive_payment(schedule[1].id, landlord_id, notes="Boiler outage")

        assert result.status is PaymentStatus.WAIVED
        assert result.waived_amount == Decimal("1000.00")
        assert result.rent_due == Decimal("0")
        assert result.balance == Decimal("-2000.00")

        after = orchestrator.get_schedule(schedule[0].tenancy_id)
        assert after[2].balance == Decimal("-3000.00")

    def test_waive_after_partial_payment(self, orchestrator, schedule, landlord_id):
        orchestrator.confirm_payment(schedule[1].id, landlord_id, Decimal("400"))

        result = orchestrator.waive_payment(schedule[1].id, landlord_id)

        assert result.waived_amount == Decimal("600.00")
        assert result.rent_due == Decimal("400.00")

    def test_cannot_confirm_waived_period(self, orchestrator, schedule, landlord_id):
        orchestrator.waive_payment(schedule[1].id, landlord_id)

        with pytest.raises(PaymentAlreadySettledError):
            orchestrator.confirm_payment(schedule[1].id, landlord_id, Decimal("1000"))

    def test_cannot_waive_twice(self, orchestrator, schedule, landlord_id):
        orchestrator.waive_payment(schedule[1].id, landlord_id)

        with pytest.raises(PaymentAlreadySettledError):
            orchestrator.waive_payment(schedule[1].id, landlord_id)

    def test_waive_committed_by_another_session_blocks_confirmation(
        self, orchestrator, schedule, session, session_factory, deterministic_clock, policy, landlord_id,
    ):
        target = schedule[1]
        session.commit()
        other = session_factory()
        try:
            TenancyOrchestrator(
                other, RecordingNotifier(), clock=deterministic_clock, policy=policy,
            ).waive_payment(target.id, landlord_id)
        finally:
            other.close()

        with pytest.raises(PaymentAlreadySettledError):
            orchestrator.confirm_payment(target.id, landlord_id, Decimal("1000"))

        [period] = [p for p in orchestrator.get_schedule(target.tenancy_id) if p.id == target.id]
        assert period.status is PaymentStatus.WAIVED
        assert period.rent_paid == Decimal("0.00")


class TestPaymentReminder:

    def test_reminder_sent_to_lodger(self, orchestrator, schedule, landlord_id, lodger_id, notifier):
        orchestrator.send_payment_reminder(schedule[1].id, landlord_id)

        sent = notifier.of_kind("payment_reminder")
        assert len(sent) == 1
        assert sent[0].user_id == lodger_id
        assert sent[0].title == "Payment Reminder"
        assert "29/01/2024" in sent[0].body

    def test_no_reminder_for_paid_period(self, orchestrator, schedule, landlord_id, notifier):
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))

        with pytest.raises(PaymentAlreadySettledError):
            orchestrator.send_payment_reminder(schedule[0].id, landlord_id)

        assert notifier.of_kind("payment_reminder") == []


class TestPaymentSummary:

    def test_summary_counts_and_totals(
        self, orchestrator, schedule, landlord_id, deterministic_clock,
    ):
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))
        deterministic_clock.set_date(date(2024, 2, 1))

        summary = orchestrator.payment_summary(schedule[0].tenancy_id)

        assert summary.status_counts == {"paid": 1, "overdue": 1, "pending": 22}
        assert summary.total_due == Decimal("25000.00")
        assert summary.total_paid == Decimal("2000.00")
        assert summary.outstanding == Decimal("23000.00")
        assert summary.current_balance == Decimal("-23000.00")

    def test_waived_period_not_outstanding(self, orchestrator, schedule, landlord_id):
        orchestrator.waive_payment(schedule[1].id, landlord_id)

        summary = orchestrator.payment_summary(schedule[0].tenancy_id)

        assert summary.status_counts["waived"] == 1
        assert summary.outstanding == Decimal("24000.00")

    def test_refund_settlement_is_not_owed(
        self, orchestrator, schedule, landlord_id, deterministic_clock,
    ):
        tenancy_id = schedule[0].tenancy_id
        orchestrator.confirm_payment(schedule[0].id, landlord_id, Decimal("2000"))
        orchestrator.give_notice(tenancy_id, landlord_id, reason="end_term", notice_period_days=14)
        deterministic_clock.set_date(date(2024, 2, 14))

        refund = orchestrator.get_schedule(tenancy_id)[-1]
        summary = orchestrator.payment_summary(tenancy_id)

        assert refund.settlement_kind is SettlementKind.REFUND
        assert refund.rent_due == Decimal("1500.00")
        assert refund.status is PaymentStatus.PENDING
        assert summary.status_counts == {"paid": 1, "pending": 1}
        assert summary.outstanding == Decimal("0.00")
        assert summary.current_balance == Decimal("-1500.00")


class TestTaxYearSummary:

    def test_confirmed_receipts_counted_by_payment_date(self, orchestrator, schedule, landlord_id):
        orchestrator.confirm_payment(
            schedule[0].id, landlord_id, Decimal("2000"), payment_date=date(2024, 5, 1),
        )
        orchestrator.confirm_payment(
            schedule[1].id, landlord_id, Decimal("1000"), payment_date=date(2024, 3, 1),
        )

        summary = orchestrator.tax_year_summary(landlord_id, 2024)

        assert summary.tax_year == "2024/25"
        assert summary.total_income == Decimal("2000.00")
        assert summary.remaining_allowance == Decimal("5500.00")
        assert summary.taxable_income == Decimal("0.00")

    def test_defaults_to_current_tax_year(self, orchestrator, schedule, landlord_id):
        orchestrator.confirm_payment(
            schedule[1].id, landlord_id, Decimal("1000"), payment_date=date(2024, 3, 1),
        )

        summary = orchestrator.tax_year_summary(landlord_id)

        assert summary.start_date == date(2023, 4, 6)
        assert summary.total_income == Decimal("1000.00")

    def test_submissions_are_not_income(self, orchestrator, schedule, landlord_id, lodger_id):
        orchestrator.record_submission(schedule[0].id, lodger_id, Decimal("2000"))

        summary = orchestrator.tax_year_summary(landlord_id, 2023)

        assert summary.total_income == Decimal("0.00")
