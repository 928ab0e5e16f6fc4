"""
PaymentService -- the two payment write paths and payment read models.

Lodger submissions are advisory metadata and never touch the ledger.
Landlord confirmations are authoritative: they set ``rent_paid`` and ripple
balances forward through ``tenancy_engines.balance.recompute``.
"""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Any
from uuid import UUID

from tenancy_kernel.domain.dtos import PaymentPeriodInfo, PaymentSummary
from tenancy_kernel.domain.money import ZERO, format_gbp, round_money, to_money
from tenancy_kernel.domain.types import NotificationKind, PaymentStatus
from tenancy_kernel.exceptions import PaymentAlreadySettledError
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.selectors import period_status
from tenancy_engines.balance import recompute, ripple_balances
from tenancy_engines.notices import format_uk_date
from tenancy_engines.tax import TaxYearSummary, summarize_tax_year, tax_year_containing
from tenancy_services.base import OperationService

logger = get_logger("services.payment")


class PaymentService(OperationService):

    def record_submission(
        self,
        payment_id: UUID,
        lodger_id: UUID,
        amount: Any,
        reference: str | None = None,
        method: str | None = None,
        notes: str | None = None,
    ) -> PaymentPeriodInfo:
        """Lodger claims a payment; the landlord is asked to confirm it."""
        claimed = round_money(to_money(amount, "amount", allow_zero=False))
        today = self.clock.today()
        with self._operation("payment_submit", payment_id=payment_id, actor_id=lodger_id):
            row = self._load_payment(payment_id)
            tenancy = self._load_tenancy(row.tenancy_id)
            self._require_party(tenancy, lodger_id, "lodger")
            status = period_status(row, today)
            if status in (PaymentStatus.WAIVED, PaymentStatus.PAID):
                raise PaymentAlreadySettledError(row.id, status.value, "submit")

            row.submitted_amount = claimed
            row.submitted_on = today
            row.submitted_reference = reference
            row.submitted_method = method
            row.submitted_notes = notes
            row.awaiting_confirmation = True
            row.updated_by_id = lodger_id

            self.dispatcher.notify(
                tenancy.landlord_id,
                NotificationKind.PAYMENT_SUBMITTED,
                "Payment Submitted",
                f"Your lodger has recorded a payment of {format_gbp(claimed)} for "
                f"payment #{row.payment_number} (due {format_uk_date(row.due_date)}). "
                f"Please confirm it once received.",
                tenancy_id=tenancy.id,
                payment_id=row.id,
            )
            logger.info("payment_submitted", extra={
                "payment_number": row.payment_number,
                "amount": str(claimed),
            })
        return row.to_dto(period_status(row, today))

    def confirm_payment(
        self,
        payment_id: UUID,
        landlord_id: UUID,
        amount: Any,
        method: str | None = None,
        reference: str | None = None,
        notes: str | None = None,
        payment_date: date | None = None,
    ) -> PaymentPeriodInfo:
        """
        Record the landlord-confirmed amount for a period.

        The confirmed amount replaces any previous one and the balance of
        this period and every later period is recomputed.
        """
        paid = round_money(to_money(amount, "amount"))
        today = self.clock.today()
        with self._operation("payment_confirm", payment_id=payment_id, actor_id=landlord_id):
            row = self._load_payment(payment_id)
            tenancy = self._load_tenancy(row.tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            rows = self._schedule_rows(tenancy.id)
            # Refreshed under the lock, so a waive committed meanwhile is visible.
            if row.waived_amount is not None:
                raise PaymentAlreadySettledError(row.id, PaymentStatus.WAIVED.value, "confirm")

            periods = recompute(
                [self._to_period(r) for r in rows],
                payment_number=row.payment_number,
                amount_paid=paid,
            )
            changed = self._write_ledger(rows, periods)

            row.confirmed_at = self.clock.now()
            row.confirmed_by_id = landlord_id
            row.payment_date = payment_date or today
            row.payment_method = method
            row.payment_reference = reference
            if notes:
                row.notes = notes
            row.awaiting_confirmation = False
            row.updated_by_id = landlord_id

            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.PAYMENT_CONFIRMED,
                "Payment Confirmed",
                f"Your landlord has confirmed a payment of {format_gbp(paid)} for "
                f"payment #{row.payment_number}.",
                tenancy_id=tenancy.id,
                payment_id=row.id,
            )
            logger.info("payment_confirmed", extra={
                "payment_number": row.payment_number,
                "amount": str(paid),
                "rows_rebalanced": changed,
            })
        return row.to_dto(period_status(row, today))

    def waive_payment(
        self,
        payment_id: UUID,
        landlord_id: UUID,
        notes: str | None = None,
    ) -> PaymentPeriodInfo:
        """Forgive the unpaid remainder of a period."""
        today = self.clock.today()
        with self._operation("payment_waive", payment_id=payment_id, actor_id=landlord_id):
            row = self._load_payment(payment_id)
            tenancy = self._load_tenancy(row.tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            rows = self._schedule_rows(tenancy.id)
            status = period_status(row, today)
            if status in (PaymentStatus.WAIVED, PaymentStatus.PAID):
                raise PaymentAlreadySettledError(row.id, status.value, "waive")

            row.waived_amount = round_money(row.rent_due - row.rent_paid)
            row.rent_due = row.rent_paid
            row.awaiting_confirmation = False
            if notes:
                row.notes = notes
            row.updated_by_id = landlord_id

            periods = ripple_balances(
                [self._to_period(r) for r in rows],
                from_payment_number=row.payment_number,
            )
            self._write_ledger(rows, periods)
            logger.info("payment_waived", extra={
                "payment_number": row.payment_number,
                "waived_amount": str(row.waived_amount),
            })
        return row.to_dto(period_status(row, today))

    def send_payment_reminder(self, payment_id: UUID, landlord_id: UUID) -> None:
        today = self.clock.today()
        with self._operation("payment_remind", payment_id=payment_id, actor_id=landlord_id):
            row = self._load_payment(payment_id)
            tenancy = self._load_tenancy(row.tenancy_id)
            self._require_party(tenancy, landlord_id, "landlord")
            status = period_status(row, today)
            if status in (PaymentStatus.WAIVED, PaymentStatus.PAID):
                raise PaymentAlreadySettledError(row.id, status.value, "remind")
            outstanding = round_money(row.rent_due - row.rent_paid)
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.PAYMENT_REMINDER,
                "Payment Reminder",
                f"This is a reminder that payment #{row.payment_number} of "
                f"{format_gbp(outstanding)} is due on {format_uk_date(row.due_date)}.",
                tenancy_id=tenancy.id,
                payment_id=row.id,
            )
            logger.info("payment_reminder_sent", extra={
                "payment_number": row.payment_number,
                "status": status.value,
            })

    # =========================================================================
    # Read models
    # =========================================================================

    def payment_summary(self, tenancy_id: UUID) -> PaymentSummary:
        self._load_tenancy(tenancy_id)
        today = self.clock.today()
        rows = self._schedule_rows(tenancy_id)
        counts: Counter[str] = Counter()
        total_due = total_paid = outstanding = ZERO
        for row in rows:
            status = period_status(row, today)
            counts[status.value] += 1
            total_due += row.rent_due
            total_paid += row.rent_paid
            if row.is_refund or status is PaymentStatus.WAIVED:
                continue
            if row.rent_due > row.rent_paid:
                outstanding += row.rent_due - row.rent_paid
        return PaymentSummary(
            tenancy_id=tenancy_id,
            total_due=round_money(total_due),
            total_paid=round_money(total_paid),
            outstanding=round_money(outstanding),
            current_balance=rows[-1].balance if rows else ZERO,
            status_counts=dict(counts),
        )

    def tax_year_summary(self, landlord_id: UUID, start_year: int | None = None) -> TaxYearSummary:
        """Rent-a-room summary for the tax year starting in ``start_year`` (default: current)."""
        year = start_year if start_year is not None else tax_year_containing(self.clock.today())
        return summarize_tax_year(
            self.selector.confirmed_receipts(landlord_id),
            year,
            self.policy.rent_a_room_allowance,
        )
