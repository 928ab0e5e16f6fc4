"""
TenancyService -- tenancy creation, signing, cancellation and the schedule.

Responsibility
--------------
* Create a draft tenancy together with its initial payment schedule.
* Lodger signature, landlord approval (draft -> active), cancellation of an
  unsigned offer.
* ``generate_schedule`` for a tenancy that has none, and
  ``extend_schedule_if_needed`` to keep the schedule at least
  ``extension_horizon_months`` ahead of today.

Invariants enforced
-------------------
* Tenancy and initial schedule are written in one transaction.
* Extension runs under a row lock on the tenancy; ``(tenancy_id,
  payment_number)`` uniqueness turns a lost race into a no-op.
* Cancellation is impossible once the lodger has signed.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from tenancy_kernel.domain.dtos import PaymentPeriodInfo, PropertyAddress, TenancyInfo
from tenancy_kernel.domain.money import ZERO, round_money, to_money
from tenancy_kernel.domain.types import (
    DocumentKind,
    NotificationKind,
    PaymentType,
    TenancyStatus,
)
from tenancy_kernel.exceptions import (
    AgreementNotSignedError,
    InvalidAmountError,
    ScheduleExistsError,
    TenancySignedError,
    TenancyStateError,
)
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import PaymentPeriodModel, TenancyModel
from tenancy_kernel.selectors import period_status
from tenancy_engines.due_dates import SchedulePolicy, cycle_days_for_frequency
from tenancy_engines.schedule import generate_schedule, needs_extension, plan_extension
from tenancy_services.base import SYSTEM_ACTOR_ID, OperationService

logger = get_logger("services.tenancy")

EXTENSIBLE_STATUSES = frozenset(
    {TenancyStatus.DRAFT.value, TenancyStatus.ACTIVE.value, TenancyStatus.EXTENDED.value}
)


def _coerce_address(address: PropertyAddress | str) -> PropertyAddress:
    if isinstance(address, PropertyAddress):
        return address
    return PropertyAddress(street_name=str(address).strip())


class TenancyService(OperationService):

    # =========================================================================
    # Creation
    # =========================================================================

    def create_tenancy(
        self,
        *,
        landlord_id: UUID,
        lodger_id: UUID,
        address: PropertyAddress | str,
        start_date: date,
        initial_term_months: int,
        monthly_rent: Any,
        room_description: str | None = None,
        initial_payment: Any = None,
        deposit_applicable: bool = False,
        deposit_amount: Any = ZERO,
        payment_frequency: str | None = None,
        payment_type: str = PaymentType.CYCLE.value,
        payment_day_of_month: int | None = None,
    ) -> TenancyInfo:
        """Create a draft tenancy and its initial schedule in one transaction."""
        rent = round_money(to_money(monthly_rent, "monthly_rent", allow_zero=False))
        if isinstance(initial_term_months, bool) or not isinstance(initial_term_months, int) \
                or initial_term_months < 1:
            raise InvalidAmountError(
                "initial_term_months", initial_term_months, "must be a positive number of months"
            )
        advance = (
            round_money(rent * 2)
            if initial_payment is None
            else round_money(to_money(initial_payment, "initial_payment"))
        )
        deposit = (
            round_money(to_money(deposit_amount, "deposit_amount")) if deposit_applicable else ZERO
        )
        cycle_days = cycle_days_for_frequency(
            payment_frequency,
            self.policy.payment_frequencies,
            self.policy.default_cycle_days,
        )
        frequency = payment_frequency or next(
            (label for label, days in self.policy.payment_frequencies.items()
             if days == self.policy.default_cycle_days),
            "4-weekly",
        )
        policy = SchedulePolicy(
            payment_type=payment_type,
            cycle_days=cycle_days,
            payment_day_of_month=(
                payment_day_of_month if payment_type == PaymentType.CALENDAR.value else None
            ),
        )
        addr = _coerce_address(address)

        with self._operation("tenancy_create", actor_id=landlord_id):
            tenancy = TenancyModel(
                landlord_id=landlord_id,
                lodger_id=lodger_id,
                house_number=addr.house_number or None,
                street_name=addr.street_name or None,
                city=addr.city or None,
                county=addr.county or None,
                postcode=addr.postcode or None,
                property_address=addr.formatted(),
                room_description=room_description,
                start_date=start_date,
                initial_term_months=initial_term_months,
                monthly_rent=rent,
                initial_payment=advance,
                deposit_applicable=deposit_applicable,
                deposit_amount=deposit,
                payment_frequency=frequency,
                payment_type=policy.payment_type.value,
                cycle_days=cycle_days,
                payment_day_of_month=policy.payment_day_of_month,
                status=TenancyStatus.DRAFT.value,
                created_by_id=landlord_id,
            )
            self.session.add(tenancy)
            self.session.flush()
            periods = self._persist_schedule(
                tenancy, policy, start_date, rent, self.policy.initial_schedule_periods, landlord_id
            )
            logger.info("tenancy_created", extra={
                "tenancy_id": str(tenancy.id),
                "payment_type": policy.payment_type.value,
                "cycle_days": cycle_days,
                "monthly_rent": str(rent),
                "periods": len(periods),
            })
        return tenancy.to_dto()

    def _persist_schedule(self, tenancy, policy, start_date, rent, count, actor_id):
        periods = generate_schedule(
            start_date=start_date,
            monthly_rent=rent,
            count=count,
            policy=policy,
        )
        for period in periods:
            self.session.add(self._new_period_row(tenancy.id, period, actor_id))
        self.session.flush()
        return periods

    # =========================================================================
    # Signing
    # =========================================================================

    def sign_agreement(self, tenancy_id: UUID, lodger_id: UUID, signature: str) -> TenancyInfo:
        with self._operation("agreement_sign", tenancy_id=tenancy_id, actor_id=lodger_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, lodger_id, "lodger")
            if tenancy.status != TenancyStatus.DRAFT.value:
                raise TenancyStateError(tenancy.id, tenancy.status, "sign")
            if not signature or not signature.strip():
                raise InvalidAmountError("signature", signature, "must not be empty")
            tenancy.lodger_signature = signature
            tenancy.lodger_signed_at = self.clock.now()
            tenancy.updated_by_id = lodger_id
            logger.info("agreement_signed_by_lodger", extra={"tenancy_id": str(tenancy.id)})
        return tenancy.to_dto()

    def approve_agreement(self, tenancy_id: UUID, landlord_id: UUID, signature: str) -> TenancyInfo:
        """Countersign a lodger-signed agreement: draft -> active."""
        with self._operation("agreement_approve", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            if tenancy.status != TenancyStatus.DRAFT.value:
                raise TenancyStateError(tenancy.id, tenancy.status, "approve")
            if not tenancy.is_lodger_signed:
                raise AgreementNotSignedError(tenancy.id)
            tenancy.landlord_signature = signature
            tenancy.landlord_signed_at = self.clock.now()
            tenancy.status = TenancyStatus.ACTIVE.value
            tenancy.updated_by_id = landlord_id
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.AGREEMENT_APPROVED,
                "Tenancy Agreement Approved",
                f"Your tenancy agreement for {tenancy.property_address} has been "
                f"approved and is now active.",
                tenancy_id=tenancy.id,
            )
            logger.info("agreement_approved", extra={"tenancy_id": str(tenancy.id)})

        self._store_document_path(
            tenancy,
            "agreement_document_path",
            DocumentKind.TENANCY_AGREEMENT,
            {"tenancy": tenancy.to_dto(), "signed_on": self.clock.today()},
        )
        return tenancy.to_dto()

    def cancel_tenancy(self, tenancy_id: UUID, landlord_id: UUID) -> None:
        """Withdraw an offer the lodger has not signed; removes it entirely."""
        with self._operation("tenancy_cancel", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            if tenancy.is_lodger_signed:
                raise TenancySignedError(tenancy.id)
            lodger_id, address = tenancy.lodger_id, tenancy.property_address
            rows = self._schedule_rows(tenancy.id)
            for row in rows:
                self.session.delete(row)
            removed = len(rows)
            self.session.delete(tenancy)
            self.session.flush()
            self.dispatcher.notify(
                lodger_id,
                NotificationKind.TENANCY_CANCELLED,
                "Tenancy Offer Cancelled",
                f"The tenancy offer for {address} has been cancelled by the landlord.",
            )
            logger.info("tenancy_cancelled", extra={
                "tenancy_id": str(tenancy_id),
                "periods_removed": removed,
            })

    # =========================================================================
    # Schedule
    # =========================================================================

    def generate_schedule(
        self,
        tenancy_id: UUID,
        *,
        start_date: date,
        monthly_rent: Any,
        cycle_days: int,
        payment_type: str,
        payment_day_of_month: int | None = None,
        actor_id: UUID = SYSTEM_ACTOR_ID,
        count: int | None = None,
    ) -> list[PaymentPeriodInfo]:
        """Generate and persist the schedule of a tenancy that has none."""
        rent = round_money(to_money(monthly_rent, "monthly_rent", allow_zero=False))
        policy = SchedulePolicy(
            payment_type=payment_type,
            cycle_days=cycle_days,
            payment_day_of_month=(
                payment_day_of_month if payment_type == PaymentType.CALENDAR.value else None
            ),
        )
        today = self.clock.today()
        with self._operation("schedule_generate", tenancy_id=tenancy_id, actor_id=actor_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            existing = self.selector.period_count(tenancy.id)
            if existing:
                raise ScheduleExistsError(tenancy.id, existing)
            tenancy.start_date = start_date
            tenancy.monthly_rent = rent
            tenancy.cycle_days = cycle_days
            tenancy.payment_type = policy.payment_type.value
            tenancy.payment_day_of_month = policy.payment_day_of_month
            periods = self._persist_schedule(
                tenancy, policy, start_date, rent,
                count or self.policy.initial_schedule_periods, actor_id,
            )
            logger.info("schedule_generated", extra={
                "tenancy_id": str(tenancy.id),
                "periods": len(periods),
            })
        return self.selector.schedule(tenancy_id, today)

    def extend_schedule_if_needed(self, tenancy_id: UUID) -> list[PaymentPeriodInfo]:
        """
        Append ``extension_periods`` periods when the last due date is inside
        the horizon.  Returns the added periods (empty when nothing was done).
        """
        today = self.clock.today()
        added: list[PaymentPeriodModel] = []
        try:
            with self._operation("schedule_extend", tenancy_id=tenancy_id):
                tenancy = self._load_tenancy(tenancy_id, lock=True)
                if tenancy.status not in EXTENSIBLE_STATUSES:
                    logger.debug("schedule_extension_skipped", extra={"status": tenancy.status})
                    return []
                last = self._last_period(tenancy.id)
                if last is None or not needs_extension(
                    last.due_date, today, self.policy.extension_horizon_months
                ):
                    return []
                periods = plan_extension(
                    last_period=self._to_period(last),
                    monthly_rent=tenancy.monthly_rent,
                    policy=self._policy_for(tenancy),
                    count=self.policy.extension_periods,
                )
                for period in periods:
                    row = self._new_period_row(tenancy.id, period, SYSTEM_ACTOR_ID)
                    self.session.add(row)
                    added.append(row)
                self.session.flush()
                logger.info("schedule_extended", extra={
                    "from_payment_number": periods[0].payment_number,
                    "to_payment_number": periods[-1].payment_number,
                    "last_due_date": periods[-1].due_date,
                })
        except IntegrityError:
            logger.info("schedule_extension_conflict", extra={"tenancy_id": str(tenancy_id)})
            return []
        return [row.to_dto(period_status(row, today)) for row in added]

    def get_schedule(self, tenancy_id: UUID) -> list[PaymentPeriodInfo]:
        """Schedule in payment-number order, topped up first when needed."""
        self._load_tenancy(tenancy_id)
        self.extend_schedule_if_needed(tenancy_id)
        return self.selector.schedule(tenancy_id, self.clock.today())
