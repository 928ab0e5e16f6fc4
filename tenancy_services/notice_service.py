"""
NoticeService -- ordinary notice, breach and extension flows.

Every state-changing call is one transaction: the notice row, the tenancy
status change and the final-settlement period commit together or not at
all.  Letters are rendered and notifications delivered after commit.

Final settlement
----------------
When a notice establishes a non-zero notice period (ordinary notice or a
breach escalation) the schedule is settled against the effective date:

    1. Periods due after the effective date that carry no activity
       (unconfirmed, unsubmitted, unpaid, not waived) are superseded and
       deleted, as is any earlier unpaid settlement entry.
    2. The last remaining period is the basis for
       ``compute_final_settlement``.
    3. A settlement period is appended after it and balances are rippled
       over the whole schedule.

An immediate (zero-day) termination removes the same superseded periods
but appends no settlement.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from sqlalchemy import select

from tenancy_kernel.domain.dtos import NoticeInfo, NoticeOutcome, NoticePreview, SettlementInfo
from tenancy_kernel.domain.money import format_gbp, to_money
from tenancy_kernel.domain.types import (
    BreachStage,
    DocumentKind,
    ExtensionStatus,
    NoticeStatus,
    NoticeType,
    NotificationKind,
    TenancyStatus,
)
from tenancy_kernel.exceptions import TenancyStateError
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import NoticeModel, PaymentPeriodModel, TenancyModel
from tenancy_engines.balance import ripple_balances
from tenancy_engines.due_dates import aligned_end_date
from tenancy_engines.notices import (
    EXTENSION_OFFERABLE_STATUSES,
    assert_can_escalate,
    assert_can_issue_notice,
    assert_can_respond,
    assert_in_remedy_period,
    assert_no_pending_offer,
    breach_terms,
    classify_notice,
    escalation_annotation,
    extension_terms,
    format_uk_date,
    notice_effective_date,
    notice_reason_text,
    parse_extension_response,
    remedied_annotation,
    response_annotation,
    termination_deadline,
    validate_notice_period,
)
from tenancy_engines.schedule import ScheduledPeriod
from tenancy_engines.settlement import (
    FinalSettlement,
    compute_final_settlement,
    settlement_due_date,
)
from tenancy_services.base import OperationService

logger = get_logger("services.notice")


def _is_superseded(row: PaymentPeriodModel, effective_date: date) -> bool:
    if row.is_confirmed or row.awaiting_confirmation or row.waived_amount is not None:
        return False
    if row.rent_paid > 0:
        return False
    return row.due_date > effective_date or row.is_settlement


def _settlement_info(settlement: FinalSettlement, payment_number: int | None) -> SettlementInfo:
    return SettlementInfo(
        kind=settlement.kind,
        amount=settlement.amount,
        signed_amount=settlement.signed_amount,
        last_covered_date=settlement.last_covered_date,
        effective_date=settlement.effective_date,
        days=settlement.days,
        pro_rata_amount=settlement.pro_rata_amount,
        advance_credit=settlement.advance_credit,
        note=settlement.note,
        payment_number=payment_number,
    )


class NoticeService(OperationService):

    # =========================================================================
    # Ordinary / immediate notice
    # =========================================================================

    def give_notice(
        self,
        tenancy_id: UUID,
        landlord_id: UUID,
        *,
        reason: str,
        sub_reason: str | None = None,
        notice_period_days: Any,
        notes: str | None = None,
    ) -> NoticeOutcome:
        """
        Give notice to end a tenancy.

        Zero days terminates the tenancy today and completes the notice;
        otherwise the tenancy moves to ``notice_given`` and the schedule is
        settled against the effective date.
        """
        days = validate_notice_period(notice_period_days)
        today = self.clock.today()
        effective = notice_effective_date(today, days)
        notice_type = classify_notice(reason, days)

        with self._operation("notice_give", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            assert_can_issue_notice(tenancy.id, tenancy.status, "give notice on")

            notice = NoticeModel(
                tenancy_id=tenancy.id,
                notice_type=notice_type.value,
                given_by_id=landlord_id,
                given_to_id=tenancy.lodger_id,
                notice_date=today,
                effective_date=effective,
                reason=notice_reason_text(reason, sub_reason, days, notes),
                sub_reason=sub_reason,
                notes=notes,
                notice_period_days=days,
                created_by_id=landlord_id,
            )
            settlement = None
            if days == 0:
                notice.status = NoticeStatus.COMPLETED.value
                tenancy.status = TenancyStatus.TERMINATED.value
                tenancy.termination_date = today
            else:
                notice.status = NoticeStatus.ACTIVE.value
                tenancy.status = TenancyStatus.NOTICE_GIVEN.value
                tenancy.termination_date = effective
            tenancy.updated_by_id = landlord_id
            self.session.add(notice)
            self.session.flush()

            if days > 0:
                settlement = self._settle(tenancy, notice, effective, landlord_id)
            else:
                self._truncate_schedule(tenancy, today)

            if days == 0:
                body = (
                    f"Your tenancy at {tenancy.property_address} has been terminated "
                    f"with immediate effect."
                )
            else:
                body = (
                    f"Your landlord has given {days} days notice. Your tenancy at "
                    f"{tenancy.property_address} will end on {format_uk_date(effective)}."
                )
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.NOTICE_GIVEN,
                "Notice Given",
                body,
                tenancy_id=tenancy.id,
            )
            logger.info("notice_given", extra={
                "notice_id": str(notice.id),
                "notice_type": notice_type.value,
                "notice_period_days": days,
                "effective_date": effective,
                "settlement_amount": str(settlement.signed_amount) if settlement else None,
            })
        return NoticeOutcome(notice=notice.to_dto(), settlement=settlement)

    def preview_notice(self, tenancy_id: UUID, notice_period_days: Any) -> NoticePreview:
        """Effective date, aligned end date and settlement for a notice given today."""
        days = validate_notice_period(notice_period_days)
        today = self.clock.today()
        effective = notice_effective_date(today, days)
        tenancy = self._load_tenancy(tenancy_id)
        rows = self._schedule_rows(tenancy.id)
        policy = self._policy_for(tenancy)

        anchor = tenancy.start_date
        for row in rows:
            if row.is_settlement or row.due_date > effective:
                break
            anchor = row.due_date
        aligned = aligned_end_date(policy, anchor, effective)

        settlement = None
        if days > 0:
            basis = self._settlement_basis(
                [r for r in rows if not _is_superseded(r, effective)]
            )
            if basis is not None:
                result = compute_final_settlement(
                    last_due_date=basis.due_date,
                    effective_date=effective,
                    monthly_rent=tenancy.monthly_rent,
                    cycle_days=tenancy.cycle_days,
                )
                settlement = _settlement_info(result, None)
        return NoticePreview(
            tenancy_id=tenancy.id,
            notice_date=today,
            notice_period_days=days,
            effective_date=effective,
            aligned_end_date=aligned,
            settlement=settlement,
        )

    # =========================================================================
    # Final settlement
    # =========================================================================

    def _remove_superseded(
        self, tenancy_id: UUID, effective: date,
    ) -> tuple[list[PaymentPeriodModel], list[PaymentPeriodModel]]:
        rows = self._schedule_rows(tenancy_id)
        superseded = [r for r in rows if _is_superseded(r, effective)]
        for row in superseded:
            self.session.delete(row)
        self.session.flush()
        return [r for r in rows if r not in superseded], superseded

    @staticmethod
    def _settlement_basis(rows: list[PaymentPeriodModel]) -> PaymentPeriodModel | None:
        remaining = [r for r in rows if not r.is_settlement]
        return remaining[-1] if remaining else None

    def _truncate_schedule(self, tenancy: TenancyModel, termination_date: date) -> None:
        """Drop untouched periods after an immediate termination; no settlement is appended."""
        kept, superseded = self._remove_superseded(tenancy.id, termination_date)
        self._write_ledger(kept, ripple_balances([self._to_period(r) for r in kept]))
        logger.info("schedule_truncated", extra={
            "termination_date": termination_date,
            "superseded_periods": len(superseded),
        })

    def _settle(
        self,
        tenancy: TenancyModel,
        notice: NoticeModel,
        effective: date,
        actor_id: UUID,
    ) -> SettlementInfo | None:
        """
        Remove superseded periods and append the final-settlement period.

        The basis is the last period that survives the removal, not the last
        period scheduled before it: a period already confirmed or submitted
        past the effective date stays the basis, and the settlement refunds
        the cover it paid for beyond that date.
        """
        kept, superseded = self._remove_superseded(tenancy.id, effective)

        basis = self._settlement_basis(kept)
        if basis is None:
            logger.warning("settlement_skipped_empty_schedule", extra={
                "tenancy_id": str(tenancy.id),
            })
            return None

        result = compute_final_settlement(
            last_due_date=basis.due_date,
            effective_date=effective,
            monthly_rent=tenancy.monthly_rent,
            cycle_days=tenancy.cycle_days,
        )
        number = max(r.payment_number for r in kept) + 1
        period = ScheduledPeriod(
            payment_number=number,
            due_date=settlement_due_date(effective, max(r.due_date for r in kept)),
            rent_due=result.amount,
        )
        row = self._new_period_row(
            tenancy.id,
            period,
            actor_id,
            settlement_kind=result.kind.value,
            settlement_amount=result.signed_amount,
            notes=result.note,
        )
        self.session.add(row)
        self.session.flush()

        rows = kept + [row]
        self._write_ledger(rows, ripple_balances([self._to_period(r) for r in rows]))

        notice.settlement_kind = result.kind.value
        notice.settlement_amount = result.signed_amount
        logger.info("final_settlement_appended", extra={
            "payment_number": number,
            "kind": result.kind.value,
            "signed_amount": str(result.signed_amount),
            "superseded_periods": len(superseded),
        })
        return _settlement_info(result, number)

    # =========================================================================
    # Breach flow
    # =========================================================================

    def issue_breach_notice(
        self,
        tenancy_id: UUID,
        landlord_id: UUID,
        *,
        breach_type: str,
        description: str | None = None,
        notes: str | None = None,
    ) -> NoticeInfo:
        """Open a remedy period for a breach and send the lodger a letter."""
        today = self.clock.today()
        terms = breach_terms(
            notice_date=today,
            breach_type=breach_type,
            description=description,
            notes=notes,
            remedy_period_days=self.policy.remedy_period_days,
            termination_period_days=self.policy.termination_period_days,
        )
        with self._operation("breach_issue", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            assert_can_issue_notice(tenancy.id, tenancy.status, "issue a breach notice on")
            notice = NoticeModel(
                tenancy_id=tenancy.id,
                notice_type=NoticeType.BREACH.value,
                given_by_id=landlord_id,
                given_to_id=tenancy.lodger_id,
                notice_date=today,
                effective_date=terms.remedy_deadline,
                reason=terms.reason,
                notes=notes,
                status=NoticeStatus.ACTIVE.value,
                breach_type=breach_type,
                breach_stage=BreachStage.REMEDY_PERIOD.value,
                remedy_deadline=terms.remedy_deadline,
                created_by_id=landlord_id,
            )
            self.session.add(notice)
            self.session.flush()
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.BREACH_NOTICE,
                "Breach of Agreement Notice",
                f"You have received a breach notice. You have "
                f"{self.policy.remedy_period_days} days, until "
                f"{format_uk_date(terms.remedy_deadline)}, to remedy the breach.",
                tenancy_id=tenancy.id,
            )
            logger.info("breach_notice_issued", extra={
                "notice_id": str(notice.id),
                "breach_type": breach_type,
                "remedy_deadline": terms.remedy_deadline,
            })

        self._store_document_path(
            notice,
            "letter_path",
            DocumentKind.BREACH_NOTICE,
            {"tenancy": tenancy.to_dto(), "notice": notice.to_dto()},
        )
        return notice.to_dto()

    def mark_remedied(self, notice_id: UUID, landlord_id: UUID, notes: str | None = None) -> NoticeInfo:
        today = self.clock.today()
        with self._operation("breach_remedy", notice_id=notice_id, actor_id=landlord_id):
            notice = self._load_notice(notice_id)
            tenancy = self._load_tenancy(notice.tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            assert_in_remedy_period(notice.id, notice.notice_type, notice.breach_stage, "mark remedied")

            notice.breach_stage = BreachStage.REMEDIED.value
            notice.status = NoticeStatus.COMPLETED.value
            notice.append_reason(remedied_annotation(today, notes))
            notice.updated_by_id = landlord_id
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.BREACH_REMEDIED,
                "Breach Remedied",
                f"Your landlord has marked the breach notice of "
                f"{format_uk_date(notice.notice_date)} as remedied.",
                tenancy_id=tenancy.id,
            )
            logger.info("breach_remedied", extra={"notice_id": str(notice.id)})
        return notice.to_dto()

    def escalate_breach(self, notice_id: UUID, landlord_id: UUID, notes: str | None = None) -> NoticeOutcome:
        """
        Turn an unremedied breach into a termination notice.

        Legal only from the remedy period and once the remedy deadline has
        been reached.  The tenancy moves to ``notice_given`` and the
        schedule is settled against the termination deadline.
        """
        today = self.clock.today()
        with self._operation("breach_escalate", notice_id=notice_id, actor_id=landlord_id):
            notice = self._load_notice(notice_id)
            tenancy = self._load_tenancy(notice.tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            assert_can_escalate(
                notice.id, notice.notice_type, notice.breach_stage, notice.remedy_deadline, today
            )
            if tenancy.status == TenancyStatus.TERMINATED.value:
                raise TenancyStateError(tenancy.id, tenancy.status, "escalate a breach on")

            deadline = termination_deadline(today, self.policy.termination_period_days)
            notice.breach_stage = BreachStage.TERMINATION_PERIOD.value
            notice.termination_deadline = deadline
            notice.effective_date = deadline
            notice.append_reason(
                escalation_annotation(today, deadline, self.policy.remedy_period_days, notes)
            )
            notice.updated_by_id = landlord_id
            tenancy.status = TenancyStatus.NOTICE_GIVEN.value
            tenancy.termination_date = deadline
            tenancy.updated_by_id = landlord_id
            self.session.flush()

            settlement = self._settle(tenancy, notice, deadline, landlord_id)
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.TERMINATION_NOTICE,
                "Termination Notice",
                f"The breach was not remedied. Your tenancy at {tenancy.property_address} "
                f"will end on {format_uk_date(deadline)}.",
                tenancy_id=tenancy.id,
            )
            logger.info("breach_escalated", extra={
                "notice_id": str(notice.id),
                "termination_deadline": deadline,
            })
        return NoticeOutcome(notice=notice.to_dto(), settlement=settlement)

    # =========================================================================
    # Extension flow
    # =========================================================================

    def _pending_offer_id(self, tenancy_id: UUID) -> UUID | None:
        return self.session.execute(
            select(NoticeModel.id).where(
                NoticeModel.tenancy_id == tenancy_id,
                NoticeModel.notice_type == NoticeType.EXTENSION_OFFER.value,
                NoticeModel.extension_status == ExtensionStatus.PENDING.value,
            ).limit(1)
        ).scalar_one_or_none()

    def offer_extension(
        self,
        tenancy_id: UUID,
        landlord_id: UUID,
        *,
        months: Any,
        proposed_rent: Any = None,
        notes: str | None = None,
    ) -> NoticeInfo:
        """Offer to extend the term; rent increases above the cap are rejected."""
        today = self.clock.today()
        new_rent = None if proposed_rent is None else to_money(
            proposed_rent, "proposed_rent", allow_zero=False
        )
        with self._operation("extension_offer", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            if tenancy.status_enum not in EXTENSION_OFFERABLE_STATUSES:
                raise TenancyStateError(tenancy.id, tenancy.status, "offer an extension on")
            assert_no_pending_offer(tenancy.id, self._pending_offer_id(tenancy.id))
            terms = extension_terms(
                end_date=tenancy.end_date,
                start_date=tenancy.start_date,
                initial_term_months=tenancy.initial_term_months,
                months=months,
                current_rent=tenancy.monthly_rent,
                proposed_rent=new_rent,
                max_increase=self.policy.max_annual_rent_increase,
                notes=notes,
            )
            notice = NoticeModel(
                tenancy_id=tenancy.id,
                notice_type=NoticeType.EXTENSION_OFFER.value,
                given_by_id=landlord_id,
                given_to_id=tenancy.lodger_id,
                notice_date=today,
                effective_date=terms.new_end_date,
                reason=terms.reason,
                notes=notes,
                status=NoticeStatus.ACTIVE.value,
                extension_months=months,
                extension_status=ExtensionStatus.PENDING.value,
                current_rent=terms.current_rent,
                proposed_rent=terms.proposed_rent,
                created_by_id=landlord_id,
            )
            self.session.add(notice)
            self.session.flush()
            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.EXTENSION_OFFER,
                "Tenancy Extension Offer",
                f"Your landlord has offered to extend your tenancy by {months} months "
                f"to {format_uk_date(terms.new_end_date)} at "
                f"{format_gbp(terms.proposed_rent)} per period.",
                tenancy_id=tenancy.id,
            )
            logger.info("extension_offered", extra={
                "notice_id": str(notice.id),
                "months": months,
                "new_end_date": terms.new_end_date,
                "proposed_rent": str(terms.proposed_rent),
            })

        self._store_document_path(
            notice,
            "letter_path",
            DocumentKind.EXTENSION_OFFER,
            {"tenancy": tenancy.to_dto(), "notice": notice.to_dto()},
        )
        return notice.to_dto()

    def respond_to_extension(
        self,
        notice_id: UUID,
        lodger_id: UUID,
        response: Any,
        notes: str | None = None,
    ) -> NoticeInfo:
        decision = parse_extension_response(response)
        today = self.clock.today()
        with self._operation("extension_respond", notice_id=notice_id, actor_id=lodger_id):
            notice = self._load_notice(notice_id)
            tenancy = self._load_tenancy(notice.tenancy_id, lock=True)
            assert_can_respond(
                notice.id,
                notice.notice_type,
                notice.extension_status,
                notice.status,
                notice.given_to_id,
                lodger_id,
            )
            if decision is ExtensionStatus.ACCEPTED:
                if tenancy.status_enum not in EXTENSION_OFFERABLE_STATUSES:
                    raise TenancyStateError(tenancy.id, tenancy.status, "accept an extension on")
                tenancy.end_date = notice.effective_date
                tenancy.status = TenancyStatus.EXTENDED.value
                tenancy.updated_by_id = lodger_id

            notice.extension_status = decision.value
            notice.status = NoticeStatus.COMPLETED.value
            notice.responded_at = self.clock.now()
            notice.append_reason(response_annotation(decision, today, notes))
            notice.updated_by_id = lodger_id

            accepted = decision is ExtensionStatus.ACCEPTED
            self.dispatcher.notify(
                tenancy.landlord_id,
                NotificationKind.EXTENSION_ACCEPTED if accepted else NotificationKind.EXTENSION_REJECTED,
                "Extension Accepted" if accepted else "Extension Declined",
                f"Your lodger has {'accepted' if accepted else 'declined'} the offer to "
                f"extend the tenancy at {tenancy.property_address}.",
                tenancy_id=tenancy.id,
            )
            logger.info("extension_responded", extra={
                "notice_id": str(notice.id),
                "response": decision.value,
            })
        return notice.to_dto()

    def list_notices(self, tenancy_id: UUID) -> list[NoticeInfo]:
        self._load_tenancy(tenancy_id)
        return self.selector.notices(tenancy_id)
