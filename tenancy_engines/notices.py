"""
Module: tenancy_engines.notices
Responsibility:
    The notice and termination state machine: classifies notices, derives
    their dates and reason text, and guards every transition of the
    breach (remedy -> escalate) and extension (offer -> respond) flows.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Guards raise the kernel's
    typed PreconditionError subclasses; the orchestrator decides nothing
    about legality on its own.

State machine:
    notice status      draft -> active -> {completed, cancelled}
    breach sub-stage   remedy_period -> remedied            (mark remedied)
                       remedy_period -> termination_period  (escalate, once
                                                             today >= remedy deadline)
    extension          pending -> {accepted, rejected}      (recipient only)

Invariants enforced:
    - Ordinary notice: effective_date = notice_date + notice_period_days.
    - Remedy deadline = notice_date + remedy period; termination deadline =
      escalation date + termination period.
    - An extension offer above the rent cap is rejected with the computed
      maximum rent, never silently clipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from tenancy_kernel.domain.money import round_money
from tenancy_kernel.domain.types import (
    BreachStage,
    ExtensionStatus,
    NoticeStatus,
    NoticeType,
    TenancyStatus,
)
from tenancy_kernel.exceptions import (
    ExtensionOfferPendingError,
    InvalidExtensionResponseError,
    InvalidExtensionTermError,
    InvalidNoticePeriodError,
    NoticeStageError,
    NotNoticeRecipientError,
    PrematureEscalationError,
    RentCapExceededError,
    TenancyStateError,
)
from tenancy_engines.due_dates import add_months

BREACH_REASON = "breach"

REASON_LABELS: dict[str, str] = {
    "breach": "Breach of Agreement",
    "end_term": "End of Agreed Term",
    "landlord_needs": "Landlord Needs",
    "other": "Other",
}

SUB_REASON_LABELS: dict[str, str] = {
    "violence": "Violence or threats",
    "criminal_activity": "Criminal activity on premises",
    "non_payment": "Non-payment of rent",
    "damage_to_property": "Damage to property",
    "nuisance": "Causing nuisance to others",
    "unauthorized_occupants": "Unauthorized occupants",
    "other_breach": "Other breach of terms",
    "initial_term_ending": "Initial term ending",
    "no_renewal": "Not renewing agreement",
    "property_sale": "Selling the property",
    "personal_use": "Need property for personal use",
    "renovation": "Major renovation required",
    "other_reason": "Other",
}

BREACH_TYPE_LABELS: dict[str, str] = {
    "non_payment": "Non-payment of rent",
    "damage_to_property": "Damage to property",
    "nuisance": "Causing nuisance to others",
    "unauthorized_occupants": "Unauthorized occupants",
    "smoking": "Smoking in the property",
    "pets": "Unauthorized pets",
    "other": "Other breach of terms",
}

NOTICE_ISSUABLE_STATUSES = frozenset(
    {TenancyStatus.ACTIVE, TenancyStatus.EXTENDED, TenancyStatus.NOTICE_GIVEN}
)
EXTENSION_OFFERABLE_STATUSES = frozenset({TenancyStatus.ACTIVE, TenancyStatus.EXTENDED})


def format_uk_date(day: date) -> str:
    return day.strftime("%d/%m/%Y")


# =============================================================================
# Ordinary / immediate notice
# =============================================================================


def classify_notice(reason: str, notice_period_days: int) -> NoticeType:
    """Breach reason -> breach; zero-day notice -> early termination."""
    if reason == BREACH_REASON:
        return NoticeType.BREACH
    if notice_period_days == 0:
        return NoticeType.EARLY_TERMINATION
    return NoticeType.TERMINATION


def validate_notice_period(notice_period_days: Any) -> int:
    if (
        isinstance(notice_period_days, bool)
        or not isinstance(notice_period_days, int)
        or notice_period_days < 0
    ):
        raise InvalidNoticePeriodError(notice_period_days)
    return notice_period_days


def notice_effective_date(notice_date: date, notice_period_days: int) -> date:
    return notice_date + timedelta(days=validate_notice_period(notice_period_days))


def notice_reason_text(
    reason: str,
    sub_reason: str | None,
    notice_period_days: int,
    notes: str | None = None,
) -> str:
    text = REASON_LABELS.get(reason, reason)
    if sub_reason:
        text += f": {SUB_REASON_LABELS.get(sub_reason, sub_reason)}"
    if notice_period_days == 0:
        text += " (IMMEDIATE TERMINATION)"
    if notes:
        text += f"\n\nAdditional notes: {notes}"
    return text


def assert_can_issue_notice(tenancy_id: UUID, status: TenancyStatus, operation: str) -> None:
    if TenancyStatus(status) not in NOTICE_ISSUABLE_STATUSES:
        raise TenancyStateError(tenancy_id, TenancyStatus(status).value, operation)


# =============================================================================
# Breach flow
# =============================================================================


@dataclass(frozen=True)
class BreachTerms:
    notice_date: date
    remedy_deadline: date
    reason: str


def breach_terms(
    *,
    notice_date: date,
    breach_type: str,
    description: str | None,
    notes: str | None,
    remedy_period_days: int,
    termination_period_days: int,
) -> BreachTerms:
    deadline = notice_date + timedelta(days=remedy_period_days)
    text = f"Breach of Agreement: {BREACH_TYPE_LABELS.get(breach_type, breach_type)}"
    if description:
        text += f"\n\nDetails: {description}"
    if notes:
        text += f"\n\nAdditional notes: {notes}"
    text += (
        f"\n\nYou have {remedy_period_days} days from {format_uk_date(notice_date)} "
        f"to remedy this breach. If not remedied, a further "
        f"{termination_period_days}-day termination notice will be issued."
    )
    return BreachTerms(notice_date=notice_date, remedy_deadline=deadline, reason=text)


def assert_in_remedy_period(
    notice_id: UUID,
    notice_type: str,
    breach_stage: str | None,
    operation: str,
) -> None:
    if notice_type != NoticeType.BREACH.value:
        raise NoticeStageError(notice_id, notice_type, NoticeType.BREACH.value, operation)
    if breach_stage != BreachStage.REMEDY_PERIOD.value:
        raise NoticeStageError(
            notice_id, breach_stage or "none", BreachStage.REMEDY_PERIOD.value, operation
        )


def assert_can_escalate(
    notice_id: UUID,
    notice_type: str,
    breach_stage: str | None,
    remedy_deadline: date | None,
    today: date,
) -> None:
    assert_in_remedy_period(notice_id, notice_type, breach_stage, "escalate")
    if remedy_deadline is None or today < remedy_deadline:
        raise PrematureEscalationError(notice_id, remedy_deadline, today)


def remedied_annotation(today: date, notes: str | None) -> str:
    text = f"[REMEDIED on {format_uk_date(today)}]"
    if notes:
        text += f"\nLandlord notes: {notes}"
    return text


def termination_deadline(today: date, termination_period_days: int) -> date:
    return today + timedelta(days=termination_period_days)


def escalation_annotation(
    today: date,
    deadline: date,
    remedy_period_days: int,
    notes: str | None,
) -> str:
    text = (
        f"[ESCALATED on {format_uk_date(today)}]\nBreach was not remedied within "
        f"{remedy_period_days} days. Termination notice issued."
    )
    if notes:
        text += f"\nLandlord notes: {notes}"
    text += f"\n\nYou must vacate the property by {format_uk_date(deadline)}."
    return text


# =============================================================================
# Extension flow
# =============================================================================


@dataclass(frozen=True)
class ExtensionTerms:
    current_end_date: date
    new_end_date: date
    current_rent: Decimal
    proposed_rent: Decimal
    reason: str


def current_end_date(end_date: date | None, start_date: date, initial_term_months: int) -> date:
    """Stored end date, else start date plus the initial term."""
    return end_date or add_months(start_date, initial_term_months)


def max_allowed_rent(current_rent: Decimal, max_increase: Decimal) -> Decimal:
    return round_money(current_rent * (1 + max_increase))


def check_rent_cap(
    current_rent: Decimal,
    proposed_rent: Decimal,
    max_increase: Decimal,
) -> None:
    """Reject a proposed rent above ``current_rent * (1 + max_increase)``."""
    if proposed_rent <= current_rent or current_rent <= 0:
        return
    increase = (proposed_rent - current_rent) / current_rent
    if increase > max_increase:
        raise RentCapExceededError(
            current_rent=round_money(current_rent),
            proposed_rent=round_money(proposed_rent),
            max_allowed_rent=max_allowed_rent(current_rent, max_increase),
            increase_percent=round_money(increase * 100),
            max_increase_percent=round_money(max_increase * 100).normalize(),
        )


def extension_terms(
    *,
    end_date: date | None,
    start_date: date,
    initial_term_months: int,
    months: Any,
    current_rent: Decimal,
    proposed_rent: Decimal | None,
    max_increase: Decimal,
    notes: str | None = None,
) -> ExtensionTerms:
    if isinstance(months, bool) or not isinstance(months, int) or months < 1:
        raise InvalidExtensionTermError(months)
    rent = current_rent if proposed_rent is None else proposed_rent
    check_rent_cap(current_rent, rent, max_increase)

    current_end = current_end_date(end_date, start_date, initial_term_months)
    new_end = add_months(current_end, months)
    text = (
        f"Extension Offer: {months} months\n"
        f"Current end date: {format_uk_date(current_end)}\n"
        f"Proposed new end date: {format_uk_date(new_end)}\n"
        f"Current rent: £{round_money(current_rent):.2f}\n"
        f"New rent: £{round_money(rent):.2f}\n"
    )
    if notes:
        text += f"\nNotes: {notes}"
    return ExtensionTerms(
        current_end_date=current_end,
        new_end_date=new_end,
        current_rent=round_money(current_rent),
        proposed_rent=round_money(rent),
        reason=text,
    )


def assert_no_pending_offer(tenancy_id: UUID, pending_notice_id: UUID | None) -> None:
    if pending_notice_id is not None:
        raise ExtensionOfferPendingError(tenancy_id, pending_notice_id)


def parse_extension_response(response: Any) -> ExtensionStatus:
    if isinstance(response, ExtensionStatus) and response is not ExtensionStatus.PENDING:
        return response
    if response in (ExtensionStatus.ACCEPTED.value, ExtensionStatus.REJECTED.value):
        return ExtensionStatus(response)
    raise InvalidExtensionResponseError(response)


def assert_can_respond(
    notice_id: UUID,
    notice_type: str,
    extension_status: str | None,
    notice_status: str,
    given_to_id: UUID,
    actor_id: UUID,
) -> None:
    if notice_type != NoticeType.EXTENSION_OFFER.value:
        raise NoticeStageError(
            notice_id, notice_type, NoticeType.EXTENSION_OFFER.value, "respond to"
        )
    if actor_id != given_to_id:
        raise NotNoticeRecipientError(notice_id, actor_id)
    if (
        extension_status != ExtensionStatus.PENDING.value
        or notice_status != NoticeStatus.ACTIVE.value
    ):
        raise NoticeStageError(
            notice_id, extension_status or notice_status,
            ExtensionStatus.PENDING.value, "respond to",
        )


def response_annotation(response: ExtensionStatus, today: date, notes: str | None) -> str:
    text = f"[{response.value.upper()} on {format_uk_date(today)}]"
    if notes:
        text += f"\nLodger notes: {notes}"
    return text
