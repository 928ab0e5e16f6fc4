"""
Read-side value objects returned to callers.

Frozen dataclasses with ZERO I/O, built from ORM rows by ``to_dto`` and by
the selectors.  Monetary fields are ``Decimal`` rounded to pence.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from tenancy_kernel.domain.types import (
    BreachStage,
    DeductedFrom,
    ExtensionStatus,
    NoticeStatus,
    NoticeType,
    PaymentFrequency,
    PaymentStatus,
    PaymentType,
    SettlementKind,
    TenancyStatus,
)


@dataclass(frozen=True)
class PropertyAddress:
    house_number: str = ""
    street_name: str = ""
    city: str = ""
    county: str = ""
    postcode: str = ""

    def formatted(self) -> str:
        street = " ".join(p for p in (self.house_number, self.street_name) if p)
        return ", ".join(p for p in (street, self.city, self.county, self.postcode) if p)


@dataclass(frozen=True)
class TenancyInfo:
    id: UUID
    landlord_id: UUID
    lodger_id: UUID
    property_address: str
    room_description: str | None
    start_date: date
    initial_term_months: int
    monthly_rent: Decimal
    initial_payment: Decimal
    deposit_applicable: bool
    deposit_amount: Decimal
    payment_frequency: PaymentFrequency
    payment_type: PaymentType
    cycle_days: int
    payment_day_of_month: int | None
    status: TenancyStatus
    end_date: date | None = None
    termination_date: date | None = None
    lodger_signed: bool = False
    landlord_signed: bool = False
    agreement_document_path: str | None = None


@dataclass(frozen=True)
class PaymentPeriodInfo:
    id: UUID
    tenancy_id: UUID
    payment_number: int
    due_date: date
    rent_due: Decimal
    rent_paid: Decimal
    previous_balance: Decimal
    balance: Decimal
    status: PaymentStatus
    submitted_amount: Decimal | None = None
    payment_date: date | None = None
    payment_method: str | None = None
    payment_reference: str | None = None
    waived_amount: Decimal | None = None
    settlement_kind: SettlementKind | None = None
    settlement_amount: Decimal | None = None
    notes: str | None = None


@dataclass(frozen=True)
class NoticeInfo:
    id: UUID
    tenancy_id: UUID
    notice_type: NoticeType
    given_by_id: UUID
    given_to_id: UUID
    notice_date: date
    effective_date: date
    reason: str
    status: NoticeStatus
    sub_reason: str | None = None
    notes: str | None = None
    notice_period_days: int | None = None
    breach_type: str | None = None
    breach_stage: BreachStage | None = None
    remedy_deadline: date | None = None
    termination_deadline: date | None = None
    extension_months: int | None = None
    extension_status: ExtensionStatus | None = None
    current_rent: Decimal | None = None
    proposed_rent: Decimal | None = None
    letter_path: str | None = None
    settlement_kind: SettlementKind | None = None
    settlement_amount: Decimal | None = None


@dataclass(frozen=True)
class DeductionInfo:
    id: UUID
    tenancy_id: UUID
    deduction_type: str
    description: str
    amount: Decimal
    amount_from_deposit: Decimal
    amount_from_advance: Decimal
    deducted_from: DeductedFrom
    evidence_paths: tuple[str, ...] = ()
    notes: str | None = None
    statement_path: str | None = None


@dataclass(frozen=True)
class SettlementInfo:
    """Final settlement appended to a schedule when a tenancy ends."""

    kind: SettlementKind
    amount: Decimal
    signed_amount: Decimal
    last_covered_date: date
    effective_date: date
    days: int
    pro_rata_amount: Decimal
    advance_credit: Decimal
    note: str
    payment_number: int | None = None


@dataclass(frozen=True)
class NoticeOutcome:
    """Result of giveNotice / escalateBreach."""

    notice: NoticeInfo
    settlement: SettlementInfo | None = None


@dataclass(frozen=True)
class PaymentSummary:
    tenancy_id: UUID
    total_due: Decimal
    total_paid: Decimal
    outstanding: Decimal
    current_balance: Decimal
    status_counts: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class NoticePreview:
    """What giving a notice today would produce, without writing anything."""

    tenancy_id: UUID
    notice_date: date
    notice_period_days: int
    effective_date: date
    aligned_end_date: date
    settlement: SettlementInfo | None = None
