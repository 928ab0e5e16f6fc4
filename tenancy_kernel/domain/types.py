"""Enumerations shared by the kernel, engines and services.

Stored as their string values (``String(20)`` columns) so rows stay
readable from plain SQL.
"""

from enum import Enum


class PaymentType(str, Enum):
    """Due-date policy for a payment schedule."""

    CYCLE = "cycle"          # fixed N-day interval
    CALENDAR = "calendar"    # fixed day of month


class PaymentFrequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    FOUR_WEEKLY = "4-weekly"


class TenancyStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    NOTICE_GIVEN = "notice_given"
    TERMINATED = "terminated"
    EXTENDED = "extended"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"
    WAIVED = "waived"


class NoticeType(str, Enum):
    TERMINATION = "termination"
    BREACH = "breach"
    EXTENSION_OFFER = "extension_offer"
    EARLY_TERMINATION = "early_termination"


class NoticeStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BreachStage(str, Enum):
    REMEDY_PERIOD = "remedy_period"
    TERMINATION_PERIOD = "termination_period"
    REMEDIED = "remedied"


class ExtensionStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class DeductedFrom(str, Enum):
    DEPOSIT = "deposit"
    ADVANCE_RENT = "advance_rent"
    BOTH = "both"


class SettlementKind(str, Enum):
    """Direction of a final settlement: lodger pays, or lodger is refunded."""

    CHARGE = "charge"
    REFUND = "refund"


class NotificationKind(str, Enum):
    BREACH_NOTICE = "breach_notice"
    BREACH_REMEDIED = "breach_remedied"
    TERMINATION_NOTICE = "termination_notice"
    NOTICE_GIVEN = "notice_given"
    EXTENSION_OFFER = "extension_offer"
    EXTENSION_ACCEPTED = "extension_accepted"
    EXTENSION_REJECTED = "extension_rejected"
    DEDUCTION_MADE = "deduction_made"
    PAYMENT_SUBMITTED = "payment_submitted"
    PAYMENT_CONFIRMED = "payment_confirmed"
    PAYMENT_REMINDER = "payment_reminder"
    TENANCY_EXPIRING = "tenancy_expiring"
    TENANCY_CANCELLED = "tenancy_cancelled"
    AGREEMENT_APPROVED = "agreement_approved"


class DocumentKind(str, Enum):
    TENANCY_AGREEMENT = "tenancy_agreement"
    BREACH_NOTICE = "breach_notice"
    EXTENSION_OFFER = "extension_offer"
    DEDUCTION_STATEMENT = "deduction_statement"
