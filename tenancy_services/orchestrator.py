"""
TenancyOrchestrator -- the single entry point for the tenancy lifecycle.

Contract:
    Composes the per-concern services over one session, one clock, one
    policy and one ``PostCommitDispatcher``.  The HTTP layer (auth and role
    checks) calls these methods; every state-changing method is a single
    transaction owned by the service it delegates to.

Non-goals:
    - Does NOT manage the session lifecycle; the caller opens and closes it.
    - Does NOT start the daily scheduler; use ``create_scheduler()``.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from tenancy_config import TenancyPolicy, get_active_policy
from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.domain.dtos import (
    DeductionInfo,
    NoticeInfo,
    NoticeOutcome,
    NoticePreview,
    PaymentPeriodInfo,
    PaymentSummary,
    PropertyAddress,
    TenancyInfo,
)
from tenancy_kernel.logging_config import get_logger
from tenancy_engines.deductions import AvailableFunds
from tenancy_engines.tax import TaxYearSummary
from tenancy_services.collaborators import DocumentRenderer, Notifier
from tenancy_services.deduction_service import DeductionService
from tenancy_services.dispatch import PostCommitDispatcher
from tenancy_services.expiry_service import ExpiryService, SweepResult
from tenancy_services.notice_service import NoticeService
from tenancy_services.payment_service import PaymentService
from tenancy_services.scheduler import DailySweepScheduler
from tenancy_services.tenancy_service import TenancyService

logger = get_logger("services.orchestrator")


class TenancyOrchestrator:

    def __init__(
        self,
        session: Session,
        notifier: Notifier,
        renderer: DocumentRenderer | None = None,
        clock: Clock | None = None,
        policy: TenancyPolicy | None = None,
    ) -> None:
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy or get_active_policy()
        self.dispatcher = PostCommitDispatcher(notifier, renderer)

        deps = dict(dispatcher=self.dispatcher, clock=self._clock, policy=self._policy)
        self.tenancies = TenancyService(session, **deps)
        self.payments = PaymentService(session, **deps)
        self.notices = NoticeService(session, **deps)
        self.deductions = DeductionService(session, **deps)
        self.expiry = ExpiryService(session, **deps)

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def policy(self) -> TenancyPolicy:
        return self._policy

    # -------------------------------------------------------------------------
    # Tenancy and schedule
    # -------------------------------------------------------------------------

    def create_tenancy(self, **kwargs: Any) -> TenancyInfo:
        return self.tenancies.create_tenancy(**kwargs)

    def sign_agreement(self, tenancy_id: UUID, lodger_id: UUID, signature: str) -> TenancyInfo:
        return self.tenancies.sign_agreement(tenancy_id, lodger_id, signature)

    def approve_agreement(self, tenancy_id: UUID, landlord_id: UUID, signature: str) -> TenancyInfo:
        return self.tenancies.approve_agreement(tenancy_id, landlord_id, signature)

    def cancel_tenancy(self, tenancy_id: UUID, landlord_id: UUID) -> None:
        self.tenancies.cancel_tenancy(tenancy_id, landlord_id)

    def get_tenancy(self, tenancy_id: UUID) -> TenancyInfo | None:
        return self.tenancies.selector.get_tenancy(tenancy_id)

    def generate_schedule(self, tenancy_id: UUID, **kwargs: Any) -> list[PaymentPeriodInfo]:
        return self.tenancies.generate_schedule(tenancy_id, **kwargs)

    def extend_schedule_if_needed(self, tenancy_id: UUID) -> list[PaymentPeriodInfo]:
        return self.tenancies.extend_schedule_if_needed(tenancy_id)

    def get_schedule(self, tenancy_id: UUID) -> list[PaymentPeriodInfo]:
        return self.tenancies.get_schedule(tenancy_id)

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    def record_submission(self, payment_id: UUID, lodger_id: UUID, amount: Any, **kwargs: Any) -> PaymentPeriodInfo:
        return self.payments.record_submission(payment_id, lodger_id, amount, **kwargs)

    def confirm_payment(self, payment_id: UUID, landlord_id: UUID, amount: Any, **kwargs: Any) -> PaymentPeriodInfo:
        return self.payments.confirm_payment(payment_id, landlord_id, amount, **kwargs)

    def waive_payment(self, payment_id: UUID, landlord_id: UUID, notes: str | None = None) -> PaymentPeriodInfo:
        return self.payments.waive_payment(payment_id, landlord_id, notes)

    def send_payment_reminder(self, payment_id: UUID, landlord_id: UUID) -> None:
        self.payments.send_payment_reminder(payment_id, landlord_id)

    def payment_summary(self, tenancy_id: UUID) -> PaymentSummary:
        return self.payments.payment_summary(tenancy_id)

    def tax_year_summary(self, landlord_id: UUID, start_year: int | None = None) -> TaxYearSummary:
        return self.payments.tax_year_summary(landlord_id, start_year)

    # -------------------------------------------------------------------------
    # Notices
    # -------------------------------------------------------------------------

    def give_notice(self, tenancy_id: UUID, landlord_id: UUID, **kwargs: Any) -> NoticeOutcome:
        return self.notices.give_notice(tenancy_id, landlord_id, **kwargs)

    def preview_notice(self, tenancy_id: UUID, notice_period_days: Any) -> NoticePreview:
        return self.notices.preview_notice(tenancy_id, notice_period_days)

    def issue_breach_notice(self, tenancy_id: UUID, landlord_id: UUID, **kwargs: Any) -> NoticeInfo:
        return self.notices.issue_breach_notice(tenancy_id, landlord_id, **kwargs)

    def mark_remedied(self, notice_id: UUID, landlord_id: UUID, notes: str | None = None) -> NoticeInfo:
        return self.notices.mark_remedied(notice_id, landlord_id, notes)

    def escalate_breach(self, notice_id: UUID, landlord_id: UUID, notes: str | None = None) -> NoticeOutcome:
        return self.notices.escalate_breach(notice_id, landlord_id, notes)

    def offer_extension(self, tenancy_id: UUID, landlord_id: UUID, **kwargs: Any) -> NoticeInfo:
        return self.notices.offer_extension(tenancy_id, landlord_id, **kwargs)

    def respond_to_extension(
        self, notice_id: UUID, lodger_id: UUID, response: Any, notes: str | None = None,
    ) -> NoticeInfo:
        return self.notices.respond_to_extension(notice_id, lodger_id, response, notes)

    def list_notices(self, tenancy_id: UUID) -> list[NoticeInfo]:
        return self.notices.list_notices(tenancy_id)

    # -------------------------------------------------------------------------
    # Deductions
    # -------------------------------------------------------------------------

    def available_funds(self, tenancy_id: UUID) -> AvailableFunds:
        return self.deductions.available_funds(tenancy_id)

    def create_deduction(self, tenancy_id: UUID, landlord_id: UUID, **kwargs: Any) -> DeductionInfo:
        return self.deductions.create_deduction(tenancy_id, landlord_id, **kwargs)

    def list_deductions(self, tenancy_id: UUID) -> list[DeductionInfo]:
        return self.deductions.list_deductions(tenancy_id)

    def generate_deduction_statement(self, deduction_id: UUID, landlord_id: UUID) -> str | None:
        return self.deductions.generate_statement(deduction_id, landlord_id)

    # -------------------------------------------------------------------------
    # Daily sweep
    # -------------------------------------------------------------------------

    def run_daily_sweep(self) -> SweepResult:
        return self.expiry.run_daily_sweep()

    def create_scheduler(
        self,
        session_factory: Callable[[], Session],
        tick_interval_seconds: int = 60,
    ) -> DailySweepScheduler:
        """Scheduler whose sweeps run on their own sessions, sharing this notifier."""
        notifier = self.dispatcher.notifier
        renderer = self.dispatcher.renderer

        def service_factory(session: Session) -> ExpiryService:
            return ExpiryService(
                session,
                PostCommitDispatcher(notifier, renderer),
                clock=self._clock,
                policy=self._policy,
            )

        return DailySweepScheduler(
            session_factory,
            service_factory,
            clock=self._clock,
            policy=self._policy,
            tick_interval_seconds=tick_interval_seconds,
        )
