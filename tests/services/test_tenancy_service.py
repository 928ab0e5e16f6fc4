"""
Tests for TenancyService: creation, signing, cancellation and the schedule.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from tenancy_kernel.domain.types import PaymentStatus, PaymentType, TenancyStatus
from tenancy_kernel.exceptions import (
    AgreementNotSignedError,
    InvalidAmountError,
    InvalidPaymentFrequencyError,
    PaymentDayOutOfRangeError,
    ScheduleExistsError,
    TenancyNotFoundError,
    TenancySignedError,
    TenancyStateError,
)
from tenancy_kernel.models import TenancyModel


class TestCreateTenancy:
    """A new tenancy is a draft with its initial schedule."""

    def test_creates_draft_with_schedule(self, orchestrator, create_tenancy):
        tenancy = create_tenancy()

        assert tenancy.status is TenancyStatus.DRAFT
        assert tenancy.cycle_days == 28
        assert tenancy.initial_payment == Decimal("2000.00")
        assert tenancy.deposit_amount == Decimal("500.00")
        assert tenancy.property_address == "12 Acacia Avenue, Leeds, LS1 4AB"

        schedule = orchestrator.get_schedule(tenancy.id)
        assert len(schedule) == 24
        assert schedule[0].due_date == date(2024, 1, 1)
        assert schedule[0].rent_due == Decimal("2000.00")
        assert schedule[0].balance == Decimal("-2000.00")
        assert schedule[1].due_date == date(2024, 1, 29)
        assert schedule[1].balance == Decimal("-3000.00")
        assert [p.payment_number for p in schedule] == list(range(1, 25))

    def test_frequency_defaults_to_four_weekly(self, create_tenancy):
        tenancy = create_tenancy(payment_frequency=None)

        assert tenancy.cycle_days == 28
        assert tenancy.payment_frequency.value == "4-weekly"

    def test_weekly_frequency(self, orchestrator, create_tenancy):
        tenancy = create_tenancy(payment_frequency="weekly")

        schedule = orchestrator.get_schedule(tenancy.id)
        assert tenancy.cycle_days == 7
        assert schedule[1].due_date == date(2024, 1, 8)

    def test_calendar_schedule(self, orchestrator, create_tenancy):
        tenancy = create_tenancy(
            start_date=date(2024, 1, 15),
            payment_type="calendar",
            payment_day_of_month=31,
        )

        schedule = orchestrator.get_schedule(tenancy.id)
        assert tenancy.payment_type is PaymentType.CALENDAR
        assert [p.due_date for p in schedule[:4]] == [
            date(2024, 1, 15),
            date(2024, 2, 29),
            date(2024, 3, 31),
            date(2024, 4, 30),
        ]

    def test_deposit_ignored_when_not_applicable(self, create_tenancy):
        tenancy = create_tenancy(deposit_applicable=False, deposit_amount=Decimal("500"))

        assert tenancy.deposit_amount == Decimal("0")

    def test_explicit_initial_payment(self, orchestrator, create_tenancy):
        tenancy = create_tenancy(initial_payment=Decimal("1500"))

        schedule = orchestrator.get_schedule(tenancy.id)
        assert tenancy.initial_payment == Decimal("1500.00")
        # The first period always carries the two-period advance.
        assert schedule[0].rent_due == Decimal("2000.00")

    def test_calendar_without_day_rejected(self, orchestrator, create_tenancy, landlord_id):
        with pytest.raises(PaymentDayOutOfRangeError):
            create_tenancy(payment_type="calendar", payment_day_of_month=None)

        assert orchestrator.tenancies.selector.tenancies_for_landlord(landlord_id) == []

    def test_unknown_frequency_rejected(self, create_tenancy):
        with pytest.raises(InvalidPaymentFrequencyError):
            create_tenancy(payment_frequency="fortnightly-ish")

    def test_zero_rent_rejected(self, create_tenancy):
        with pytest.raises(InvalidAmountError):
            create_tenancy(monthly_rent=Decimal("0"))

    def test_logs_creation(self, create_tenancy, captured_logs):
        tenancy = create_tenancy()

        records = [r for r in captured_logs() if r["message"] == "tenancy_created"]
        assert len(records) == 1
        assert records[0]["tenancy_id"] == str(tenancy.id)
        assert records[0]["periods"] == 24


class TestSigning:
    """Lodger signs, landlord approves: draft -> active."""

    def test_approve_requires_lodger_signature(self, orchestrator, create_tenancy, landlord_id):
        tenancy = create_tenancy()

        with pytest.raises(AgreementNotSignedError):
            orchestrator.approve_agreement(tenancy.id, landlord_id, "Landlord")

        assert orchestrator.get_tenancy(tenancy.id).status is TenancyStatus.DRAFT

    def test_only_the_lodger_can_sign(self, orchestrator, create_tenancy, landlord_id):
        tenancy = create_tenancy()

        with pytest.raises(TenancyNotFoundError):
            orchestrator.sign_agreement(tenancy.id, landlord_id, "Landlord")
        with pytest.raises(TenancyNotFoundError):
            orchestrator.sign_agreement(tenancy.id, uuid4(), "Stranger")

    def test_sign_then_approve(self, orchestrator, create_tenancy, landlord_id, lodger_id, notifier):
        tenancy = create_tenancy()

        signed = orchestrator.sign_agreement(tenancy.id, lodger_id, "Lodger")
        assert signed.lodger_signed is True
        assert signed.status is TenancyStatus.DRAFT

        approved = orchestrator.approve_agreement(tenancy.id, landlord_id, "Landlord")
        assert approved.status is TenancyStatus.ACTIVE
        assert approved.landlord_signed is True
        assert approved.agreement_document_path.startswith("/documents/tenancy_agreement-")

        sent = notifier.of_kind("agreement_approved")
        assert len(sent) == 1
        assert sent[0].user_id == lodger_id
        assert sent[0].title == "Tenancy Agreement Approved"

    def test_cannot_sign_twice_after_approval(self, orchestrator, active_tenancy, lodger_id):
        tenancy = active_tenancy()

        with pytest.raises(TenancyStateError):
            orchestrator.sign_agreement(tenancy.id, lodger_id, "Again")

    def test_render_failure_keeps_approval(
        self, session, notifier, deterministic_clock, policy, create_tenancy,
        landlord_id, lodger_id, captured_logs,
    ):
        from tenancy_services import TenancyOrchestrator

        class BrokenRenderer:
            def render(self, kind, data):
                raise OSError("disk full")

        tenancy = create_tenancy()
        broken = TenancyOrchestrator(
            session, notifier, renderer=BrokenRenderer(), clock=deterministic_clock, policy=policy,
        )
        broken.sign_agreement(tenancy.id, lodger_id, "Lodger")
        approved = broken.approve_agreement(tenancy.id, landlord_id, "Landlord")

        assert approved.status is TenancyStatus.ACTIVE
        assert approved.agreement_document_path is None
        assert len(notifier.of_kind("agreement_approved")) == 1
        assert any(r["message"] == "document_render_failed" for r in captured_logs())


class TestCancelTenancy:
    """An offer can be withdrawn until the lodger signs it."""

    def test_cancel_removes_tenancy_and_schedule(
        self, orchestrator, create_tenancy, landlord_id, lodger_id, notifier,
    ):
        tenancy = create_tenancy()

        orchestrator.cancel_tenancy(tenancy.id, landlord_id)

        assert orchestrator.get_tenancy(tenancy.id) is None
        assert orchestrator.tenancies.selector.period_count(tenancy.id) == 0
        sent = notifier.of_kind("tenancy_cancelled")
        assert len(sent) == 1
        assert sent[0].user_id == lodger_id
        assert sent[0].title == "Tenancy Offer Cancelled"

    def test_cannot_cancel_once_signed(self, orchestrator, create_tenancy, landlord_id, lodger_id):
        tenancy = create_tenancy()
        orchestrator.sign_agreement(tenancy.id, lodger_id, "Lodger")

        with pytest.raises(TenancySignedError):
            orchestrator.cancel_tenancy(tenancy.id, landlord_id)

        assert orchestrator.get_tenancy(tenancy.id) is not None
        assert orchestrator.tenancies.selector.period_count(tenancy.id) == 24

    def test_lodger_cannot_cancel(self, orchestrator, create_tenancy, lodger_id):
        tenancy = create_tenancy()

        with pytest.raises(TenancyNotFoundError):
            orchestrator.cancel_tenancy(tenancy.id, lodger_id)


class TestGenerateSchedule:
    """Explicit schedule generation for a tenancy with no periods."""

    @pytest.fixture
    def bare_tenancy(self, session, landlord_id, lodger_id):
        row = TenancyModel(
            landlord_id=landlord_id,
            lodger_id=lodger_id,
            property_address="3 Mill Lane, York",
            start_date=date(2024, 1, 15),
            initial_term_months=6,
            monthly_rent=Decimal("800.00"),
            initial_payment=Decimal("1600.00"),
            deposit_applicable=False,
            deposit_amount=Decimal("0"),
            payment_frequency="monthly",
            payment_type="cycle",
            cycle_days=30,
            status="active",
            created_by_id=landlord_id,
        )
        session.add(row)
        session.commit()
        return row

    def test_generates_calendar_schedule(self, orchestrator, bare_tenancy):
        schedule = orchestrator.generate_schedule(
            bare_tenancy.id,
            start_date=date(2024, 1, 15),
            monthly_rent=Decimal("800"),
            cycle_days=30,
            payment_type="calendar",
            payment_day_of_month=1,
            count=3,
        )

        assert [p.due_date for p in schedule] == [
            date(2024, 1, 15),
            date(2024, 2, 1),
            date(2024, 3, 1),
        ]
        assert schedule[0].rent_due == Decimal("1600.00")
        assert schedule[-1].balance == Decimal("-3200.00")

    def test_rejects_when_schedule_exists(self, orchestrator, create_tenancy):
        tenancy = create_tenancy()

        with pytest.raises(ScheduleExistsError):
            orchestrator.generate_schedule(
                tenancy.id,
                start_date=date(2024, 1, 1),
                monthly_rent=Decimal("1000"),
                cycle_days=28,
                payment_type="cycle",
            )

        assert len(orchestrator.get_schedule(tenancy.id)) == 24


class TestScheduleExtension:
    """The schedule is topped up to stay six months ahead of today."""

    def test_no_extension_while_horizon_covered(self, orchestrator, active_tenancy):
        tenancy = active_tenancy()

        assert orchestrator.extend_schedule_if_needed(tenancy.id) == []

    def test_no_extension_on_horizon_boundary(self, orchestrator, active_tenancy, deterministic_clock):
        tenancy = active_tenancy()
        # Last period is due 2025-10-06; six months from 2025-04-06 is the same day.
        deterministic_clock.set_date(date(2025, 4, 6))

        assert orchestrator.extend_schedule_if_needed(tenancy.id) == []

    def test_extends_when_horizon_passes_last_due_date(
        self, orchestrator, active_tenancy, deterministic_clock,
    ):
        tenancy = active_tenancy()
        deterministic_clock.set_date(date(2025, 4, 7))

        added = orchestrator.extend_schedule_if_needed(tenancy.id)

        assert [p.payment_number for p in added] == list(range(25, 38))
        assert added[0].due_date == date(2025, 11, 3)
        assert all(p.rent_due == Decimal("1000.00") for p in added)
        assert added[0].previous_balance == Decimal("-25000.00")
        assert added[-1].balance == Decimal("-38000.00")

    def test_extension_is_idempotent(self, orchestrator, active_tenancy, deterministic_clock):
        tenancy = active_tenancy()
        deterministic_clock.set_date(date(2025, 4, 7))

        orchestrator.extend_schedule_if_needed(tenancy.id)
        assert orchestrator.extend_schedule_if_needed(tenancy.id) == []
        assert len(orchestrator.get_schedule(tenancy.id)) == 37

    def test_get_schedule_extends_first(self, orchestrator, active_tenancy, deterministic_clock):
        tenancy = active_tenancy()
        deterministic_clock.set_date(date(2025, 6, 1))

        schedule = orchestrator.get_schedule(tenancy.id)

        assert len(schedule) == 37
        assert schedule[0].status is PaymentStatus.OVERDUE

    def test_terminated_tenancy_not_extended(
        self, orchestrator, active_tenancy, landlord_id, deterministic_clock,
    ):
        tenancy = active_tenancy()
        orchestrator.give_notice(tenancy.id, landlord_id, reason="other", notice_period_days=0)
        deterministic_clock.set_date(date(2025, 6, 1))

        assert orchestrator.extend_schedule_if_needed(tenancy.id) == []
        assert len(orchestrator.get_schedule(tenancy.id)) == 1

    def test_unknown_tenancy(self, orchestrator):
        with pytest.raises(TenancyNotFoundError):
            orchestrator.get_schedule(uuid4())
