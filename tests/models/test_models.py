"""
Tests for the ORM models and their storage-level constraints.

Covers:
- (tenancy_id, payment_number) uniqueness
- Cascade delete of a tenancy's rows
- Non-negative deduction components
- DTO conversion
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from tenancy_kernel.domain.dtos import PropertyAddress
from tenancy_kernel.domain.types import PaymentStatus, TenancyStatus
from tenancy_kernel.models import (
    DeductionModel,
    NotificationModel,
    PaymentPeriodModel,
    TenancyModel,
)

ACTOR = uuid4()


@pytest.fixture
def tenancy_row(session):
    row = TenancyModel(
        landlord_id=uuid4(),
        lodger_id=uuid4(),
        property_address="1 High Street, York",
        start_date=date(2024, 1, 1),
        initial_term_months=6,
        monthly_rent=Decimal("900.00"),
        initial_payment=Decimal("1800.00"),
        payment_frequency="4-weekly",
        payment_type="cycle",
        cycle_days=28,
        status=TenancyStatus.DRAFT.value,
        created_by_id=ACTOR,
    )
    session.add(row)
    session.commit()
    return row


def _period(tenancy_id, number, due):
    return PaymentPeriodModel(
        tenancy_id=tenancy_id,
        payment_number=number,
        due_date=due,
        rent_due=Decimal("900.00"),
        created_by_id=ACTOR,
    )


class TestPaymentScheduleConstraints:

    def test_duplicate_payment_number_rejected(self, session, tenancy_row):
        session.add(_period(tenancy_row.id, 1, date(2024, 1, 1)))
        session.commit()
        session.add(_period(tenancy_row.id, 1, date(2024, 1, 29)))
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_same_number_on_other_tenancy_allowed(self, session, tenancy_row):
        other = TenancyModel(
            landlord_id=uuid4(),
            lodger_id=uuid4(),
            property_address="2 High Street, York",
            start_date=date(2024, 1, 1),
            initial_term_months=6,
            monthly_rent=Decimal("900.00"),
            initial_payment=Decimal("1800.00"),
            status=TenancyStatus.DRAFT.value,
            created_by_id=ACTOR,
        )
        session.add(other)
        session.flush()
        session.add_all([_period(tenancy_row.id, 1, date(2024, 1, 1)),
                         _period(other.id, 1, date(2024, 1, 1))])
        session.commit()

    def test_defaults_and_dto(self, session, tenancy_row):
        row = _period(tenancy_row.id, 1, date(2024, 1, 1))
        session.add(row)
        session.commit()
        assert row.rent_paid == Decimal("0")
        assert row.awaiting_confirmation is False
        assert not row.is_confirmed
        assert not row.is_settlement
        dto = row.to_dto(PaymentStatus.PENDING)
        assert dto.payment_number == 1
        assert dto.status is PaymentStatus.PENDING
        assert dto.settlement_kind is None


class TestCascade:

    def test_deleting_tenancy_removes_schedule(self, session, tenancy_row):
        session.add_all([_period(tenancy_row.id, n, date(2024, n, 1)) for n in (1, 2, 3)])
        session.commit()
        session.delete(tenancy_row)
        session.commit()
        count = session.execute(select(func.count(PaymentPeriodModel.id))).scalar_one()
        assert count == 0


class TestDeductionConstraints:

    def test_negative_component_rejected(self, session, tenancy_row):
        session.add(
            DeductionModel(
                tenancy_id=tenancy_row.id,
                deduction_type="damage",
                description="Broken window",
                amount=Decimal("50.00"),
                amount_from_deposit=Decimal("-10.00"),
                amount_from_advance=Decimal("60.00"),
                deducted_from="both",
                created_by_id=ACTOR,
            )
        )
        with pytest.raises(IntegrityError):
            session.commit()
        session.rollback()

    def test_evidence_paths_round_trip_as_tuple(self, session, tenancy_row):
        row = DeductionModel(
            tenancy_id=tenancy_row.id,
            deduction_type="cleaning",
            description="End of tenancy clean",
            amount=Decimal("80.00"),
            amount_from_deposit=Decimal("80.00"),
            amount_from_advance=Decimal("0.00"),
            deducted_from="deposit",
            evidence_paths=["/uploads/a.jpg", "/uploads/b.jpg"],
            created_by_id=ACTOR,
        )
        session.add(row)
        session.commit()
        session.expire_all()
        assert row.to_dto().evidence_paths == ("/uploads/a.jpg", "/uploads/b.jpg")


class TestTenancyDto:

    def test_formatted_address(self):
        address = PropertyAddress(
            house_number="12", street_name="Acacia Avenue", city="Leeds", postcode="LS1 4AB"
        )
        assert address.formatted() == "12 Acacia Avenue, Leeds, LS1 4AB"

    def test_to_dto_enums(self, tenancy_row):
        dto = tenancy_row.to_dto()
        assert dto.status is TenancyStatus.DRAFT
        assert dto.lodger_signed is False
        assert dto.monthly_rent == Decimal("900.00")


class TestNotificationModel:

    def test_persisted_with_server_timestamp(self, session):
        row = NotificationModel(
            user_id=uuid4(), kind="payment_reminder", title="Payment Reminder", body="Due soon"
        )
        session.add(row)
        session.commit()
        session.refresh(row)
        assert row.created_at is not None
        assert row.is_read is False
