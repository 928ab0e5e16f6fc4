"""
Module: tenancy_kernel.selectors.tenancy_selector
Responsibility: Read-side queries over tenancies, schedules, notices and
    deductions.  Payment statuses are derived here, on read, from stored
    facts and the supplied date.
Architecture position: Kernel > Selectors.  Read-only; returns DTOs.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from tenancy_kernel.domain.dtos import (
    DeductionInfo,
    NoticeInfo,
    PaymentPeriodInfo,
    TenancyInfo,
)
from tenancy_kernel.domain.money import ZERO, round_money
from tenancy_kernel.domain.types import PaymentStatus
from tenancy_kernel.models import (
    DeductionModel,
    NoticeModel,
    PaymentPeriodModel,
    TenancyModel,
)
from tenancy_kernel.selectors.base import BaseSelector
from tenancy_engines.balance import derive_status


def period_status(row: PaymentPeriodModel, today: date) -> PaymentStatus:
    return derive_status(
        rent_due=row.rent_due,
        rent_paid=row.rent_paid,
        confirmed=row.is_confirmed,
        awaiting_confirmation=row.awaiting_confirmation,
        waived=row.waived_amount is not None,
        due_date=row.due_date,
        today=today,
        refund=row.is_refund,
    )


class TenancySelector(BaseSelector[TenancyModel]):
    """Read-only queries for the tenancy lifecycle."""

    def get_tenancy(self, tenancy_id: UUID) -> TenancyInfo | None:
        row = self.session.get(TenancyModel, tenancy_id)
        return row.to_dto() if row is not None else None

    def tenancies_for_landlord(self, landlord_id: UUID) -> list[TenancyInfo]:
        rows = self.session.execute(
            select(TenancyModel)
            .where(TenancyModel.landlord_id == landlord_id)
            .order_by(TenancyModel.start_date)
        ).scalars()
        return [row.to_dto() for row in rows]

    def schedule(self, tenancy_id: UUID, today: date) -> list[PaymentPeriodInfo]:
        rows = self.session.execute(
            select(PaymentPeriodModel)
            .where(PaymentPeriodModel.tenancy_id == tenancy_id)
            .order_by(PaymentPeriodModel.payment_number)
        ).scalars()
        return [row.to_dto(period_status(row, today)) for row in rows]

    def period_count(self, tenancy_id: UUID) -> int:
        return self.session.execute(
            select(func.count(PaymentPeriodModel.id)).where(
                PaymentPeriodModel.tenancy_id == tenancy_id
            )
        ).scalar_one()

    def notices(self, tenancy_id: UUID) -> list[NoticeInfo]:
        rows = self.session.execute(
            select(NoticeModel)
            .where(NoticeModel.tenancy_id == tenancy_id)
            .order_by(NoticeModel.notice_date.desc(), NoticeModel.created_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def deductions(self, tenancy_id: UUID) -> list[DeductionInfo]:
        rows = self.session.execute(
            select(DeductionModel)
            .where(DeductionModel.tenancy_id == tenancy_id)
            .order_by(DeductionModel.created_at.desc())
        ).scalars()
        return [row.to_dto() for row in rows]

    def deduction_totals(self, tenancy_id: UUID) -> tuple[Decimal, Decimal]:
        """Sum of (amount_from_deposit, amount_from_advance) over all deductions."""
        deposit, advance = self.session.execute(
            select(
                func.coalesce(func.sum(DeductionModel.amount_from_deposit), 0),
                func.coalesce(func.sum(DeductionModel.amount_from_advance), 0),
            ).where(DeductionModel.tenancy_id == tenancy_id)
        ).one()
        return (
            round_money(Decimal(str(deposit or ZERO))),
            round_money(Decimal(str(advance or ZERO))),
        )

    def confirmed_receipts(self, landlord_id: UUID) -> list[tuple[date, Decimal]]:
        """(received-on, amount) for every confirmed payment across a landlord's tenancies."""
        rows = self.session.execute(
            select(
                PaymentPeriodModel.payment_date,
                PaymentPeriodModel.due_date,
                PaymentPeriodModel.rent_paid,
            )
            .join(TenancyModel, TenancyModel.id == PaymentPeriodModel.tenancy_id)
            .where(
                TenancyModel.landlord_id == landlord_id,
                PaymentPeriodModel.confirmed_at.is_not(None),
                PaymentPeriodModel.rent_paid > 0,
            )
        ).all()
        return [(paid_on or due_on, Decimal(amount)) for paid_on, due_on, amount in rows]
