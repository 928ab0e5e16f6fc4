"""
Tenancy model -- the contract between one landlord and one lodger.

A tenancy owns its payment schedule, its notices and its deductions; all
three cascade with it.  Deleting a tenancy is only legal for an unsigned
offer (see TenancyService.cancel_tenancy); every other exit goes through
a notice.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenancy_kernel.db.base import TrackedBase, UUIDString
from tenancy_kernel.domain.types import (
    PaymentFrequency,
    PaymentType,
    TenancyStatus,
)

if TYPE_CHECKING:
    from tenancy_kernel.models.deduction import DeductionModel
    from tenancy_kernel.models.notice import NoticeModel
    from tenancy_kernel.models.payment import PaymentPeriodModel


class TenancyModel(TrackedBase):
    """
    Tenancy agreement row.

    Status lifecycle:
        draft -> active -> notice_given -> terminated
        active -> extended -> notice_given -> terminated
        active/extended -> terminated (immediate notice)
    """

    __tablename__ = "tenancies"

    __table_args__ = (
        Index("idx_tenancy_landlord", "landlord_id"),
        Index("idx_tenancy_lodger", "lodger_id"),
        Index("idx_tenancy_status_end", "status", "end_date"),
    )

    landlord_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    lodger_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Structured property address; property_address is the formatted form.
    house_number: Mapped[str | None] = mapped_column(String(50))
    street_name: Mapped[str | None] = mapped_column(String(200))
    city: Mapped[str | None] = mapped_column(String(100))
    county: Mapped[str | None] = mapped_column(String(100))
    postcode: Mapped[str | None] = mapped_column(String(20))
    property_address: Mapped[str] = mapped_column(Text, nullable=False)
    room_description: Mapped[str | None] = mapped_column(Text)

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    initial_term_months: Mapped[int] = mapped_column(Integer, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date)
    termination_date: Mapped[date | None] = mapped_column(Date)

    monthly_rent: Mapped[Decimal] = mapped_column(nullable=False)
    initial_payment: Mapped[Decimal] = mapped_column(nullable=False)
    deposit_applicable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deposit_amount: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    payment_frequency: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentFrequency.FOUR_WEEKLY.value
    )
    payment_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentType.CYCLE.value
    )
    cycle_days: Mapped[int] = mapped_column(Integer, nullable=False, default=28)
    payment_day_of_month: Mapped[int | None] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TenancyStatus.DRAFT.value
    )

    lodger_signature: Mapped[str | None] = mapped_column(Text)
    lodger_signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    landlord_signature: Mapped[str | None] = mapped_column(Text)
    landlord_signed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    agreement_document_path: Mapped[str | None] = mapped_column(String(500))

    last_expiry_reminder_on: Mapped[date | None] = mapped_column(Date)

    payments: Mapped[list["PaymentPeriodModel"]] = relationship(
        back_populates="tenancy",
        cascade="all, delete-orphan",
        order_by="PaymentPeriodModel.payment_number",
        passive_deletes=True,
    )
    notices: Mapped[list["NoticeModel"]] = relationship(
        back_populates="tenancy",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    deductions: Mapped[list["DeductionModel"]] = relationship(
        back_populates="tenancy",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def status_enum(self) -> TenancyStatus:
        return TenancyStatus(self.status)

    @property
    def is_lodger_signed(self) -> bool:
        return bool(self.lodger_signature)

    def to_dto(self):
        from tenancy_kernel.domain.dtos import TenancyInfo

        return TenancyInfo(
            id=self.id,
            landlord_id=self.landlord_id,
            lodger_id=self.lodger_id,
            property_address=self.property_address,
            room_description=self.room_description,
            start_date=self.start_date,
            initial_term_months=self.initial_term_months,
            monthly_rent=self.monthly_rent,
            initial_payment=self.initial_payment,
            deposit_applicable=self.deposit_applicable,
            deposit_amount=self.deposit_amount,
            payment_frequency=PaymentFrequency(self.payment_frequency),
            payment_type=PaymentType(self.payment_type),
            cycle_days=self.cycle_days,
            payment_day_of_month=self.payment_day_of_month,
            status=TenancyStatus(self.status),
            end_date=self.end_date,
            termination_date=self.termination_date,
            lodger_signed=self.is_lodger_signed,
            landlord_signed=bool(self.landlord_signature),
            agreement_document_path=self.agreement_document_path,
        )

    def __repr__(self) -> str:
        return f"<Tenancy {self.id} {self.status} from {self.start_date}>"
