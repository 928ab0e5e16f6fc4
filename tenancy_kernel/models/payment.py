"""
PaymentPeriod model -- one scheduled rent charge.

Stored facts only.  The period status (pending, submitted, partial, paid,
overdue, waived) is derived on read by ``tenancy_engines.balance.derive_status``
from these columns and the current date; it is never persisted.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenancy_kernel.db.base import TrackedBase, UUIDString
from tenancy_kernel.domain.types import SettlementKind

if TYPE_CHECKING:
    from tenancy_kernel.models.tenancy import TenancyModel


class PaymentPeriodModel(TrackedBase):
    """
    Scheduled payment period.

    ``(tenancy_id, payment_number)`` is unique: overlapping schedule
    extensions for the same tenancy cannot both insert the same period.
    """

    __tablename__ = "payment_schedule"

    __table_args__ = (
        UniqueConstraint(
            "tenancy_id", "payment_number", name="uq_payment_schedule_tenancy_number"
        ),
        Index("idx_payment_schedule_due", "tenancy_id", "due_date"),
    )

    tenancy_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenancies.id", ondelete="CASCADE"),
        nullable=False,
    )
    payment_number: Mapped[int] = mapped_column(Integer, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)

    rent_due: Mapped[Decimal] = mapped_column(nullable=False)
    rent_paid: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    previous_balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    balance: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    # Landlord confirmation (authoritative)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_by_id: Mapped[UUID | None] = mapped_column(UUIDString())
    payment_date: Mapped[date | None] = mapped_column(Date)
    payment_method: Mapped[str | None] = mapped_column(String(50))
    payment_reference: Mapped[str | None] = mapped_column(String(100))

    # Lodger submission (advisory)
    submitted_amount: Mapped[Decimal | None] = mapped_column()
    submitted_on: Mapped[date | None] = mapped_column(Date)
    submitted_reference: Mapped[str | None] = mapped_column(String(100))
    submitted_method: Mapped[str | None] = mapped_column(String(50))
    submitted_notes: Mapped[str | None] = mapped_column(Text)
    awaiting_confirmation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    waived_amount: Mapped[Decimal | None] = mapped_column()

    # Final-settlement entries: signed amount, > 0 lodger pays, <= 0 refund.
    settlement_kind: Mapped[str | None] = mapped_column(String(20))
    settlement_amount: Mapped[Decimal | None] = mapped_column()

    notes: Mapped[str | None] = mapped_column(Text)

    tenancy: Mapped["TenancyModel"] = relationship(back_populates="payments")

    @property
    def is_confirmed(self) -> bool:
        return self.confirmed_at is not None

    @property
    def is_settlement(self) -> bool:
        return self.settlement_kind is not None

    @property
    def is_refund(self) -> bool:
        return self.settlement_kind == SettlementKind.REFUND.value

    def to_dto(self, status):
        from tenancy_kernel.domain.dtos import PaymentPeriodInfo

        return PaymentPeriodInfo(
            id=self.id,
            tenancy_id=self.tenancy_id,
            payment_number=self.payment_number,
            due_date=self.due_date,
            rent_due=self.rent_due,
            rent_paid=self.rent_paid,
            previous_balance=self.previous_balance,
            balance=self.balance,
            status=status,
            submitted_amount=self.submitted_amount,
            payment_date=self.payment_date,
            payment_method=self.payment_method,
            payment_reference=self.payment_reference,
            waived_amount=self.waived_amount,
            settlement_kind=(
                SettlementKind(self.settlement_kind) if self.settlement_kind else None
            ),
            settlement_amount=self.settlement_amount,
            notes=self.notes,
        )

    def __repr__(self) -> str:
        return (
            f"<PaymentPeriod #{self.payment_number} due {self.due_date} "
            f"{self.rent_due}/{self.rent_paid}>"
        )
