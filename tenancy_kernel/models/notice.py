"""
Notice model -- a directed communication tied to one tenancy.

One table holds all four notice kinds; kind-specific columns are nullable:

    termination / early_termination  notice_period_days, settlement_*
    breach                           breach_type, breach_stage,
                                     remedy_deadline, termination_deadline
    extension_offer                  extension_months, extension_status,
                                     current_rent, proposed_rent
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenancy_kernel.db.base import TrackedBase, UUIDString
from tenancy_kernel.domain.types import (
    BreachStage,
    ExtensionStatus,
    NoticeStatus,
    NoticeType,
    SettlementKind,
)

if TYPE_CHECKING:
    from tenancy_kernel.models.tenancy import TenancyModel


class NoticeModel(TrackedBase):
    __tablename__ = "notices"

    __table_args__ = (
        Index("idx_notice_tenancy_type", "tenancy_id", "notice_type"),
        Index("idx_notice_extension_status", "tenancy_id", "extension_status"),
    )

    tenancy_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenancies.id", ondelete="CASCADE"),
        nullable=False,
    )
    notice_type: Mapped[str] = mapped_column(String(30), nullable=False)
    given_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    given_to_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    notice_date: Mapped[date] = mapped_column(Date, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    sub_reason: Mapped[str | None] = mapped_column(String(100))
    notes: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=NoticeStatus.ACTIVE.value
    )
    notice_period_days: Mapped[int | None] = mapped_column(Integer)

    breach_type: Mapped[str | None] = mapped_column(String(50))
    breach_stage: Mapped[str | None] = mapped_column(String(30))
    remedy_deadline: Mapped[date | None] = mapped_column(Date)
    termination_deadline: Mapped[date | None] = mapped_column(Date)

    extension_months: Mapped[int | None] = mapped_column(Integer)
    extension_status: Mapped[str | None] = mapped_column(String(20))
    current_rent: Mapped[Decimal | None] = mapped_column()
    proposed_rent: Mapped[Decimal | None] = mapped_column()
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    letter_path: Mapped[str | None] = mapped_column(String(500))

    settlement_kind: Mapped[str | None] = mapped_column(String(20))
    settlement_amount: Mapped[Decimal | None] = mapped_column()

    tenancy: Mapped["TenancyModel"] = relationship(back_populates="notices")

    def append_reason(self, line: str) -> None:
        self.reason = f"{self.reason}\n\n{line}" if self.reason else line

    def to_dto(self):
        from tenancy_kernel.domain.dtos import NoticeInfo

        return NoticeInfo(
            id=self.id,
            tenancy_id=self.tenancy_id,
            notice_type=NoticeType(self.notice_type),
            given_by_id=self.given_by_id,
            given_to_id=self.given_to_id,
            notice_date=self.notice_date,
            effective_date=self.effective_date,
            reason=self.reason,
            status=NoticeStatus(self.status),
            sub_reason=self.sub_reason,
            notes=self.notes,
            notice_period_days=self.notice_period_days,
            breach_type=self.breach_type,
            breach_stage=BreachStage(self.breach_stage) if self.breach_stage else None,
            remedy_deadline=self.remedy_deadline,
            termination_deadline=self.termination_deadline,
            extension_months=self.extension_months,
            extension_status=(
                ExtensionStatus(self.extension_status) if self.extension_status else None
            ),
            current_rent=self.current_rent,
            proposed_rent=self.proposed_rent,
            letter_path=self.letter_path,
            settlement_kind=(
                SettlementKind(self.settlement_kind) if self.settlement_kind else None
            ),
            settlement_amount=self.settlement_amount,
        )

    def __repr__(self) -> str:
        return f"<Notice {self.notice_type} {self.status} effective {self.effective_date}>"
