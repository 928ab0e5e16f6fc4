"""
Deduction model -- one withdrawal from the deposit and/or advance-rent pool.

Append-only: there is no update or delete path for the financial columns.
Only ``statement_path`` is written after creation, once a statement has
been rendered.
"""

from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tenancy_kernel.db.base import TrackedBase, UUIDString
from tenancy_kernel.domain.types import DeductedFrom

if TYPE_CHECKING:
    from tenancy_kernel.models.tenancy import TenancyModel


class DeductionModel(TrackedBase):
    __tablename__ = "deductions"

    __table_args__ = (
        CheckConstraint(
            "amount_from_deposit >= 0 AND amount_from_advance >= 0",
            name="ck_deduction_components_non_negative",
        ),
        Index("idx_deduction_tenancy", "tenancy_id"),
    )

    tenancy_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenancies.id", ondelete="CASCADE"),
        nullable=False,
    )
    deduction_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    amount_from_deposit: Mapped[Decimal] = mapped_column(nullable=False)
    amount_from_advance: Mapped[Decimal] = mapped_column(nullable=False)
    deducted_from: Mapped[str] = mapped_column(String(20), nullable=False)
    evidence_paths: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    notes: Mapped[str | None] = mapped_column(Text)
    statement_path: Mapped[str | None] = mapped_column(String(500))

    tenancy: Mapped["TenancyModel"] = relationship(back_populates="deductions")

    def to_dto(self):
        from tenancy_kernel.domain.dtos import DeductionInfo

        return DeductionInfo(
            id=self.id,
            tenancy_id=self.tenancy_id,
            deduction_type=self.deduction_type,
            description=self.description,
            amount=self.amount,
            amount_from_deposit=self.amount_from_deposit,
            amount_from_advance=self.amount_from_advance,
            deducted_from=DeductedFrom(self.deducted_from),
            evidence_paths=tuple(self.evidence_paths or ()),
            notes=self.notes,
            statement_path=self.statement_path,
        )

    def __repr__(self) -> str:
        return f"<Deduction {self.amount} from {self.deducted_from}>"
