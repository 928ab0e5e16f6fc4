"""
DeductionService -- withdrawals from the deposit and advance-rent pools.

The aggregate of prior deductions is read and the new row inserted while
holding a row lock on the tenancy, so two concurrent deductions for the
same tenancy cannot both pass the pool check against a stale total.
Deductions are append-only; there is no update or delete path.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any
from uuid import UUID

from tenancy_kernel.domain.dtos import DeductionInfo
from tenancy_kernel.domain.money import ZERO, format_gbp, to_money
from tenancy_kernel.domain.types import DocumentKind, NotificationKind, TenancyStatus
from tenancy_kernel.exceptions import TenancyStateError
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import DeductionModel, TenancyModel
from tenancy_engines.deductions import AvailableFunds, allocate_deduction, available_funds
from tenancy_services.base import OperationService

logger = get_logger("services.deduction")


class DeductionService(OperationService):

    def _funds(self, tenancy: TenancyModel) -> AvailableFunds:
        from_deposit, from_advance = self.selector.deduction_totals(tenancy.id)
        return available_funds(
            deposit_amount=tenancy.deposit_amount if tenancy.deposit_applicable else ZERO,
            initial_payment=tenancy.initial_payment,
            deducted_from_deposit=from_deposit,
            deducted_from_advance=from_advance,
        )

    def available_funds(self, tenancy_id: UUID) -> AvailableFunds:
        return self._funds(self._load_tenancy(tenancy_id))

    def create_deduction(
        self,
        tenancy_id: UUID,
        landlord_id: UUID,
        *,
        deduction_type: str,
        description: str,
        amount: Any,
        amount_from_deposit: Any = ZERO,
        amount_from_advance: Any = ZERO,
        evidence_paths: Iterable[str] = (),
        notes: str | None = None,
    ) -> DeductionInfo:
        """
        Record a deduction.

        Rejected with InsufficientFundsError when a component exceeds what
        remains in its pool, and with AllocationMismatchError when the
        components do not add up to ``amount``.
        """
        total = to_money(amount, "amount", allow_negative=True)
        from_deposit = to_money(amount_from_deposit, "amount_from_deposit", allow_negative=True)
        from_advance = to_money(amount_from_advance, "amount_from_advance", allow_negative=True)

        with self._operation("deduction_create", tenancy_id=tenancy_id, actor_id=landlord_id):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            self._require_party(tenancy, landlord_id, "landlord")
            if tenancy.status == TenancyStatus.DRAFT.value:
                raise TenancyStateError(tenancy.id, tenancy.status, "deduct from")

            funds = self._funds(tenancy)
            allocation = allocate_deduction(
                amount=total,
                amount_from_deposit=from_deposit,
                amount_from_advance=from_advance,
                funds=funds,
            )
            deduction = DeductionModel(
                tenancy_id=tenancy.id,
                deduction_type=deduction_type,
                description=description,
                amount=allocation.amount,
                amount_from_deposit=allocation.amount_from_deposit,
                amount_from_advance=allocation.amount_from_advance,
                deducted_from=allocation.deducted_from.value,
                evidence_paths=list(evidence_paths),
                notes=notes,
                created_by_id=landlord_id,
            )
            self.session.add(deduction)
            self.session.flush()

            self.dispatcher.notify(
                tenancy.lodger_id,
                NotificationKind.DEDUCTION_MADE,
                "Deduction Made",
                f"A deduction of {format_gbp(allocation.amount)} has been made for: "
                f"{description}.",
                tenancy_id=tenancy.id,
            )
            logger.info("deduction_created", extra={
                "deduction_id": str(deduction.id),
                "amount": str(allocation.amount),
                "deducted_from": allocation.deducted_from.value,
                "available_deposit": str(funds.available_deposit - allocation.amount_from_deposit),
                "available_advance": str(funds.available_advance - allocation.amount_from_advance),
            })
        return deduction.to_dto()

    def list_deductions(self, tenancy_id: UUID) -> list[DeductionInfo]:
        self._load_tenancy(tenancy_id)
        return self.selector.deductions(tenancy_id)

    def generate_statement(self, deduction_id: UUID, landlord_id: UUID) -> str | None:
        """Render a deduction statement and store its path on the deduction."""
        deduction = self._load_deduction(deduction_id)
        tenancy = self._load_tenancy(deduction.tenancy_id)
        self._require_party(tenancy, landlord_id, "landlord")
        funds = self._funds(tenancy)
        data = {
            "tenancy": tenancy.to_dto(),
            "deduction": deduction.to_dto(),
            "original_deposit": funds.original_deposit,
            "original_advance": funds.original_advance,
            "remaining_deposit": funds.available_deposit,
            "remaining_advance": funds.available_advance,
            "total_remaining": funds.total_available,
            "issued_on": self.clock.today(),
        }
        path = self._store_document_path(
            deduction, "statement_path", DocumentKind.DEDUCTION_STATEMENT, data
        )
        logger.info("deduction_statement_generated", extra={
            "deduction_id": str(deduction.id),
            "stored": path is not None,
        })
        return path
