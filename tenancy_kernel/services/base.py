"""
BaseService -- abstract base for services that mutate tenancy state.

Responsibility:
    Common constructor (session + clock) and the row loaders every write
    path needs: fetch-or-raise for each entity, with optional
    ``SELECT ... FOR UPDATE`` on the tenancy row.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.  Loaders only
    ``flush``; the public operation services in ``tenancy_services`` own
    commit and rollback.

Invariants enforced:
    - Unknown ids raise the matching NotFoundError subclass, never None.
    - ``lock=True`` acquires a row lock on the tenancy before any
      aggregate is read, which serializes schedule extension, notice
      issuance and deduction creation per tenancy.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from tenancy_kernel.db.base import Base
from tenancy_kernel.domain.clock import Clock, SystemClock
from tenancy_kernel.exceptions import (
    DeductionNotFoundError,
    NoticeNotFoundError,
    PaymentNotFoundError,
    TenancyNotFoundError,
)
from tenancy_kernel.models import (
    DeductionModel,
    NoticeModel,
    PaymentPeriodModel,
    TenancyModel,
)

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for tenancy services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and a ``Clock`` from the caller.
        Never calls ``datetime.now()``; "today" always comes from the clock.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    # -------------------------------------------------------------------------
    # Loaders
    # -------------------------------------------------------------------------

    def _load_tenancy(self, tenancy_id: UUID, *, lock: bool = False) -> TenancyModel:
        stmt = select(TenancyModel).where(TenancyModel.id == tenancy_id)
        if lock:
            # Rows read before the lock was taken may be stale in the identity map.
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        tenancy = self.session.execute(stmt).scalar_one_or_none()
        if tenancy is None:
            raise TenancyNotFoundError(tenancy_id)
        return tenancy

    def _load_payment(self, payment_id: UUID) -> PaymentPeriodModel:
        payment = self.session.get(PaymentPeriodModel, payment_id)
        if payment is None:
            raise PaymentNotFoundError(payment_id)
        return payment

    def _load_notice(self, notice_id: UUID) -> NoticeModel:
        notice = self.session.get(NoticeModel, notice_id)
        if notice is None:
            raise NoticeNotFoundError(notice_id)
        return notice

    def _load_deduction(self, deduction_id: UUID) -> DeductionModel:
        deduction = self.session.get(DeductionModel, deduction_id)
        if deduction is None:
            raise DeductionNotFoundError(deduction_id)
        return deduction

    def _schedule_rows(self, tenancy_id: UUID) -> list[PaymentPeriodModel]:
        return list(
            self.session.execute(
                select(PaymentPeriodModel)
                .where(PaymentPeriodModel.tenancy_id == tenancy_id)
                .order_by(PaymentPeriodModel.payment_number)
                .execution_options(populate_existing=True)
            ).scalars()
        )

    @staticmethod
    def _require_party(tenancy: TenancyModel, actor_id: UUID, *roles: str) -> None:
        """Callers unrelated to the tenancy see it as not found."""
        allowed = {getattr(tenancy, f"{role}_id") for role in roles}
        if actor_id not in allowed:
            raise TenancyNotFoundError(tenancy.id)

    def _last_period(self, tenancy_id: UUID) -> PaymentPeriodModel | None:
        return self.session.execute(
            select(PaymentPeriodModel)
            .where(PaymentPeriodModel.tenancy_id == tenancy_id)
            .order_by(PaymentPeriodModel.payment_number.desc())
            .limit(1)
        ).scalar_one_or_none()
