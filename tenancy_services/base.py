"""
OperationService -- transaction owner for public tenancy operations.

Every public method of a tenancy service is one atomic unit:

    with self._operation("deduction_create", tenancy_id=...):
        ...writes, flushes, dispatcher.notify(...)...

On success the session is committed and queued notifications are
delivered.  On any exception the session is rolled back, the queue is
discarded and the exception propagates unchanged: rejections
(TenancyKernelError) are logged at INFO as ``<operation>_rejected``,
anything else at WARNING as ``<operation>_rolled_back`` with exc_info.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from contextlib import contextmanager
from typing import Any, Iterator
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tenancy_config import TenancyPolicy, get_active_policy
from tenancy_kernel.domain.clock import Clock
from tenancy_kernel.exceptions import TenancyKernelError
from tenancy_kernel.logging_config import LogContext, get_logger
from tenancy_kernel.models import PaymentPeriodModel, TenancyModel
from tenancy_kernel.selectors import TenancySelector
from tenancy_kernel.services.base import BaseService
from tenancy_engines.due_dates import SchedulePolicy
from tenancy_engines.schedule import ScheduledPeriod
from tenancy_services.dispatch import PostCommitDispatcher

logger = get_logger("services.operation")

SYSTEM_ACTOR_ID = UUID(int=0)


class OperationService(BaseService[TenancyModel]):

    def __init__(
        self,
        session: Session,
        dispatcher: PostCommitDispatcher,
        clock: Clock | None = None,
        policy: TenancyPolicy | None = None,
    ):
        super().__init__(session, clock)
        self.dispatcher = dispatcher
        self.policy = policy or get_active_policy()
        self.selector = TenancySelector(session)

    # -------------------------------------------------------------------------
    # Transaction boundary
    # -------------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, **context: Any) -> Iterator[None]:
        with LogContext.bind(**context):
            try:
                yield
                self.session.commit()
            except TenancyKernelError as exc:
                self.session.rollback()
                self.dispatcher.discard()
                logger.info(f"{name}_rejected", extra={"error_code": exc.code, "reason": str(exc)})
                raise
            except Exception:
                self.session.rollback()
                self.dispatcher.discard()
                logger.warning(f"{name}_rolled_back", exc_info=True)
                raise
            self.dispatcher.flush()

    def _store_document_path(self, row: Any, attr: str, kind: str, data: dict[str, Any]) -> str | None:
        """Render after commit and record the returned path in a follow-up transaction."""
        path = self.dispatcher.render(kind, data)
        if path is None:
            return None
        try:
            setattr(row, attr, path)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            logger.exception("document_path_store_failed", extra={"kind": kind, "path": path})
            return None
        return path

    # -------------------------------------------------------------------------
    # Ledger helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _policy_for(tenancy: TenancyModel) -> SchedulePolicy:
        return SchedulePolicy(
            payment_type=tenancy.payment_type,
            cycle_days=tenancy.cycle_days,
            payment_day_of_month=tenancy.payment_day_of_month,
        )

    @staticmethod
    def _to_period(row: PaymentPeriodModel) -> ScheduledPeriod:
        return ScheduledPeriod(
            payment_number=row.payment_number,
            due_date=row.due_date,
            rent_due=row.rent_due,
            rent_paid=row.rent_paid,
            previous_balance=row.previous_balance,
            balance=row.balance,
        )

    @staticmethod
    def _write_ledger(
        rows: Iterable[PaymentPeriodModel],
        periods: Sequence[ScheduledPeriod],
    ) -> int:
        """Copy engine results back onto rows; returns how many rows changed."""
        by_number = {p.payment_number: p for p in periods}
        changed = 0
        for row in rows:
            period = by_number[row.payment_number]
            if (row.rent_paid, row.previous_balance, row.balance) != (
                period.rent_paid, period.previous_balance, period.balance,
            ):
                row.rent_paid = period.rent_paid
                row.previous_balance = period.previous_balance
                row.balance = period.balance
                changed += 1
        return changed

    @staticmethod
    def _new_period_row(
        tenancy_id: UUID,
        period: ScheduledPeriod,
        actor_id: UUID,
        **extra: Any,
    ) -> PaymentPeriodModel:
        return PaymentPeriodModel(
            tenancy_id=tenancy_id,
            payment_number=period.payment_number,
            due_date=period.due_date,
            rent_due=period.rent_due,
            rent_paid=period.rent_paid,
            previous_balance=period.previous_balance,
            balance=period.balance,
            created_by_id=actor_id,
            **extra,
        )
