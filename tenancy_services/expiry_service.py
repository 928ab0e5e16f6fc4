"""
ExpiryService -- the once-a-day sweep.

Two passes, each tenancy in its own transaction so one failure does not
hold back the rest:

    reminders     active/extended tenancies whose end date falls within the
                  expiry window, at most one reminder per cooldown
    finalization  notice_given tenancies whose termination date has passed
                  become terminated; their open termination and breach
                  notices are completed
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from tenancy_kernel.domain.types import (
    NoticeStatus,
    NoticeType,
    NotificationKind,
    TenancyStatus,
)
from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import NoticeModel, TenancyModel
from tenancy_engines.expiry import is_expiring_soon, reminder_due, termination_reached
from tenancy_engines.notices import current_end_date, format_uk_date
from tenancy_services.base import SYSTEM_ACTOR_ID, OperationService

logger = get_logger("services.expiry")

_ENDING_NOTICE_TYPES = (
    NoticeType.TERMINATION.value,
    NoticeType.BREACH.value,
    NoticeType.EARLY_TERMINATION.value,
)


@dataclass(frozen=True)
class SweepResult:
    reminded: tuple[UUID, ...] = ()
    finalized: tuple[UUID, ...] = ()
    failed: tuple[UUID, ...] = ()


class ExpiryService(OperationService):

    def _tenancy_ids(self, *statuses: TenancyStatus) -> list[UUID]:
        return list(
            self.session.execute(
                select(TenancyModel.id)
                .where(TenancyModel.status.in_([s.value for s in statuses]))
                .order_by(TenancyModel.start_date)
            ).scalars()
        )

    def run_daily_sweep(self) -> SweepResult:
        today = self.clock.today()
        reminded: list[UUID] = []
        finalized: list[UUID] = []
        failed: list[UUID] = []

        for tenancy_id in self._tenancy_ids(TenancyStatus.ACTIVE, TenancyStatus.EXTENDED):
            try:
                if self._remind_if_expiring(tenancy_id):
                    reminded.append(tenancy_id)
            except Exception:
                failed.append(tenancy_id)
                logger.exception("expiry_reminder_failed", extra={"tenancy_id": str(tenancy_id)})

        for tenancy_id in self._tenancy_ids(TenancyStatus.NOTICE_GIVEN):
            try:
                if self._finalize_if_ended(tenancy_id):
                    finalized.append(tenancy_id)
            except Exception:
                failed.append(tenancy_id)
                logger.exception("tenancy_finalize_failed", extra={"tenancy_id": str(tenancy_id)})

        logger.info("daily_sweep_completed", extra={
            "sweep_date": today,
            "reminded": len(reminded),
            "finalized": len(finalized),
            "failed": len(failed),
        })
        return SweepResult(tuple(reminded), tuple(finalized), tuple(failed))

    def _remind_if_expiring(self, tenancy_id: UUID) -> bool:
        today = self.clock.today()
        with self._operation("expiry_reminder", tenancy_id=tenancy_id, actor_id=SYSTEM_ACTOR_ID):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            end = current_end_date(
                tenancy.end_date, tenancy.start_date, tenancy.initial_term_months
            )
            if not is_expiring_soon(end, today, self.policy.expiry_window_days):
                return False
            if not reminder_due(
                tenancy.last_expiry_reminder_on, today, self.policy.expiry_reminder_cooldown_days
            ):
                return False
            tenancy.last_expiry_reminder_on = today
            tenancy.updated_by_id = SYSTEM_ACTOR_ID
            days_left = (end - today).days
            for user_id in (tenancy.landlord_id, tenancy.lodger_id):
                self.dispatcher.notify(
                    user_id,
                    NotificationKind.TENANCY_EXPIRING,
                    "Tenancy Expiring Soon",
                    f"The tenancy at {tenancy.property_address} ends on "
                    f"{format_uk_date(end)} ({days_left} days).",
                    tenancy_id=tenancy.id,
                )
            logger.info("expiry_reminder_sent", extra={"end_date": end, "days_left": days_left})
        return True

    def _finalize_if_ended(self, tenancy_id: UUID) -> bool:
        today = self.clock.today()
        with self._operation("tenancy_finalize", tenancy_id=tenancy_id, actor_id=SYSTEM_ACTOR_ID):
            tenancy = self._load_tenancy(tenancy_id, lock=True)
            if not termination_reached(tenancy.termination_date, today):
                return False
            tenancy.status = TenancyStatus.TERMINATED.value
            tenancy.updated_by_id = SYSTEM_ACTOR_ID
            notices = self.session.execute(
                select(NoticeModel).where(
                    NoticeModel.tenancy_id == tenancy.id,
                    NoticeModel.status == NoticeStatus.ACTIVE.value,
                    NoticeModel.notice_type.in_(_ENDING_NOTICE_TYPES),
                )
            ).scalars().all()
            for notice in notices:
                notice.status = NoticeStatus.COMPLETED.value
                notice.updated_by_id = SYSTEM_ACTOR_ID
            logger.info("tenancy_terminated", extra={
                "termination_date": tenancy.termination_date,
                "notices_completed": len(notices),
            })
        return True
