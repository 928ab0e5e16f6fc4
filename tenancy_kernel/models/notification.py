"""Notification model -- persisted in-app notifications for one user."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from tenancy_kernel.db.base import Base, UUIDString


class NotificationModel(Base):
    __tablename__ = "notifications"

    __table_args__ = (
        Index("idx_notification_user_kind", "user_id", "kind"),
    )

    user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)
    tenancy_id: Mapped[UUID | None] = mapped_column(UUIDString())
    payment_id: Mapped[UUID | None] = mapped_column(UUIDString())
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Notification {self.kind} -> {self.user_id}>"
