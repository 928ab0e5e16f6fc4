"""
PostCommitDispatcher -- collaborator calls that must not affect committed state.

Notifications requested while an operation is building its writes are
queued, delivered only after the controlling transaction commits, and
discarded if it rolls back.  Every delivery and render failure is logged
with its context and swallowed: a failed notification never erases a
recorded deduction or notice.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from tenancy_kernel.logging_config import get_logger
from tenancy_services.collaborators import DocumentRenderer, Notifier

logger = get_logger("services.dispatch")


@dataclass(frozen=True)
class PendingNotification:
    user_id: UUID
    kind: str
    title: str
    body: str
    tenancy_id: UUID | None = None
    payment_id: UUID | None = None


class PostCommitDispatcher:

    def __init__(self, notifier: Notifier, renderer: DocumentRenderer | None = None):
        self._notifier = notifier
        self._renderer = renderer
        self._pending: list[PendingNotification] = []

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def renderer(self) -> DocumentRenderer | None:
        return self._renderer

    @property
    def pending(self) -> tuple[PendingNotification, ...]:
        return tuple(self._pending)

    def notify(self, user_id, kind, title, body, *, tenancy_id=None, payment_id=None) -> None:
        self._pending.append(
            PendingNotification(
                user_id=user_id,
                kind=str(getattr(kind, "value", kind)),
                title=title,
                body=body,
                tenancy_id=tenancy_id,
                payment_id=payment_id,
            )
        )

    def discard(self) -> None:
        if self._pending:
            logger.debug("notifications_discarded", extra={"count": len(self._pending)})
        self._pending.clear()

    def flush(self) -> int:
        """Deliver queued notifications; returns how many were delivered."""
        pending, self._pending = self._pending, []
        delivered = 0
        for item in pending:
            try:
                self._notifier.notify(
                    item.user_id,
                    item.kind,
                    item.title,
                    item.body,
                    tenancy_id=item.tenancy_id,
                    payment_id=item.payment_id,
                )
                delivered += 1
            except Exception:
                logger.exception(
                    "notification_delivery_failed",
                    extra={
                        "kind": item.kind,
                        "user_id": str(item.user_id),
                        "related_tenancy": str(item.tenancy_id) if item.tenancy_id else None,
                    },
                )
        return delivered

    def render(self, kind: str, data: dict[str, Any]) -> str | None:
        """Render a document now; ``None`` when no renderer or rendering failed."""
        kind = str(getattr(kind, "value", kind))
        if self._renderer is None:
            logger.warning("document_renderer_missing", extra={"kind": kind})
            return None
        try:
            return self._renderer.render(kind, data)
        except Exception:
            logger.exception("document_render_failed", extra={"kind": kind})
            return None
