"""
External collaborators: notification delivery and document rendering.

The engine only depends on the two protocols below.  Concrete
implementations:

    SessionNotifier       persists a NotificationModel row in its own short
                          transaction (delivery is independent of the
                          financial transaction that triggered it).
    RecordingNotifier     keeps notifications in memory.
    JsonDocumentRenderer  writes the document payload as JSON under a
                          storage directory and returns its public path.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Protocol, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from tenancy_kernel.logging_config import get_logger
from tenancy_kernel.models import NotificationModel

logger = get_logger("services.collaborators")


@runtime_checkable
class Notifier(Protocol):
    def notify(
        self,
        user_id: UUID,
        kind: str,
        title: str,
        body: str,
        *,
        tenancy_id: UUID | None = None,
        payment_id: UUID | None = None,
    ) -> None:
        ...


@runtime_checkable
class DocumentRenderer(Protocol):
    def render(self, kind: str, data: dict[str, Any]) -> str:
        """Render a document and return its storage path."""
        ...


@dataclass(frozen=True)
class SentNotification:
    user_id: UUID
    kind: str
    title: str
    body: str
    tenancy_id: UUID | None = None
    payment_id: UUID | None = None


class RecordingNotifier:
    """In-memory notifier."""

    def __init__(self) -> None:
        self.sent: list[SentNotification] = []

    def notify(self, user_id, kind, title, body, *, tenancy_id=None, payment_id=None) -> None:
        self.sent.append(
            SentNotification(
                user_id=user_id,
                kind=str(getattr(kind, "value", kind)),
                title=title,
                body=body,
                tenancy_id=tenancy_id,
                payment_id=payment_id,
            )
        )

    def of_kind(self, kind: str) -> list[SentNotification]:
        kind = str(getattr(kind, "value", kind))
        return [n for n in self.sent if n.kind == kind]


class SessionNotifier:
    """Persists notifications through a dedicated session per delivery."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def notify(self, user_id, kind, title, body, *, tenancy_id=None, payment_id=None) -> None:
        session = self._session_factory()
        try:
            session.add(
                NotificationModel(
                    user_id=user_id,
                    kind=str(getattr(kind, "value", kind)),
                    title=title,
                    body=body,
                    tenancy_id=tenancy_id,
                    payment_id=payment_id,
                )
            )
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _json_default(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonDocumentRenderer:
    """Stores documents as JSON files; returns ``/documents/<kind>-<id>.json``."""

    def __init__(self, storage_dir: Path, public_prefix: str = "/documents"):
        self._storage_dir = Path(storage_dir)
        self._public_prefix = public_prefix.rstrip("/")

    def render(self, kind: str, data: dict[str, Any]) -> str:
        kind = str(getattr(kind, "value", kind))
        self._storage_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{kind}-{uuid4()}.json"
        payload = {"kind": kind, "data": data}
        (self._storage_dir / filename).write_text(
            json.dumps(payload, default=_json_default, indent=2, sort_keys=True)
        )
        logger.info("document_rendered", extra={"kind": kind, "file": filename})
        return f"{self._public_prefix}/{filename}"
