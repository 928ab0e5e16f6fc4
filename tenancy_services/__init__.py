"""
Imperative shell of the tenancy lifecycle.

The services load rows, call the pure engines in ``tenancy_engines``, write
the results back and own the transaction boundary.  ``TenancyOrchestrator``
composes them for callers.
"""

from tenancy_services.collaborators import (
    DocumentRenderer,
    JsonDocumentRenderer,
    Notifier,
    RecordingNotifier,
    SentNotification,
    SessionNotifier,
)
from tenancy_services.deduction_service import DeductionService
from tenancy_services.dispatch import PostCommitDispatcher
from tenancy_services.expiry_service import ExpiryService, SweepResult
from tenancy_services.notice_service import NoticeService
from tenancy_services.orchestrator import TenancyOrchestrator
from tenancy_services.payment_service import PaymentService
from tenancy_services.scheduler import DailySweepScheduler
from tenancy_services.tenancy_service import TenancyService

__all__ = [
    "DailySweepScheduler",
    "DeductionService",
    "DocumentRenderer",
    "ExpiryService",
    "JsonDocumentRenderer",
    "NoticeService",
    "Notifier",
    "PaymentService",
    "PostCommitDispatcher",
    "RecordingNotifier",
    "SentNotification",
    "SessionNotifier",
    "SweepResult",
    "TenancyOrchestrator",
    "TenancyService",
]
