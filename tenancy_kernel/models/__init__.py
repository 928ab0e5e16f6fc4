"""ORM models. Importing this package registers every table on Base.metadata."""

from tenancy_kernel.models.deduction import DeductionModel
from tenancy_kernel.models.notice import NoticeModel
from tenancy_kernel.models.notification import NotificationModel
from tenancy_kernel.models.payment import PaymentPeriodModel
from tenancy_kernel.models.tenancy import TenancyModel

__all__ = [
    "DeductionModel",
    "NoticeModel",
    "NotificationModel",
    "PaymentPeriodModel",
    "TenancyModel",
]
