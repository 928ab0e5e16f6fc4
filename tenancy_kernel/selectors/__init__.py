from tenancy_kernel.selectors.base import BaseSelector
from tenancy_kernel.selectors.tenancy_selector import TenancySelector, period_status

__all__ = ["BaseSelector", "TenancySelector", "period_status"]
