from tenancy_kernel.services.base import BaseService

__all__ = ["BaseService"]
