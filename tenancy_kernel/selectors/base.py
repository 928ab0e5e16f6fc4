"""
Module: tenancy_kernel.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Kernel > Selectors.  Selectors NEVER create, modify,
    or delete data: no add, delete, flush or commit on the caller's session.
    They return frozen DTOs, not ORM instances.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from tenancy_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):

    def __init__(self, session: Session):
        self.session = session
