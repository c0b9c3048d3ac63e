"""
Repository pattern: data access abstraction, decouples service layer from database session.
"""

from .base import IRepository, Repository, SoftDeleteMixin
from .pagination import PageRequest, PagedResult, normalize_page, paginate
from .unit_of_work import UnitOfWork, UnitOfWorkFactory

__all__ = [
    "IRepository",
    "Repository",
    "SoftDeleteMixin",
    "PageRequest",
    "PagedResult",
    "normalize_page",
    "paginate",
    "UnitOfWork",
    "UnitOfWorkFactory",
]
