# backend/booking_engine/repositories/__init__.py
"""
Repository layer for the booking engine.

Data access lives here; services receive repositories through
RepositoryFactory.
"""

from .base_repository import BaseRepository
from .catalog_repository import CatalogRepository
from .conflict_checker_repository import ConflictCheckerRepository
from .factory import RepositoryFactory
from .schedule_repository import ScheduleRepository
from .tenant_repository import TenantRepository

__all__ = [
    "BaseRepository",
    "CatalogRepository",
    "ConflictCheckerRepository",
    "RepositoryFactory",
    "ScheduleRepository",
    "TenantRepository",
]
