# backend/booking_engine/repositories/factory.py
"""
Repository Factory for the booking engine.

Provides centralized creation of repository instances,
ensuring consistent initialization and dependency injection.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .catalog_repository import CatalogRepository
    from .conflict_checker_repository import ConflictCheckerRepository
    from .schedule_repository import ScheduleRepository
    from .tenant_repository import TenantRepository


class RepositoryFactory:
    """
    Factory class for creating repository instances.

    Centralizes repository creation so services can be handed alternative
    implementations (or mocks) without knowing the concrete classes.
    """

    @staticmethod
    def create_schedule_repository(db: Session) -> "ScheduleRepository":
        """Create repository for operating-hours lookups."""
        from .schedule_repository import ScheduleRepository

        return ScheduleRepository(db)

    @staticmethod
    def create_conflict_checker_repository(db: Session) -> "ConflictCheckerRepository":
        """Create repository for conflict checking queries."""
        from .conflict_checker_repository import ConflictCheckerRepository

        return ConflictCheckerRepository(db)

    @staticmethod
    def create_tenant_repository(db: Session) -> "TenantRepository":
        """Create repository for tenant plans and usage counters."""
        from .tenant_repository import TenantRepository

        return TenantRepository(db)

    @staticmethod
    def create_catalog_repository(db: Session) -> "CatalogRepository":
        """Create repository for resource, location and service lookups."""
        from .catalog_repository import CatalogRepository

        return CatalogRepository(db)
