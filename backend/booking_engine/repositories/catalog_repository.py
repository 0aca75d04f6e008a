# backend/booking_engine/repositories/catalog_repository.py
"""
Catalog Repository for the booking engine.

Lookups the public availability endpoint needs before it can ask for slots:
the tenant's resource, its location (for the timezone) and the booked
service (for duration and buffer).
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.location import Location
from ..models.resource import Resource, ResourceService
from ..models.service import Service
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class CatalogRepository(BaseRepository[Resource]):
    """Tenant-scoped reads of resources, locations and services."""

    def __init__(self, db: Session):
        super().__init__(db, Resource)
        self.logger = logging.getLogger(__name__)

    def get_resource(self, tenant_id: str, resource_id: str) -> Optional[Resource]:
        try:
            return (
                self.db.query(Resource)
                .filter(Resource.id == resource_id, Resource.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting resource {resource_id}: {str(e)}")
            raise RepositoryException(f"Failed to get resource: {str(e)}")

    def get_active_location(self, tenant_id: str, location_id: str) -> Optional[Location]:
        """Location owned by the tenant; inactive locations are treated as missing."""
        try:
            return (
                self.db.query(Location)
                .filter(
                    Location.id == location_id,
                    Location.tenant_id == tenant_id,
                    Location.is_active.is_(True),
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting location {location_id}: {str(e)}")
            raise RepositoryException(f"Failed to get location: {str(e)}")

    def get_service(self, tenant_id: str, service_id: str) -> Optional[Service]:
        try:
            return (
                self.db.query(Service)
                .filter(Service.id == service_id, Service.tenant_id == tenant_id)
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting service {service_id}: {str(e)}")
            raise RepositoryException(f"Failed to get service: {str(e)}")

    def get_custom_duration(self, resource_id: str, service_id: str) -> Optional[int]:
        """Resource-specific duration for a service, if one is configured."""
        try:
            link = (
                self.db.query(ResourceService)
                .filter(
                    ResourceService.resource_id == resource_id,
                    ResourceService.service_id == service_id,
                )
                .first()
            )
        except SQLAlchemyError as e:
            self.logger.error(
                f"Error getting custom duration for {resource_id}/{service_id}: {str(e)}"
            )
            raise RepositoryException(f"Failed to get resource service link: {str(e)}")
        return link.custom_duration if link is not None else None
