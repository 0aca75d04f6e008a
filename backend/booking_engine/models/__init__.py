# backend/booking_engine/models/__init__.py
"""
SQLAlchemy models for the booking engine.

Importing this package registers every table on Base.metadata.
"""

from .booking import ACTIVE_STATUSES, Booking, BookingStatus
from .location import Location
from .resource import Resource, ResourceService, ResourceType
from .schedule import Schedule
from .service import Service
from .tenant import Tenant

__all__ = [
    "ACTIVE_STATUSES",
    "Booking",
    "BookingStatus",
    "Location",
    "Resource",
    "ResourceService",
    "ResourceType",
    "Schedule",
    "Service",
    "Tenant",
]
