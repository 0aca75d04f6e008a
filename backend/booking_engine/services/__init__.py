# backend/booking_engine/services/__init__.py
"""
Service layer for the booking engine.

Services hold the business rules and receive their repositories through
RepositoryFactory (or explicit injection in tests).
"""

from .availability_service import AvailabilityService
from .base import BaseService
from .booking_rules import BookingWindowPolicy
from .conflict_checker import BlockedRange, ConflictChecker, ranges_overlap
from .quota_service import QuotaService
from .schedule_resolver import ScheduleResolution, ScheduleResolver, ScheduleSource
from .slot_generator import generate_slots

__all__ = [
    "AvailabilityService",
    "BaseService",
    "BlockedRange",
    "BookingWindowPolicy",
    "ConflictChecker",
    "QuotaService",
    "ScheduleResolution",
    "ScheduleResolver",
    "ScheduleSource",
    "generate_slots",
    "ranges_overlap",
]
