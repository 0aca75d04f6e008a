# backend/booking_engine/repositories/conflict_checker_repository.py
"""
ConflictChecker Repository for the booking engine.

Returns the bookings that hold time on a resource at a location. Only
PENDING_PAYMENT and CONFIRMED bookings occupy time; CANCELLED rows never
leave this repository.
"""

from datetime import datetime
import logging
from typing import List, cast

from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..core.timezone_utils import ensure_utc
from ..models.booking import ACTIVE_STATUSES, Booking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ConflictCheckerRepository(BaseRepository[Booking]):
    """Repository for conflict checking data access."""

    def __init__(self, db: Session):
        """Initialize with Booking model as primary."""
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def get_active_bookings_in_range(
        self,
        resource_id: str,
        location_id: str,
        range_start: datetime,
        range_end: datetime,
    ) -> List[Booking]:
        """
        Active bookings whose [start_at, end_at) overlaps [range_start, range_end).

        Covers bookings that start inside the range, end inside it, or span
        it entirely. Each booking's service is loaded eagerly for its buffer.

        Args:
            resource_id: The resource to check
            location_id: The location to check
            range_start: Inclusive UTC start of the range
            range_end: Exclusive UTC end of the range

        Returns:
            List of bookings ordered by start time
        """
        try:
            query = (
                self.db.query(Booking)
                .options(joinedload(Booking.service))
                .filter(
                    Booking.resource_id == resource_id,
                    Booking.location_id == location_id,
                    Booking.status.in_(ACTIVE_STATUSES),
                    Booking.start_at < ensure_utc(range_end),
                    Booking.end_at > ensure_utc(range_start),
                )
            )

            return cast(List[Booking], query.order_by(Booking.start_at).all())

        except Exception as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")
