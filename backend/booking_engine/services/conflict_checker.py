# backend/booking_engine/services/conflict_checker.py
"""
Conflict Checker Service for the booking engine.

Turns the bookings on a resource into blocked ranges: each active booking
widened by its service's buffer on both sides. Ranges are left unsorted and
unmerged; callers test candidates against every range pairwise.

All intervals are half-open, so ranges that only touch do not overlap.
"""

from datetime import datetime, timedelta
import logging
from typing import Iterable, List, NamedTuple, Optional

from sqlalchemy.orm import Session

from ..core.timezone_utils import ensure_utc, local_day_bounds
from ..models.booking import Booking
from ..repositories import RepositoryFactory
from ..repositories.conflict_checker_repository import ConflictCheckerRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class BlockedRange(NamedTuple):
    """Time a booking holds, buffer included: [start, end)."""

    start: datetime
    end: datetime
    booking_id: Optional[str] = None


def ranges_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap test; [9:00, 10:00) and [10:00, 11:00) do not overlap."""
    return a_start < b_end and a_end > b_start


def blocked_range_for(booking: Booking) -> BlockedRange:
    buffer = timedelta(minutes=booking.buffer_minutes)
    return BlockedRange(
        start=ensure_utc(booking.start_at) - buffer,
        end=ensure_utc(booking.end_at) + buffer,
        booking_id=booking.id,
    )


def find_overlapping(
    start: datetime, end: datetime, blocked_ranges: Iterable[BlockedRange]
) -> List[BlockedRange]:
    """Blocked ranges that overlap [start, end)."""
    return [r for r in blocked_ranges if ranges_overlap(start, end, r.start, r.end)]


class ConflictChecker(BaseService):
    """Builds the buffered blocked ranges for a resource's local day."""

    def __init__(self, db: Session, repository: Optional[ConflictCheckerRepository] = None):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional ConflictCheckerRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_conflict_checker_repository(db)

    @BaseService.measure_operation("get_blocked_ranges")
    def get_blocked_ranges(
        self, resource_id: str, location_id: str, date_key: str, timezone_str: str
    ) -> List[BlockedRange]:
        """
        Buffered ranges of active bookings touching a local calendar day.

        Bookings are selected by overlap with the day's [00:00, 24:00) in
        timezone_str, so a booking that spans midnight is included on both
        days.

        Args:
            resource_id: Resource to check
            location_id: Location to check
            date_key: Local date as YYYY-MM-DD
            timezone_str: IANA timezone of the location

        Returns:
            One BlockedRange per booking, in no guaranteed order
        """
        day_start, day_end = local_day_bounds(date_key, timezone_str)
        bookings = self.repository.get_active_bookings_in_range(
            resource_id, location_id, day_start, day_end
        )
        blocked = [blocked_range_for(booking) for booking in bookings]

        if blocked:
            self.logger.debug(
                f"{len(blocked)} blocked ranges for {resource_id}@{location_id} on {date_key}"
            )
        return blocked
