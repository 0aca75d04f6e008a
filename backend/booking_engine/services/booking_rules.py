# backend/booking_engine/services/booking_rules.py
"""
Booking window rules applied at checkout.

A requested start must not be in the past, must leave the minimum lead
time, and must not be further ahead than the advance-booking limit.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List

from ..core.config import settings
from ..core.constants import MAX_BOOKING_ADVANCE_DAYS, MIN_BOOKING_LEAD_MINUTES
from ..core.timezone_utils import ensure_utc


@dataclass(frozen=True)
class BookingWindowPolicy:
    min_lead_minutes: int = MIN_BOOKING_LEAD_MINUTES
    max_advance_days: int = MAX_BOOKING_ADVANCE_DAYS

    @classmethod
    def from_settings(cls) -> "BookingWindowPolicy":
        return cls(
            min_lead_minutes=settings.min_booking_lead_minutes,
            max_advance_days=settings.max_booking_advance_days,
        )

    def violations(self, start: datetime, now: datetime) -> List[str]:
        """
        Check a requested start against the booking window.

        Returns:
            Human-readable violations; empty when the start is acceptable
        """
        start = ensure_utc(start)
        now = ensure_utc(now)
        errors: List[str] = []

        if start < now:
            errors.append("The requested start time is in the past.")
        if start < now + timedelta(minutes=self.min_lead_minutes):
            errors.append(
                f"Bookings must start at least {self.min_lead_minutes} minutes from now."
            )
        if start > now + timedelta(days=self.max_advance_days):
            errors.append(
                f"Bookings cannot be made more than {self.max_advance_days} days in advance."
            )
        return errors

    def is_allowed(self, start: datetime, now: datetime) -> bool:
        return not self.violations(start, now)
