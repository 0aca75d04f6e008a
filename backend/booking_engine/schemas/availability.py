# backend/booking_engine/schemas/availability.py
"""
Availability result schemas.

These are the values AvailabilityService returns. Instants are UTC-aware
datetimes; display strings are local "HH:MM" in the location's timezone.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .quota import UsageInfo


class AvailableSlot(BaseModel):
    """A bookable window. end_time is the end of the service, excluding buffer."""

    start_time: datetime = Field(description="Slot start (UTC)")
    end_time: datetime = Field(description="Service end (UTC)")
    display_start: str = Field(description="Local start in HH:MM")
    display_end: str = Field(description="Local end in HH:MM")

    model_config = ConfigDict(frozen=True)


class BlockedRangeOut(BaseModel):
    """A booking widened by its buffer, as reported in debug output."""

    start: datetime
    end: datetime
    booking_id: Optional[str] = None


class AvailabilityDebug(BaseModel):
    """Diagnostics describing how a slot list was derived."""

    schedule_found: bool
    schedule_source: str
    working_hours: Optional[str] = Field(
        None, description="Resolved local working hours, e.g. 09:00-18:00"
    )
    existing_bookings_count: int = 0
    blocked_ranges: List[BlockedRangeOut] = Field(default_factory=list)


class AvailableSlotsResult(BaseModel):
    """
    Outcome of a single-day availability query.

    A closed day is a success with no slots. Failures set error and
    error_code; a quota refusal also sets quota_limit_reached and carries
    the usage snapshot for an upgrade prompt.
    """

    success: bool
    slots: List[AvailableSlot] = Field(default_factory=list)
    error: Optional[str] = None
    error_code: Optional[str] = None
    quota_limit_reached: bool = False
    usage: Optional[UsageInfo] = Field(None, description="Usage snapshot on quota refusal")
    debug: Optional[AvailabilityDebug] = None


class SlotAvailability(BaseModel):
    """Whether one specific start time can be booked."""

    available: bool
    reason: Optional[str] = None
