# backend/booking_engine/services/slot_generator.py
"""
Slot generation.

Walks a working-hours window on a fixed grid and keeps every candidate whose
service time plus trailing buffer is clear of all blocked ranges. Pure: no
database access and no clock.
"""

from datetime import timedelta
import logging
from typing import Iterable, List

from ..core.timezone_utils import (
    NonExistentLocalTimeError,
    format_display,
    minutes_to_time,
    wall_clock_to_instant,
)
from ..schemas.availability import AvailableSlot
from .conflict_checker import BlockedRange, ranges_overlap

logger = logging.getLogger(__name__)


def generate_slots(
    work_start: int,
    work_end: int,
    duration_minutes: int,
    buffer_minutes: int,
    slot_interval: int,
    blocked_ranges: Iterable[BlockedRange],
    timezone_str: str,
    date_key: str,
) -> List[AvailableSlot]:
    """
    Generate bookable slots for one local day.

    A candidate starting at minute m is considered while
    m + duration + buffer <= work_end. It is kept when
    [start, start + duration + buffer) overlaps no blocked range.

    Args:
        work_start: Window start, minutes after local midnight
        work_end: Window end, minutes after local midnight (exclusive)
        duration_minutes: Service length
        buffer_minutes: Turnaround time required after the service
        slot_interval: Step between candidate starts
        blocked_ranges: Buffered ranges of existing bookings
        timezone_str: IANA timezone of the location
        date_key: Local date as YYYY-MM-DD

    Returns:
        Slots in ascending start order

    Raises:
        ValueError: If duration or interval is not positive, or buffer is negative
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if buffer_minutes < 0:
        raise ValueError("buffer_minutes must not be negative")
    if slot_interval <= 0:
        raise ValueError("slot_interval must be positive")

    blocked = list(blocked_ranges)
    duration = timedelta(minutes=duration_minutes)
    buffer = timedelta(minutes=buffer_minutes)
    slots: List[AvailableSlot] = []

    slot_start = work_start
    while slot_start + duration_minutes + buffer_minutes <= work_end:
        try:
            candidate_start = wall_clock_to_instant(
                date_key, minutes_to_time(slot_start), timezone_str
            )
        except NonExistentLocalTimeError:
            # Wall time skipped by a DST transition
            logger.debug(f"Skipping {minutes_to_time(slot_start)} on {date_key} ({timezone_str})")
            slot_start += slot_interval
            continue

        service_end = candidate_start + duration
        block_end = service_end + buffer

        if not any(ranges_overlap(candidate_start, block_end, r.start, r.end) for r in blocked):
            slots.append(
                AvailableSlot(
                    start_time=candidate_start,
                    end_time=service_end,
                    display_start=format_display(candidate_start, timezone_str),
                    display_end=format_display(service_end, timezone_str),
                )
            )

        slot_start += slot_interval

    return slots
