# backend/tests/unit/services/test_slot_generator.py
"""Slot generation over working hours and blocked ranges (no database)."""

from datetime import datetime, timedelta, timezone

import pytest

from booking_engine.core.timezone_utils import time_to_minutes, wall_clock_to_instant
from booking_engine.services.conflict_checker import BlockedRange, ranges_overlap
from booking_engine.services.slot_generator import generate_slots

TOKYO = "Asia/Tokyo"
MONDAY = "2024-01-08"


def _tokyo(time_str: str) -> datetime:
    return wall_clock_to_instant(MONDAY, time_str, TOKYO)


def _buffered_booking(start: str, end: str, buffer_minutes: int) -> BlockedRange:
    buffer = timedelta(minutes=buffer_minutes)
    return BlockedRange(_tokyo(start) - buffer, _tokyo(end) + buffer, "booking-1")


class TestGenerateSlots:
    def test_full_day_without_bookings(self):
        slots = generate_slots(
            work_start=time_to_minutes("09:00"),
            work_end=time_to_minutes("18:00"),
            duration_minutes=60,
            buffer_minutes=10,
            slot_interval=30,
            blocked_ranges=[],
            timezone_str=TOKYO,
            date_key=MONDAY,
        )

        assert len(slots) == 16
        assert slots[0].display_start == "09:00"
        assert slots[0].display_end == "10:00"
        assert slots[-1].display_start == "16:30"
        assert slots[-1].display_end == "17:30"
        assert slots[0].start_time == datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc)
        assert slots[0].end_time - slots[0].start_time == timedelta(minutes=60)

    def test_slots_stay_inside_working_hours(self):
        work_start, work_end = time_to_minutes("10:15"), time_to_minutes("14:40")
        slots = generate_slots(work_start, work_end, 45, 15, 20, [], TOKYO, MONDAY)

        assert slots
        for slot in slots:
            local_start = time_to_minutes(slot.display_start)
            assert local_start >= work_start
            assert local_start + 45 + 15 <= work_end

    def test_buffered_booking_blocks_neighbours(self):
        blocked = [_buffered_booking("10:00", "11:00", buffer_minutes=10)]
        slots = generate_slots(
            time_to_minutes("09:00"), time_to_minutes("12:00"), 20, 0, 10, blocked, TOKYO, MONDAY
        )
        starts = [slot.display_start for slot in slots]

        # [9:30, 9:50) only touches the block starting at 9:50
        assert "09:30" in starts
        assert "09:40" not in starts
        assert "11:00" not in starts
        assert "11:10" in starts

    def test_duration_longer_than_window(self):
        slots = generate_slots(
            time_to_minutes("09:00"), time_to_minutes("10:00"), 50, 20, 30, [], TOKYO, MONDAY
        )
        assert slots == []

    def test_uneven_interval_leaves_tail_unused(self):
        slots = generate_slots(
            time_to_minutes("09:00"), time_to_minutes("10:40"), 30, 0, 45, [], TOKYO, MONDAY
        )
        assert [slot.display_start for slot in slots] == ["09:00", "09:45"]

    def test_spring_forward_gap_is_skipped(self):
        slots = generate_slots(
            time_to_minutes("01:00"),
            time_to_minutes("04:00"),
            30,
            0,
            30,
            [],
            "America/New_York",
            "2024-03-10",
        )
        assert [slot.display_start for slot in slots] == ["01:00", "01:30", "03:00", "03:30"]

    def test_deterministic(self):
        blocked = [_buffered_booking("13:00", "14:00", 15)]
        first = generate_slots(540, 1080, 60, 10, 30, blocked, TOKYO, MONDAY)
        second = generate_slots(540, 1080, 60, 10, 30, list(reversed(blocked)), TOKYO, MONDAY)
        assert first == second

    @pytest.mark.parametrize(
        "duration,buffer,interval", [(0, 0, 30), (30, -5, 30), (30, 0, 0)]
    )
    def test_invalid_lengths(self, duration, buffer, interval):
        with pytest.raises(ValueError):
            generate_slots(540, 1080, duration, buffer, interval, [], TOKYO, MONDAY)


class TestRangesOverlap:
    def test_touching_ranges_do_not_overlap(self):
        nine, ten, eleven = _tokyo("09:00"), _tokyo("10:00"), _tokyo("11:00")
        assert not ranges_overlap(nine, ten, ten, eleven)
        assert ranges_overlap(nine, eleven, ten, eleven)
        assert ranges_overlap(ten, ten + timedelta(minutes=1), nine, eleven)
