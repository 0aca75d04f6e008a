# backend/tests/unit/core/test_timezone_utils.py
"""Wall-clock arithmetic, including DST transitions in America/New_York."""

from datetime import date, datetime, timedelta, timezone

import pytest

from booking_engine.core.exceptions import ValidationException
from booking_engine.core.timezone_utils import (
    NonExistentLocalTimeError,
    date_key,
    ensure_utc,
    format_display,
    get_timezone,
    instant_to_wall_clock,
    local_day_bounds,
    minutes_to_time,
    parse_date_key,
    time_to_minutes,
    wall_clock_to_instant,
    weekday,
    weekday_of_date,
)


class TestMinutes:
    @pytest.mark.parametrize(
        "value,expected",
        [("00:00", 0), ("09:30", 570), ("23:59", 1439), ("24:00", 1440)],
    )
    def test_time_to_minutes(self, value, expected):
        assert time_to_minutes(value) == expected
        assert minutes_to_time(expected) == value

    @pytest.mark.parametrize("value", ["9:00", "24:01", "12:60", "ab:cd", "", "09:00:00"])
    def test_invalid_times_rejected(self, value):
        with pytest.raises(ValueError):
            time_to_minutes(value)

    def test_minutes_out_of_range(self):
        with pytest.raises(ValueError):
            minutes_to_time(1441)


class TestCalendar:
    def test_weekday_is_sunday_based(self):
        assert weekday_of_date(date(2024, 1, 7)) == 0  # Sunday
        assert weekday_of_date(date(2024, 1, 8)) == 1  # Monday
        assert weekday_of_date(date(2024, 1, 13)) == 6  # Saturday

    def test_date_key_uses_local_calendar(self):
        # 20:00 UTC Sunday is already Monday morning in Tokyo
        instant = datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc)
        assert date_key(instant, "Asia/Tokyo") == "2024-01-08"
        assert weekday(instant, "Asia/Tokyo") == 1
        assert date_key(instant, "America/New_York") == "2024-01-07"

    def test_parse_date_key_rejects_bad_input(self):
        with pytest.raises(ValidationException):
            parse_date_key("2024-1-8")
        with pytest.raises(ValidationException):
            parse_date_key("2024-02-30")

    def test_unknown_timezone(self):
        with pytest.raises(ValidationException) as exc_info:
            get_timezone("Mars/Olympus_Mons")
        assert exc_info.value.code == "INVALID_TIMEZONE"

    def test_naive_datetimes_are_utc(self):
        naive = datetime(2024, 1, 8, 0, 0)
        assert ensure_utc(naive) == datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc)


class TestWallClockConversion:
    def test_tokyo_round_trip(self):
        instant = wall_clock_to_instant("2024-01-08", "09:00", "Asia/Tokyo")
        assert instant == datetime(2024, 1, 8, 0, 0, tzinfo=timezone.utc)
        assert instant_to_wall_clock(instant, "Asia/Tokyo") == ("2024-01-08", "09:00")
        assert format_display(instant, "Asia/Tokyo") == "09:00"

    def test_round_trip_across_spring_forward(self):
        tz = "America/New_York"
        before = wall_clock_to_instant("2024-03-10", "01:30", tz)
        after = wall_clock_to_instant("2024-03-10", "03:30", tz)

        assert before == datetime(2024, 3, 10, 6, 30, tzinfo=timezone.utc)  # EST
        assert after == datetime(2024, 3, 10, 7, 30, tzinfo=timezone.utc)  # EDT
        assert instant_to_wall_clock(before, tz) == ("2024-03-10", "01:30")
        assert instant_to_wall_clock(after, tz) == ("2024-03-10", "03:30")

    def test_nonexistent_time_raises(self):
        with pytest.raises(NonExistentLocalTimeError):
            wall_clock_to_instant("2024-03-10", "02:30", "America/New_York")

    def test_ambiguous_time_takes_first_occurrence(self):
        instant = wall_clock_to_instant("2024-11-03", "01:30", "America/New_York")
        assert instant == datetime(2024, 11, 3, 5, 30, tzinfo=timezone.utc)  # still EDT
        assert instant_to_wall_clock(instant, "America/New_York") == ("2024-11-03", "01:30")

    def test_end_of_day_sentinel_rolls_over(self):
        instant = wall_clock_to_instant("2024-01-08", "24:00", "Asia/Tokyo")
        assert instant_to_wall_clock(instant, "Asia/Tokyo") == ("2024-01-09", "00:00")


class TestLocalDayBounds:
    def test_regular_day(self):
        start, end = local_day_bounds("2024-01-08", "Asia/Tokyo")
        assert start == datetime(2024, 1, 7, 15, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(hours=24)

    def test_short_and_long_dst_days(self):
        spring_start, spring_end = local_day_bounds("2024-03-10", "America/New_York")
        fall_start, fall_end = local_day_bounds("2024-11-03", "America/New_York")
        assert spring_end - spring_start == timedelta(hours=23)
        assert fall_end - fall_start == timedelta(hours=25)
