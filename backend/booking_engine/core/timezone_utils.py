"""
Timezone and wall-clock arithmetic for the availability engine.

Rules:
- All storage and comparisons: UTC
- Schedules are expressed in the location's local wall clock ("HH:MM")
- Conversions go through pytz calendar rules for the specific date, never
  through a fixed offset
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

import pytz

from .constants import MINUTES_PER_DAY
from .exceptions import ValidationException


class NonExistentLocalTimeError(ValueError):
    """Raised when a wall-clock time falls inside a DST spring-forward gap."""

    def __init__(self, date_key: str, time_str: str, timezone_str: str):
        self.date_key = date_key
        self.time_str = time_str
        self.timezone_str = timezone_str
        super().__init__(
            f"The time {time_str} does not exist on {date_key} in {timezone_str} "
            f"due to Daylight Saving Time"
        )


def get_timezone(tz_str: str) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValidationException: If the name is unknown
    """
    try:
        return pytz.timezone(tz_str)
    except (pytz.UnknownTimeZoneError, AttributeError) as exc:
        raise ValidationException(
            f"Unknown timezone: {tz_str!r}",
            code="INVALID_TIMEZONE",
            details={"timezone": tz_str},
        ) from exc


def time_to_minutes(time_str: str) -> int:
    """
    Convert "HH:MM" to minutes since local midnight.

    "24:00" is accepted as the end-of-day sentinel and maps to 1440.

    Raises:
        ValueError: If the string is not a valid HH:MM time
    """
    parts = time_str.split(":") if isinstance(time_str, str) else []
    if len(parts) != 2 or not all(p.isdigit() and len(p) == 2 for p in parts):
        raise ValueError(f"Invalid time format: {time_str!r} (expected HH:MM)")

    hours, minutes = int(parts[0]), int(parts[1])
    if hours == 24 and minutes == 0:
        return MINUTES_PER_DAY
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {time_str!r}")
    return hours * 60 + minutes


def minutes_to_time(minutes: int) -> str:
    """Convert minutes since local midnight back to "HH:MM" (inverse of time_to_minutes)."""
    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_date_key(date_key: str) -> date:
    """
    Parse a "YYYY-MM-DD" calendar date.

    Raises:
        ValidationException: If the string is not a valid date
    """
    try:
        if len(date_key) != 10:
            raise ValueError(date_key)
        return date.fromisoformat(date_key)
    except (TypeError, ValueError) as exc:
        raise ValidationException(
            f"date must be in YYYY-MM-DD format, got {date_key!r}",
            code="INVALID_DATE",
            details={"date": date_key},
        ) from exc


def ensure_utc(dt: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to already be UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local(instant: datetime, tz_str: str) -> datetime:
    """Convert an instant to the location's local wall clock."""
    return ensure_utc(instant).astimezone(get_timezone(tz_str))


def date_key(instant: datetime, tz_str: str) -> str:
    """Calendar date ("YYYY-MM-DD") of an instant in the given timezone."""
    return to_local(instant, tz_str).date().isoformat()


def weekday_of_date(d: date) -> int:
    """Day of week with 0=Sunday .. 6=Saturday."""
    return d.isoweekday() % 7


def weekday(instant: datetime, tz_str: str) -> int:
    """Day of week (0=Sunday) of an instant in the given timezone."""
    return weekday_of_date(to_local(instant, tz_str).date())


def _localize(tz: pytz.BaseTzInfo, naive_dt: datetime, strict: bool) -> datetime:
    """
    Attach tz rules valid on naive_dt's date.

    Ambiguous times (fall back) resolve to the first occurrence. Non-existent
    times (spring forward) raise in strict mode; otherwise they take the
    pre-transition offset and land past the gap.
    """
    try:
        # is_dst=None raises exception for ambiguous/nonexistent times
        return tz.localize(naive_dt, is_dst=None)
    except pytz.exceptions.AmbiguousTimeError:
        return tz.localize(naive_dt, is_dst=True)
    except pytz.exceptions.NonExistentTimeError:
        if strict:
            raise
        return tz.localize(naive_dt, is_dst=False)


def wall_clock_to_instant(
    date_str: str, time_str: str, tz_str: str, strict: bool = True
) -> datetime:
    """
    Convert a local (date, "HH:MM") pair to a UTC instant.

    For every wall time that exists on that date, converting the result back
    with instant_to_wall_clock() yields the original pair. With strict=False a
    time skipped by DST is read with the pre-transition offset, landing just
    past the gap.

    Raises:
        NonExistentLocalTimeError: If strict and the time is skipped by a DST
            transition
    """
    tz = get_timezone(tz_str)
    minutes = time_to_minutes(time_str)
    local_date = parse_date_key(date_str) + timedelta(days=minutes // MINUTES_PER_DAY)
    minutes %= MINUTES_PER_DAY
    naive_dt = datetime.combine(
        local_date, time(minutes // 60, minutes % 60)
    )  # utc-naive-ok: Intentionally naive for pytz.localize()

    try:
        local_dt = _localize(tz, naive_dt, strict=strict)
    except pytz.exceptions.NonExistentTimeError as exc:
        raise NonExistentLocalTimeError(date_str, time_str, tz_str) from exc

    return local_dt.astimezone(timezone.utc)


def instant_to_wall_clock(instant: datetime, tz_str: str) -> Tuple[str, str]:
    """Convert a UTC instant to the local (date "YYYY-MM-DD", time "HH:MM") pair."""
    local_dt = to_local(instant, tz_str)
    return local_dt.date().isoformat(), local_dt.strftime("%H:%M")


def format_display(instant: datetime, tz_str: str) -> str:
    """Render an instant as local "HH:MM" for storefront display."""
    return to_local(instant, tz_str).strftime("%H:%M")


def local_day_bounds(date_str: str, tz_str: str) -> Tuple[datetime, datetime]:
    """
    UTC instants bounding the local calendar day [00:00, 24:00).

    The end is the next day's local midnight, so DST days come out 23 or 25
    hours long.
    """
    tz = get_timezone(tz_str)
    day = parse_date_key(date_str)
    start_naive = datetime.combine(day, time(0, 0))  # utc-naive-ok: pytz.localize() input
    end_naive = datetime.combine(day + timedelta(days=1), time(0, 0))  # utc-naive-ok
    start = _localize(tz, start_naive, strict=False).astimezone(timezone.utc)
    end = _localize(tz, end_naive, strict=False).astimezone(timezone.utc)
    return start, end
