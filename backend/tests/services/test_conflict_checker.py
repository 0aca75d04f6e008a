# backend/tests/services/test_conflict_checker.py
"""Blocked ranges built from bookings stored in SQLite."""

from datetime import datetime, timedelta, timezone

from booking_engine.core.timezone_utils import wall_clock_to_instant
from booking_engine.models import BookingStatus
from booking_engine.services.conflict_checker import ConflictChecker
from tests.factories import (
    create_booking,
    create_location,
    create_resource,
    create_service,
    create_tenant,
)

TOKYO = "Asia/Tokyo"
MONDAY = "2024-01-08"


def _at(time_str: str, day: str = MONDAY) -> datetime:
    return wall_clock_to_instant(day, time_str, TOKYO)


class TestConflictChecker:
    def _setup(self, db):
        tenant = create_tenant(db)
        location = create_location(db, tenant)
        resource = create_resource(db, tenant)
        return tenant, location, resource

    def test_buffer_widens_booking(self, db):
        tenant, location, resource = self._setup(db)
        service = create_service(db, tenant, duration_min=60, buffer_time_min=10)
        booking = create_booking(
            db, tenant, resource, location, _at("10:00"), _at("11:00"), service=service
        )

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert len(blocked) == 1
        assert blocked[0].start == _at("09:50")
        assert blocked[0].end == _at("11:10")
        assert blocked[0].booking_id == booking.id

    def test_booking_without_service_has_no_buffer(self, db):
        tenant, location, resource = self._setup(db)
        create_booking(db, tenant, resource, location, _at("10:00"), _at("11:00"))

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert (blocked[0].start, blocked[0].end) == (_at("10:00"), _at("11:00"))

    def test_cancelled_bookings_never_block(self, db):
        tenant, location, resource = self._setup(db)
        create_booking(
            db,
            tenant,
            resource,
            location,
            _at("10:00"),
            _at("11:00"),
            status=BookingStatus.CANCELLED,
        )
        create_booking(
            db,
            tenant,
            resource,
            location,
            _at("13:00"),
            _at("14:00"),
            status=BookingStatus.PENDING_PAYMENT,
        )

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert [r.start for r in blocked] == [_at("13:00")]

    def test_day_boundary_in_location_timezone(self, db):
        tenant, location, resource = self._setup(db)
        # Spans midnight into Monday
        create_booking(db, tenant, resource, location, _at("23:00", "2024-01-07"), _at("01:00"))
        # Entirely on Tuesday
        create_booking(
            db, tenant, resource, location, _at("09:00", "2024-01-09"), _at("10:00", "2024-01-09")
        )
        # Ends exactly at Monday 00:00
        create_booking(db, tenant, resource, location, _at("22:00", "2024-01-07"), _at("00:00"))

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert len(blocked) == 1
        assert blocked[0].end == datetime(2024, 1, 7, 16, 0, tzinfo=timezone.utc)

    def test_other_resources_and_locations_ignored(self, db):
        tenant, location, resource = self._setup(db)
        other_resource = create_resource(db, tenant, name="Stylist B")
        other_location = create_location(db, tenant)
        create_booking(db, tenant, other_resource, location, _at("10:00"), _at("11:00"))
        create_booking(db, tenant, resource, other_location, _at("10:00"), _at("11:00"))

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert blocked == []

    def test_results_are_timezone_aware(self, db):
        tenant, location, resource = self._setup(db)
        create_booking(db, tenant, resource, location, _at("10:00"), _at("10:30"))

        blocked = ConflictChecker(db).get_blocked_ranges(resource.id, location.id, MONDAY, TOKYO)

        assert blocked[0].start.tzinfo is not None
        assert blocked[0].end - blocked[0].start == timedelta(minutes=30)
