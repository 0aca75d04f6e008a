# backend/tests/services/test_schedule_repository.py
"""Schedule lookups and the uniqueness rules behind them."""

from datetime import date

import pytest
from sqlalchemy.exc import IntegrityError

from booking_engine.repositories.schedule_repository import ScheduleRepository
from tests.factories import (
    create_date_override,
    create_location,
    create_resource,
    create_tenant,
    create_weekly_schedule,
)


@pytest.fixture
def setup(db):
    tenant = create_tenant(db)
    return create_location(db, tenant), create_resource(db, tenant)


class TestScheduleRepository:
    def test_weekly_lookup_ignores_override_rows(self, db, setup):
        location, resource = setup
        create_date_override(db, resource, location, date(2024, 1, 8), "10:00", "12:00")
        repository = ScheduleRepository(db)

        assert repository.get_weekly_schedule(resource.id, location.id, 1) is None

        weekly = create_weekly_schedule(db, resource, location, day_of_week=1)
        assert repository.get_weekly_schedule(resource.id, location.id, 1).id == weekly.id

    def test_override_lookup_returns_unavailable_rows(self, db, setup):
        location, resource = setup
        closed = create_date_override(
            db, resource, location, date(2024, 1, 8), is_available=False
        )

        found = ScheduleRepository(db).get_date_override(resource.id, location.id, date(2024, 1, 8))

        assert found.id == closed.id
        assert found.is_available is False

    def test_duplicate_weekly_rows_rejected(self, db, setup):
        location, resource = setup
        create_weekly_schedule(db, resource, location, day_of_week=3)

        with pytest.raises(IntegrityError):
            create_weekly_schedule(db, resource, location, day_of_week=3, start_time="10:00")
        db.rollback()

    def test_duplicate_overrides_rejected(self, db, setup):
        location, resource = setup
        create_date_override(db, resource, location, date(2024, 1, 8))

        with pytest.raises(IntegrityError):
            create_date_override(db, resource, location, date(2024, 1, 8), is_available=False)
        db.rollback()

    def test_weekly_and_overrides_coexist(self, db, setup):
        location, resource = setup
        create_weekly_schedule(db, resource, location, day_of_week=1)
        create_date_override(db, resource, location, date(2024, 1, 8))
        create_date_override(db, resource, location, date(2024, 1, 15))

        repository = ScheduleRepository(db)
        assert repository.get_date_override(resource.id, location.id, date(2024, 1, 15))
        assert repository.get_weekly_schedule(resource.id, location.id, 1)
