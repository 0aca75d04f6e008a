# backend/tests/unit/services/test_schedule_resolver.py
"""Override-over-weekly precedence, with the repository mocked out."""

from datetime import date
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session

from booking_engine.core.exceptions import RepositoryException, ServiceException
from booking_engine.models.schedule import Schedule
from booking_engine.repositories.schedule_repository import ScheduleRepository
from booking_engine.services.schedule_resolver import ScheduleResolver, ScheduleSource

MONDAY = date(2024, 1, 8)


def _row(start="09:00", end="18:00", is_available=True, specific_date=None, day_of_week=None):
    return Schedule(
        id="sched-1",
        resource_id="res-1",
        location_id="loc-1",
        day_of_week=day_of_week,
        specific_date=specific_date,
        start_time=start,
        end_time=end,
        is_available=is_available,
    )


class TestScheduleResolver:
    @pytest.fixture
    def repository(self):
        return Mock(spec=ScheduleRepository)

    @pytest.fixture
    def resolver(self, repository):
        return ScheduleResolver(Mock(spec=Session), repository=repository)

    def test_available_override_wins(self, resolver, repository):
        repository.get_date_override.return_value = _row("12:00", "15:00", specific_date=MONDAY)

        resolution = resolver.resolve("res-1", "loc-1", MONDAY)

        assert resolution.source == ScheduleSource.DATE_OVERRIDE
        assert resolution.is_open
        assert (resolution.work_start, resolution.work_end) == (720, 900)
        assert resolution.working_hours == "12:00-15:00"
        repository.get_weekly_schedule.assert_not_called()

    def test_unavailable_override_closes_day(self, resolver, repository):
        repository.get_date_override.return_value = _row(is_available=False, specific_date=MONDAY)

        resolution = resolver.resolve("res-1", "loc-1", MONDAY)

        assert resolution.source == ScheduleSource.CLOSED_BY_OVERRIDE
        assert not resolution.is_open
        assert resolution.work_start is None
        repository.get_weekly_schedule.assert_not_called()

    def test_weekly_row_used_without_override(self, resolver, repository):
        repository.get_date_override.return_value = None
        repository.get_weekly_schedule.return_value = _row(day_of_week=1)

        resolution = resolver.resolve("res-1", "loc-1", MONDAY)

        assert resolution.source == ScheduleSource.WEEKLY
        assert (resolution.work_start, resolution.work_end) == (540, 1080)
        repository.get_weekly_schedule.assert_called_once_with("res-1", "loc-1", 1)

    def test_no_schedule_is_closed_not_error(self, resolver, repository):
        repository.get_date_override.return_value = None
        repository.get_weekly_schedule.return_value = None

        resolution = resolver.resolve("res-1", "loc-1", MONDAY)

        assert resolution.source == ScheduleSource.NO_SCHEDULE
        assert not resolution.is_open
        assert resolution.schedule is None

    def test_end_of_day_marker(self, resolver, repository):
        repository.get_date_override.return_value = None
        repository.get_weekly_schedule.return_value = _row("20:00", "24:00", day_of_week=1)

        resolution = resolver.resolve("res-1", "loc-1", MONDAY)

        assert resolution.work_end == 1440

    def test_malformed_hours(self, resolver, repository):
        repository.get_date_override.return_value = None
        repository.get_weekly_schedule.return_value = _row("9am", "18:00", day_of_week=1)

        with pytest.raises(ServiceException) as exc_info:
            resolver.resolve("res-1", "loc-1", MONDAY)
        assert exc_info.value.code == "INVALID_SCHEDULE"

    def test_storage_errors_propagate(self, resolver, repository):
        repository.get_date_override.side_effect = RepositoryException("connection lost")

        with pytest.raises(RepositoryException):
            resolver.resolve("res-1", "loc-1", MONDAY)
