# backend/booking_engine/services/schedule_resolver.py
"""
Schedule Resolver Service for the booking engine.

Decides a resource's working hours for one local calendar date:

1. A date-specific row for that date wins. If it is available its hours are
   used; if not, the date is closed.
2. Otherwise the available recurring row for that day of the week applies.
3. With neither, the resource is closed. Closed is a normal outcome, not an
   error.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ServiceException
from ..core.timezone_utils import time_to_minutes, weekday_of_date
from ..models.schedule import Schedule
from ..repositories import RepositoryFactory
from ..repositories.schedule_repository import ScheduleRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class ScheduleSource(str, Enum):
    """Where a day's working hours came from."""

    DATE_OVERRIDE = "DATE_OVERRIDE"
    WEEKLY = "WEEKLY"
    CLOSED_BY_OVERRIDE = "CLOSED_BY_OVERRIDE"
    NO_SCHEDULE = "NO_SCHEDULE"


@dataclass(frozen=True)
class ScheduleResolution:
    """Resolved working hours for one resource, location and date."""

    source: ScheduleSource
    schedule: Optional[Schedule] = None
    work_start: Optional[int] = None
    work_end: Optional[int] = None

    @property
    def is_open(self) -> bool:
        return self.source in (ScheduleSource.DATE_OVERRIDE, ScheduleSource.WEEKLY)

    @property
    def working_hours(self) -> Optional[str]:
        if not self.is_open or self.schedule is None:
            return None
        return f"{self.schedule.start_time}-{self.schedule.end_time}"

    @classmethod
    def closed(
        cls, source: ScheduleSource, schedule: Optional[Schedule] = None
    ) -> "ScheduleResolution":
        return cls(source=source, schedule=schedule)


class ScheduleResolver(BaseService):
    """Applies override-over-weekly precedence to schedule rows."""

    def __init__(self, db: Session, repository: Optional[ScheduleRepository] = None):
        """
        Initialize schedule resolver.

        Args:
            db: Database session
            repository: Optional ScheduleRepository instance
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_schedule_repository(db)

    @BaseService.measure_operation("resolve_schedule")
    def resolve(self, resource_id: str, location_id: str, target_date: date) -> ScheduleResolution:
        """
        Resolve working hours for a local calendar date.

        Args:
            resource_id: Resource to resolve
            location_id: Location whose hours apply
            target_date: Calendar date in the location's timezone

        Returns:
            ScheduleResolution; check is_open before using work_start/work_end

        Raises:
            ServiceException: If the matching row holds malformed times
            RepositoryException: If the lookup fails
        """
        override = self.repository.get_date_override(resource_id, location_id, target_date)
        if override is not None:
            if not override.is_available:
                self.logger.debug(
                    f"{resource_id}@{location_id} closed on {target_date} by override"
                )
                return ScheduleResolution.closed(ScheduleSource.CLOSED_BY_OVERRIDE, override)
            return self._open(ScheduleSource.DATE_OVERRIDE, override)

        weekly = self.repository.get_weekly_schedule(
            resource_id, location_id, weekday_of_date(target_date)
        )
        if weekly is not None:
            return self._open(ScheduleSource.WEEKLY, weekly)

        return ScheduleResolution.closed(ScheduleSource.NO_SCHEDULE)

    def _open(self, source: ScheduleSource, schedule: Schedule) -> ScheduleResolution:
        try:
            work_start = time_to_minutes(schedule.start_time)
            work_end = time_to_minutes(schedule.end_time)
        except ValueError as e:
            raise ServiceException(
                f"Schedule {schedule.id} has malformed working hours: {str(e)}",
                code="INVALID_SCHEDULE",
            ) from e

        if work_start >= work_end:
            raise ServiceException(
                f"Schedule {schedule.id} starts at or after it ends",
                code="INVALID_SCHEDULE",
                details={"start_time": schedule.start_time, "end_time": schedule.end_time},
            )

        return ScheduleResolution(
            source=source, schedule=schedule, work_start=work_start, work_end=work_end
        )
