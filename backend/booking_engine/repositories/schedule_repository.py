# backend/booking_engine/repositories/schedule_repository.py
"""
Schedule Repository for the booking engine.

Two lookups back the schedule resolver: the date-specific row for a calendar
date, and the recurring row for a day of the week. Both order candidates
deterministically (most recently updated first, then id) so a duplicate that
predates the unique indexes always resolves to the same row.
"""

from datetime import date
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..models.schedule import Schedule
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class ScheduleRepository(BaseRepository[Schedule]):
    """Read access to resource operating hours."""

    def __init__(self, db: Session):
        super().__init__(db, Schedule)
        self.logger = logging.getLogger(__name__)

    def get_date_override(
        self, resource_id: str, location_id: str, target_date: date
    ) -> Optional[Schedule]:
        """
        Date-specific row for the exact calendar date, available or not.

        Args:
            resource_id: Resource whose hours are requested
            location_id: Location the hours apply to
            target_date: Local calendar date

        Returns:
            The matching row, or None when the date has no override
        """
        try:
            return (
                self.db.query(Schedule)
                .filter(
                    Schedule.resource_id == resource_id,
                    Schedule.location_id == location_id,
                    Schedule.specific_date == target_date,
                )
                .order_by(Schedule.updated_at.desc(), Schedule.id)
                .first()
            )
        except Exception as e:
            self.logger.error(f"Error getting schedule override: {str(e)}")
            raise RepositoryException(f"Failed to get schedule override: {str(e)}")

    def get_weekly_schedule(
        self, resource_id: str, location_id: str, day_of_week: int
    ) -> Optional[Schedule]:
        """
        Available recurring row for a day of the week (0=Sunday).

        Rows with a specific_date never match here.
        """
        try:
            return (
                self.db.query(Schedule)
                .filter(
                    Schedule.resource_id == resource_id,
                    Schedule.location_id == location_id,
                    Schedule.day_of_week == day_of_week,
                    Schedule.specific_date.is_(None),
                    Schedule.is_available.is_(True),
                )
                .order_by(Schedule.updated_at.desc(), Schedule.id)
                .first()
            )
        except Exception as e:
            self.logger.error(f"Error getting weekly schedule: {str(e)}")
            raise RepositoryException(f"Failed to get weekly schedule: {str(e)}")
