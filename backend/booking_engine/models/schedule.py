# backend/booking_engine/models/schedule.py
"""
Schedule model for resource operating hours.

A row is either recurring (day_of_week set, specific_date NULL) or a
date-specific exception (specific_date set). Times are local wall-clock
"HH:MM" strings in the owning location's timezone; "24:00" is allowed as an
end-of-day marker.

For a given calendar date, a specific_date row takes precedence over the
weekly row: an available override replaces the weekly hours, an unavailable
one closes the day.
"""

from datetime import datetime, timezone

import ulid
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Schedule(Base):
    """Working-hours window for one resource at one location."""

    __tablename__ = "schedules"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    resource_id = Column(
        String(26), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    location_id = Column(
        String(26), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )

    # 0=Sunday .. 6=Saturday; NULL on date-specific rows
    day_of_week = Column(Integer, nullable=True)
    specific_date = Column(Date, nullable=True)

    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc)

    resource = relationship("Resource", back_populates="schedules")
    location = relationship("Location", back_populates="schedules")

    __table_args__ = (
        CheckConstraint(
            "day_of_week IS NULL OR (day_of_week >= 0 AND day_of_week <= 6)",
            name="ck_schedules_day_of_week_range",
        ),
        CheckConstraint(
            "day_of_week IS NOT NULL OR specific_date IS NOT NULL",
            name="ck_schedules_has_key",
        ),
        # Zero-padded HH:MM compares correctly as text
        CheckConstraint("start_time < end_time", name="ck_schedules_time_order"),
        Index(
            "uq_schedules_specific_date",
            "resource_id",
            "location_id",
            "specific_date",
            unique=True,
        ),
        Index(
            "uq_schedules_weekly",
            "resource_id",
            "location_id",
            "day_of_week",
            unique=True,
            postgresql_where=text("specific_date IS NULL"),
            sqlite_where=text("specific_date IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        key = self.specific_date.isoformat() if self.specific_date else f"dow={self.day_of_week}"
        return (
            f"<Schedule {self.resource_id}@{self.location_id} {key} "
            f"{self.start_time}-{self.end_time} available={self.is_available}>"
        )
