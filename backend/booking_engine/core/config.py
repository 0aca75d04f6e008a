# backend/booking_engine/core/config.py
import logging
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_DURATION_MINUTES,
    DEFAULT_SLOT_INTERVAL,
    DEFAULT_TIMEZONE,
    MAX_BOOKING_ADVANCE_DAYS,
    MIN_BOOKING_LEAD_MINUTES,
    USAGE_CYCLE_DAYS,
)

logger = logging.getLogger(__name__)


_BACKEND_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        alias="ENVIRONMENT",
        description="Deployment environment name",
    )
    database_url: str = Field(
        default="sqlite:///./booking_engine.db",
        alias="DATABASE_URL",
        description="SQLAlchemy URL of the booking database",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Availability
    default_timezone: str = Field(
        default=DEFAULT_TIMEZONE,
        alias="DEFAULT_TIMEZONE",
        description="IANA timezone used when a location has none",
    )
    default_slot_interval: int = Field(
        default=DEFAULT_SLOT_INTERVAL,
        alias="DEFAULT_SLOT_INTERVAL",
        description="Step between candidate slot starts, in minutes",
    )
    default_duration_minutes: int = Field(
        default=DEFAULT_DURATION_MINUTES,
        alias="DEFAULT_DURATION_MINUTES",
        description="Service duration used when a request names no service",
    )
    availability_fanout_workers: int = Field(
        default=8,
        alias="AVAILABILITY_FANOUT_WORKERS",
        description="Thread pool size for multi-resource and date-range queries",
    )
    max_date_range_days: int = Field(
        default=31,
        alias="MAX_DATE_RANGE_DAYS",
        description="Upper bound on days in a date-range availability query",
    )

    # Quota
    usage_cycle_days: int = Field(
        default=USAGE_CYCLE_DAYS,
        alias="USAGE_CYCLE_DAYS",
        description="Length of the rolling usage window",
    )

    # Booking window policy
    min_booking_lead_minutes: int = Field(
        default=MIN_BOOKING_LEAD_MINUTES, alias="MIN_BOOKING_LEAD_MINUTES"
    )
    max_booking_advance_days: int = Field(
        default=MAX_BOOKING_ADVANCE_DAYS, alias="MAX_BOOKING_ADVANCE_DAYS"
    )

    # Monitoring
    slow_operation_threshold_seconds: float = Field(
        default=1.0,
        alias="SLOW_OPERATION_THRESHOLD_SECONDS",
        description="Operations slower than this log a warning",
    )

    model_config = SettingsConfigDict(
        env_file=str(_BACKEND_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("default_slot_interval", "default_duration_minutes", "usage_cycle_days")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive number of minutes/days")
        return value

    @field_validator("availability_fanout_workers")
    @classmethod
    def _at_least_one_worker(cls, value: int) -> int:
        return max(1, value)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


settings = Settings()
