# backend/booking_engine/services/availability_service.py
"""
Availability Service for the booking engine.

Answers "which start times can be booked?" for a resource at a location on
a local calendar date. One query runs, in order:

1. Quota guard (storefront queries that carry a tenant id)
2. Schedule resolution for the date
3. Blocked ranges of existing bookings
4. Slot generation

Multi-resource and date-range queries fan the single-day query out over a
thread pool. Each branch opens its own session from the injected
session_factory, and a failing branch only fails its own key.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
import logging
from typing import Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import (
    ERROR_CODE_INVALID_INPUT,
    ERROR_CODE_QUOTA_EXCEEDED,
    ERROR_CODE_STORAGE_ERROR,
)
from ..core.exceptions import (
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog
from ..core.timezone_utils import (
    ensure_utc,
    get_timezone,
    instant_to_wall_clock,
    minutes_to_time,
    parse_date_key,
    wall_clock_to_instant,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..schemas.availability import (
    AvailabilityDebug,
    AvailableSlotsResult,
    BlockedRangeOut,
    SlotAvailability,
)
from ..schemas.quota import UsageInfo
from .base import BaseService
from .conflict_checker import ConflictChecker, find_overlapping
from .quota_service import QuotaService
from .schedule_resolver import ScheduleResolver, ScheduleSource
from .slot_generator import generate_slots

logger = logging.getLogger(__name__)

STORAGE_ERROR_MESSAGE = "Availability could not be loaded. Please try again later."

SessionFactory = Callable[[], Session]


def _failure(
    error: str,
    error_code: str,
    quota_limit_reached: bool = False,
    usage: Optional[UsageInfo] = None,
) -> AvailableSlotsResult:
    return AvailableSlotsResult(
        success=False,
        error=error,
        error_code=error_code,
        quota_limit_reached=quota_limit_reached,
        usage=usage,
    )


def _require_id(value: Optional[str], field: str) -> str:
    if not value or not str(value).strip():
        raise ValidationException(f"{field} is required", code="MISSING_PARAMETER")
    return str(value)


def _validate_lengths(duration_minutes: int, buffer_minutes: int, slot_interval: int) -> None:
    if duration_minutes is None or duration_minutes <= 0:
        raise ValidationException(
            "duration_minutes must be a positive number of minutes",
            code="INVALID_DURATION",
            details={"duration_minutes": duration_minutes},
        )
    if buffer_minutes is None or buffer_minutes < 0:
        raise ValidationException(
            "buffer_minutes must not be negative",
            code="INVALID_BUFFER",
            details={"buffer_minutes": buffer_minutes},
        )
    if slot_interval is None or slot_interval <= 0:
        raise ValidationException(
            "slot_interval must be a positive number of minutes",
            code="INVALID_INTERVAL",
            details={"slot_interval": slot_interval},
        )



def _input_error(
    location_id: str,
    resource_id: str,
    date_key: str,
    duration_minutes: int,
    buffer_minutes: int,
    slot_interval: Optional[int],
    timezone: Optional[str],
) -> Optional[str]:
    """Message for the first invalid query argument, or None when all are valid."""
    interval = slot_interval if slot_interval is not None else settings.default_slot_interval
    try:
        _require_id(location_id, "location_id")
        _require_id(resource_id, "resource_id")
        parse_date_key(date_key)
        _validate_lengths(duration_minutes, buffer_minutes, interval)
        get_timezone(timezone or settings.default_timezone)
    except ValidationException as e:
        return e.message
    return None


class AvailabilityService(BaseService):
    """Query facade over quota, schedules, bookings and slot generation."""

    def __init__(
        self,
        db: Session,
        quota_service: Optional[QuotaService] = None,
        schedule_resolver: Optional[ScheduleResolver] = None,
        conflict_checker: Optional[ConflictChecker] = None,
        session_factory: Optional[SessionFactory] = None,
        plans: PlanCatalog = DEFAULT_PLAN_CATALOG,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize availability service.

        Args:
            db: Database session
            quota_service: Optional QuotaService instance
            schedule_resolver: Optional ScheduleResolver instance
            conflict_checker: Optional ConflictChecker instance
            session_factory: Opens one session per fan-out branch; without it
                fan-out runs sequentially on db
            plans: Plan limits used when quota_service is not given
            max_workers: Thread pool size for fan-out
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.plans = plans
        self.quota_service = quota_service or QuotaService(db, plans=plans)
        self.schedule_resolver = schedule_resolver or ScheduleResolver(db)
        self.conflict_checker = conflict_checker or ConflictChecker(db)
        self.session_factory = session_factory
        self.max_workers = max_workers or settings.availability_fanout_workers

    # Single day

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        location_id: str,
        resource_id: str,
        date: str,
        duration_minutes: int,
        buffer_minutes: int = 0,
        slot_interval: Optional[int] = None,
        timezone: Optional[str] = None,
        tenant_id: Optional[str] = None,
        skip_quota_check: bool = False,
    ) -> AvailableSlotsResult:
        """
        Bookable slots for one resource at one location on a local date.

        Input is validated first, so a malformed request neither touches the
        tenant's usage record nor reports a quota refusal. The quota check
        runs only when tenant_id is given and skip_quota_check is False.
        Failures never raise; they come back with success=False and an
        error_code.

        Args:
            location_id: Location whose schedule and timezone apply
            resource_id: Resource to book
            date: Local date as YYYY-MM-DD
            duration_minutes: Service length
            buffer_minutes: Turnaround time after the service
            slot_interval: Step between candidate starts
            timezone: IANA timezone of the location
            tenant_id: Tenant whose quota gates the query
            skip_quota_check: Bypass the quota guard (admin callers)

        Returns:
            AvailableSlotsResult with slots and a debug block
        """
        message = _input_error(
            location_id,
            resource_id,
            date,
            duration_minutes,
            buffer_minutes,
            slot_interval,
            timezone,
        )
        if message is not None:
            return self._invalid(message)

        if tenant_id and not skip_quota_check:
            refusal = self._check_quota(tenant_id)
            if refusal is not None:
                return refusal

        return self._slots_for_day(
            location_id,
            resource_id,
            date,
            duration_minutes,
            buffer_minutes,
            slot_interval,
            timezone,
        )

    def _check_quota(self, tenant_id: str) -> Optional[AvailableSlotsResult]:
        """None when the tenant may proceed, otherwise the failure to return."""
        try:
            check = self.quota_service.check_quota(tenant_id)
        except (RepositoryException, ServiceException, SQLAlchemyError):
            self.logger.exception(f"Quota check failed for tenant {tenant_id}")
            prometheus_metrics.record_availability_query("storage_error")
            return _failure(STORAGE_ERROR_MESSAGE, ERROR_CODE_STORAGE_ERROR)

        if check.allowed:
            return None

        prometheus_metrics.inc_quota_denial(check.usage.plan_type)
        prometheus_metrics.record_availability_query("quota_exceeded")
        return _failure(
            check.error or "Usage limit reached",
            ERROR_CODE_QUOTA_EXCEEDED,
            quota_limit_reached=True,
            usage=check.usage,
        )

    def _invalid(self, message: str) -> AvailableSlotsResult:
        prometheus_metrics.record_availability_query("invalid")
        return _failure(message, ERROR_CODE_INVALID_INPUT)

    def _slots_for_day(
        self,
        location_id: str,
        resource_id: str,
        date_key: str,
        duration_minutes: int,
        buffer_minutes: int,
        slot_interval: Optional[int],
        timezone: Optional[str],
    ) -> AvailableSlotsResult:
        interval = slot_interval if slot_interval is not None else settings.default_slot_interval
        tz_str = timezone or settings.default_timezone

        message = _input_error(
            location_id, resource_id, date_key, duration_minutes, buffer_minutes, interval, tz_str
        )
        if message is not None:
            return self._invalid(message)
        target_date = parse_date_key(date_key)

        try:
            resolution = self.schedule_resolver.resolve(resource_id, location_id, target_date)
            if not resolution.is_open:
                self.logger.debug(
                    f"No working hours for {resource_id}@{location_id} on {date_key} "
                    f"({resolution.source.value})"
                )
                prometheus_metrics.record_availability_query("closed")
                return AvailableSlotsResult(
                    success=True,
                    slots=[],
                    debug=AvailabilityDebug(
                        schedule_found=resolution.schedule is not None,
                        schedule_source=resolution.source.value,
                    ),
                )

            blocked = self.conflict_checker.get_blocked_ranges(
                resource_id, location_id, date_key, tz_str
            )
            slots = generate_slots(
                work_start=resolution.work_start,
                work_end=resolution.work_end,
                duration_minutes=duration_minutes,
                buffer_minutes=buffer_minutes,
                slot_interval=interval,
                blocked_ranges=blocked,
                timezone_str=tz_str,
                date_key=date_key,
            )
        except (RepositoryException, ServiceException, SQLAlchemyError):
            self.logger.exception(
                f"Failed to compute availability for {resource_id}@{location_id} on {date_key}"
            )
            prometheus_metrics.record_availability_query("storage_error")
            return _failure(STORAGE_ERROR_MESSAGE, ERROR_CODE_STORAGE_ERROR)

        prometheus_metrics.record_availability_query("slots", len(slots))
        return AvailableSlotsResult(
            success=True,
            slots=slots,
            debug=AvailabilityDebug(
                schedule_found=True,
                schedule_source=resolution.source.value,
                working_hours=resolution.working_hours,
                existing_bookings_count=len(blocked),
                blocked_ranges=[
                    BlockedRangeOut(start=r.start, end=r.end, booking_id=r.booking_id)
                    for r in blocked
                ],
            ),
        )

    # Point check

    @BaseService.measure_operation("is_slot_available")
    def is_slot_available(
        self,
        location_id: str,
        resource_id: str,
        start_time: datetime,
        duration_minutes: int,
        buffer_minutes: int = 0,
        timezone: Optional[str] = None,
    ) -> SlotAvailability:
        """
        Whether a booking starting at start_time fits.

        The start must fall inside the day's working hours with room for the
        service and its buffer, and [start, start + duration + buffer) must
        clear every buffered booking that day.

        Raises:
            ValidationException: If an argument is invalid
            RepositoryException: If storage access fails
        """
        _require_id(location_id, "location_id")
        _require_id(resource_id, "resource_id")
        _validate_lengths(duration_minutes, buffer_minutes, settings.default_slot_interval)
        tz_str = timezone or settings.default_timezone
        get_timezone(tz_str)

        start = ensure_utc(start_time)
        date_key, _ = instant_to_wall_clock(start, tz_str)
        resolution = self.schedule_resolver.resolve(
            resource_id, location_id, parse_date_key(date_key)
        )

        if resolution.source == ScheduleSource.CLOSED_BY_OVERRIDE:
            return SlotAvailability(available=False, reason=f"Closed on {date_key}")
        if not resolution.is_open:
            return SlotAvailability(available=False, reason=f"No working hours on {date_key}")

        # Bounds are compared as instants so seconds and DST shifts count
        opens_at = wall_clock_to_instant(
            date_key, minutes_to_time(resolution.work_start), tz_str, strict=False
        )
        closes_at = wall_clock_to_instant(
            date_key, minutes_to_time(resolution.work_end), tz_str, strict=False
        )
        block_end = start + timedelta(minutes=duration_minutes + buffer_minutes)
        if start < opens_at:
            return SlotAvailability(available=False, reason="Starts before working hours")
        if block_end > closes_at:
            return SlotAvailability(available=False, reason="Ends after working hours")

        blocked = self.conflict_checker.get_blocked_ranges(
            resource_id, location_id, date_key, tz_str
        )
        conflicts = find_overlapping(start, block_end, blocked)
        if conflicts:
            return SlotAvailability(
                available=False,
                reason=f"Conflicts with {len(conflicts)} existing booking(s)",
            )

        return SlotAvailability(available=True)

    # Fan-out

    @BaseService.measure_operation("get_available_slots_for_resources")
    def get_available_slots_for_resources(
        self,
        resource_ids: Sequence[str],
        location_id: str,
        date: str,
        duration_minutes: int,
        buffer_minutes: int = 0,
        slot_interval: Optional[int] = None,
        timezone: Optional[str] = None,
        tenant_id: Optional[str] = None,
        skip_quota_check: bool = False,
    ) -> Dict[str, AvailableSlotsResult]:
        """
        Single-day availability for several resources, keyed by resource id.

        Resources with invalid input fail on their own. The quota check runs
        once for the rest, and a refusal is returned for each of them.
        """
        keys = list(dict.fromkeys(resource_ids))
        results: Dict[str, AvailableSlotsResult] = {}
        for key in keys:
            message = _input_error(
                location_id, key, date, duration_minutes, buffer_minutes, slot_interval, timezone
            )
            if message is not None:
                results[key] = self._invalid(message)

        pending = [key for key in keys if key not in results]
        if pending and tenant_id and not skip_quota_check:
            refusal = self._check_quota(tenant_id)
            if refusal is not None:
                results.update({key: refusal.model_copy(deep=True) for key in pending})
                pending = []

        def run_one(service: "AvailabilityService", resource_id: str) -> AvailableSlotsResult:
            return service._slots_for_day(
                location_id,
                resource_id,
                date,
                duration_minutes,
                buffer_minutes,
                slot_interval,
                timezone,
            )

        results.update(self._fan_out(pending, run_one))
        return {key: results[key] for key in keys}

    @BaseService.measure_operation("get_available_slots_for_date_range")
    def get_available_slots_for_date_range(
        self,
        location_id: str,
        resource_id: str,
        start_date: str,
        days: int,
        duration_minutes: int,
        buffer_minutes: int = 0,
        slot_interval: Optional[int] = None,
        timezone: Optional[str] = None,
        tenant_id: Optional[str] = None,
        skip_quota_check: bool = False,
    ) -> Dict[str, AvailableSlotsResult]:
        """
        Availability for consecutive local dates, keyed by YYYY-MM-DD.

        Raises:
            ValidationException: If start_date is malformed or days is out of range
        """
        first_day = parse_date_key(start_date)
        if days < 1 or days > settings.max_date_range_days:
            raise ValidationException(
                f"days must be between 1 and {settings.max_date_range_days}",
                code="INVALID_DATE_RANGE",
                details={"days": days},
            )

        keys = [(first_day + timedelta(days=offset)).isoformat() for offset in range(days)]
        message = _input_error(
            location_id,
            resource_id,
            start_date,
            duration_minutes,
            buffer_minutes,
            slot_interval,
            timezone,
        )
        if message is not None:
            return {key: self._invalid(message) for key in keys}

        if tenant_id and not skip_quota_check:
            refusal = self._check_quota(tenant_id)
            if refusal is not None:
                return {key: refusal.model_copy(deep=True) for key in keys}

        def run_one(service: "AvailabilityService", date_key: str) -> AvailableSlotsResult:
            return service._slots_for_day(
                location_id,
                resource_id,
                date_key,
                duration_minutes,
                buffer_minutes,
                slot_interval,
                timezone,
            )

        return self._fan_out(keys, run_one)

    def _fan_out(
        self,
        keys: List[str],
        run_one: Callable[["AvailabilityService", str], AvailableSlotsResult],
    ) -> Dict[str, AvailableSlotsResult]:
        """Run run_one per key; results keep the order of keys."""
        if self.session_factory is None or len(keys) <= 1:
            return {key: self._guarded(run_one, self, key) for key in keys}

        results: Dict[str, AvailableSlotsResult] = {}
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(keys))) as executor:
            futures = {executor.submit(self._run_branch, run_one, key): key for key in keys}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return {key: results[key] for key in keys}

    def _run_branch(
        self,
        run_one: Callable[["AvailabilityService", str], AvailableSlotsResult],
        key: str,
    ) -> AvailableSlotsResult:
        """One fan-out branch on a session of its own."""
        try:
            db = self.session_factory()
        except SQLAlchemyError:
            self.logger.exception(f"Could not open a session for availability branch {key}")
            return _failure(STORAGE_ERROR_MESSAGE, ERROR_CODE_STORAGE_ERROR)

        try:
            branch = AvailabilityService(db, plans=self.plans, max_workers=1)
            return self._guarded(run_one, branch, key)
        finally:
            db.close()

    def _guarded(
        self,
        run_one: Callable[["AvailabilityService", str], AvailableSlotsResult],
        service: "AvailabilityService",
        key: str,
    ) -> AvailableSlotsResult:
        """Contain an unexpected error to its own key."""
        try:
            return run_one(service, key)
        except Exception:
            self.logger.exception(f"Availability branch {key} failed")
            return _failure(STORAGE_ERROR_MESSAGE, ERROR_CODE_STORAGE_ERROR)
