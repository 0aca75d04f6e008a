# backend/booking_engine/routes/public.py
"""
Public storefront routes for the booking engine.

These are the app-proxy endpoints the storefront booking widget calls. The
shop query parameter identifies the tenant; proxy signature verification
happens upstream, before requests reach this router.

Responses are never cached: availability changes with every booking.
"""

from datetime import datetime
import logging
from typing import Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import ERROR_CODE_INVALID_INPUT, ERROR_CODE_QUOTA_EXCEEDED
from ..core.exceptions import (
    DomainException,
    NotFoundException,
    QuotaExceededException,
    RepositoryException,
    ServiceException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, parse_date_key
from ..database import get_db
from ..models.location import Location
from ..models.resource import Resource
from ..repositories import RepositoryFactory
from ..repositories.catalog_repository import CatalogRepository
from ..schemas.public_availability import (
    PublicAvailabilityResponse,
    PublicSlotCheckResponse,
    PublicTimeSlot,
)
from ..services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/apps/booking", tags=["public"])

NO_STORE_HEADERS: Dict[str, str] = {"Cache-Control": "no-store"}


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Get availability service instance."""
    return AvailabilityService(db)


def get_catalog_repository(db: Session = Depends(get_db)) -> CatalogRepository:
    """Get catalog repository instance."""
    return RepositoryFactory.create_catalog_repository(db)


def _http_error(exc: DomainException) -> HTTPException:
    http_exc = exc.to_http_exception()
    http_exc.headers = NO_STORE_HEADERS
    return http_exc


def _require(value: Optional[str], name: str) -> str:
    if not value:
        raise ValidationException(f"{name} parameter is required", code="MISSING_PARAMETER")
    return value


def _load_resource_and_location(
    catalog: CatalogRepository, shop: str, resource_id: str, location_id: str
) -> Tuple[Resource, Location]:
    resource = catalog.get_resource(shop, resource_id)
    if resource is None:
        raise NotFoundException("Resource not found", code="RESOURCE_NOT_FOUND")

    location = catalog.get_active_location(shop, location_id)
    if location is None:
        raise NotFoundException("Location not found", code="LOCATION_NOT_FOUND")

    return resource, location


def _resolve_duration_and_buffer(
    catalog: CatalogRepository,
    shop: str,
    resource_id: str,
    service_id: Optional[str],
    duration: Optional[int],
    buffer: Optional[int],
) -> Tuple[int, int]:
    """
    Service length and buffer for the request.

    A known service supplies both, with the resource's custom duration taking
    precedence. Without one, the duration parameter (or the configured
    default) applies. An explicit buffer parameter always wins.
    """
    duration_minutes = settings.default_duration_minutes
    buffer_minutes = 0

    service = catalog.get_service(shop, service_id) if service_id else None
    if service is not None:
        duration_minutes = service.duration_min
        buffer_minutes = service.buffer_time_min or 0
        custom_duration = catalog.get_custom_duration(resource_id, service.id)
        if custom_duration:
            duration_minutes = custom_duration
    elif duration is not None:
        duration_minutes = duration

    if buffer is not None:
        buffer_minutes = buffer

    return duration_minutes, buffer_minutes


@router.get(
    "/availability",
    response_model=PublicAvailabilityResponse,
    summary="Get bookable slots for the storefront widget",
)
def get_storefront_availability(
    response: Response,
    shop: Optional[str] = Query(None, description="Shop domain identifying the tenant"),
    date: Optional[str] = Query(None, description="Local date in YYYY-MM-DD format"),
    resource_id: Optional[str] = Query(None, alias="resourceId"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    duration: Optional[int] = Query(None, description="Service length in minutes"),
    buffer: Optional[int] = Query(None, description="Buffer in minutes"),
    interval: Optional[int] = Query(None, description="Slot step in minutes"),
    catalog: CatalogRepository = Depends(get_catalog_repository),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> PublicAvailabilityResponse:
    """
    Bookable slots for one resource at one location on a date.

    Raises:
        400: Missing or malformed parameters
        404: Resource or location not found
        429: The shop has reached its plan's booking limit
        500: Availability could not be computed
    """
    response.headers.update(NO_STORE_HEADERS)
    try:
        shop = _require(shop, "shop")
        date = _require(date, "date")
        resource_id = _require(resource_id, "resourceId")
        location_id = _require(location_id, "locationId")
        parse_date_key(date)

        resource, location = _load_resource_and_location(catalog, shop, resource_id, location_id)
        duration_minutes, buffer_minutes = _resolve_duration_and_buffer(
            catalog, shop, resource_id, service_id, duration, buffer
        )
        slot_interval = interval if interval is not None else settings.default_slot_interval
        timezone = location.timezone or settings.default_timezone

        result = availability_service.get_available_slots(
            location_id=location_id,
            resource_id=resource_id,
            date=date,
            duration_minutes=duration_minutes,
            buffer_minutes=buffer_minutes,
            slot_interval=slot_interval,
            timezone=timezone,
            tenant_id=shop,
        )

        if not result.success:
            if result.error_code == ERROR_CODE_QUOTA_EXCEEDED:
                usage = result.usage
                raise QuotaExceededException(
                    result.error,
                    usage_limit=usage.usage_limit if usage else None,
                    current_usage=usage.current_usage if usage else None,
                    plan_type=usage.plan_type if usage else None,
                )
            if result.error_code == ERROR_CODE_INVALID_INPUT:
                raise ValidationException(result.error or "Invalid request", code="INVALID_INPUT")
            raise ServiceException(
                result.error or "Failed to load availability", code=result.error_code
            )
    except DomainException as exc:
        raise _http_error(exc) from exc
    except RepositoryException as exc:
        logger.exception("Storefront lookup failed")
        raise _http_error(ServiceException("Failed to load availability")) from exc

    return PublicAvailabilityResponse(
        date=date,
        resource_id=resource_id,
        resource_name=resource.name,
        location_id=location_id,
        location_name=location.name,
        timezone=timezone,
        duration=duration_minutes,
        buffer=buffer_minutes,
        interval=slot_interval,
        slots=[
            PublicTimeSlot(
                start_time=slot.display_start,
                end_time=slot.display_end,
                start_time_utc=slot.start_time.isoformat(),
                end_time_utc=slot.end_time.isoformat(),
            )
            for slot in result.slots
        ],
        total_slots=len(result.slots),
    )


@router.get(
    "/availability/check",
    response_model=PublicSlotCheckResponse,
    summary="Check whether one start time can be booked",
)
def check_storefront_slot(
    response: Response,
    shop: Optional[str] = Query(None),
    start: Optional[str] = Query(None, description="ISO 8601 start instant"),
    resource_id: Optional[str] = Query(None, alias="resourceId"),
    location_id: Optional[str] = Query(None, alias="locationId"),
    service_id: Optional[str] = Query(None, alias="serviceId"),
    duration: Optional[int] = Query(None),
    buffer: Optional[int] = Query(None),
    catalog: CatalogRepository = Depends(get_catalog_repository),
    availability_service: AvailabilityService = Depends(get_availability_service),
) -> PublicSlotCheckResponse:
    """Point check used by the widget right before checkout."""
    response.headers.update(NO_STORE_HEADERS)
    try:
        shop = _require(shop, "shop")
        start = _require(start, "start")
        resource_id = _require(resource_id, "resourceId")
        location_id = _require(location_id, "locationId")
        try:
            start_at = ensure_utc(datetime.fromisoformat(start.replace("Z", "+00:00")))
        except ValueError as e:
            raise ValidationException(
                "start must be an ISO 8601 timestamp", code="INVALID_START"
            ) from e

        _, location = _load_resource_and_location(catalog, shop, resource_id, location_id)
        duration_minutes, buffer_minutes = _resolve_duration_and_buffer(
            catalog, shop, resource_id, service_id, duration, buffer
        )

        check = availability_service.is_slot_available(
            location_id=location_id,
            resource_id=resource_id,
            start_time=start_at,
            duration_minutes=duration_minutes,
            buffer_minutes=buffer_minutes,
            timezone=location.timezone or settings.default_timezone,
        )
    except DomainException as exc:
        raise _http_error(exc) from exc
    except RepositoryException as exc:
        logger.exception("Storefront lookup failed")
        raise _http_error(ServiceException("Failed to load availability")) from exc

    return PublicSlotCheckResponse(
        available=check.available,
        reason=check.reason,
        start_time_utc=start_at.isoformat(),
        duration=duration_minutes,
        buffer=buffer_minutes,
    )
