# backend/booking_engine/schemas/public_availability.py
"""
Public availability schemas for the storefront widget.

Field names on the wire are camelCase, matching what the widget reads.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class PublicTimeSlot(BaseModel):
    """A bookable time slot for public viewing."""

    start_time: str = Field(alias="startTime", description="Local start in HH:MM format")
    end_time: str = Field(alias="endTime", description="Local end in HH:MM format")
    start_time_utc: str = Field(alias="startTimeUTC", description="ISO 8601 UTC start")
    end_time_utc: str = Field(alias="endTimeUTC", description="ISO 8601 UTC end")
    available: bool = True

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "startTime": "09:00",
                "endTime": "10:00",
                "startTimeUTC": "2025-01-15T00:00:00+00:00",
                "endTimeUTC": "2025-01-15T01:00:00+00:00",
                "available": True,
            }
        },
    )


class PublicAvailabilityResponse(BaseModel):
    """Slots for one resource at one location on one date."""

    success: bool = True
    date: str = Field(description="Date in YYYY-MM-DD format")
    resource_id: str = Field(alias="resourceId")
    resource_name: str = Field(alias="resourceName")
    location_id: str = Field(alias="locationId")
    location_name: str = Field(alias="locationName")
    timezone: str
    duration: int
    buffer: int
    interval: int
    slots: List[PublicTimeSlot] = Field(default_factory=list)
    total_slots: int = Field(alias="totalSlots")

    model_config = ConfigDict(populate_by_name=True)


class PublicSlotCheckResponse(BaseModel):
    """Answer to "can this exact start time be booked?"."""

    available: bool
    reason: Optional[str] = None
    start_time_utc: str = Field(alias="startTimeUTC")
    duration: int
    buffer: int

    model_config = ConfigDict(populate_by_name=True)
