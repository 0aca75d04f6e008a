# backend/booking_engine/models/booking.py
"""
Booking model.

Bookings are written by the checkout flow and read here to find time that is
already taken. start_at/end_at are UTC instants of the service itself; the
turnaround buffer comes from the booked service and is applied on read.
"""

from datetime import datetime, timezone
from enum import Enum

import ulid
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING_PAYMENT = "PENDING_PAYMENT"  # Held while checkout completes
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


# Statuses that occupy time on the resource
ACTIVE_STATUSES = (BookingStatus.PENDING_PAYMENT.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(255), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    resource_id = Column(
        String(26), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    location_id = Column(
        String(26), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(String(26), ForeignKey("services.id"), nullable=True)

    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING_PAYMENT.value)

    # Customer contact
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now_utc)

    service = relationship("Service", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_bookings_time_order"),
        CheckConstraint(
            "status IN ('PENDING_PAYMENT', 'CONFIRMED', 'CANCELLED')",
            name="ck_bookings_status",
        ),
        Index("ix_bookings_resource_location_start", "resource_id", "location_id", "start_at"),
        Index("ix_bookings_tenant_status_created", "tenant_id", "status", "created_at"),
    )

    @property
    def buffer_minutes(self) -> int:
        """Turnaround buffer from the booked service; 0 when there is none."""
        service = self.service
        if service is None or not service.buffer_time_min:
            return 0
        return int(service.buffer_time_min)

    def __repr__(self) -> str:
        return f"<Booking {self.id} {self.start_at}-{self.end_at} {self.status}>"
