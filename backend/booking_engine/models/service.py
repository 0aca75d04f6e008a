"""Service model: what a customer books, with its length and turnaround buffer."""

import ulid
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class Service(Base):
    __tablename__ = "services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(255), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    duration_min = Column(Integer, nullable=False)
    # Padding applied before and after every booking of this service
    buffer_time_min = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="services")
    bookings = relationship("Booking", back_populates="service")

    __table_args__ = (
        CheckConstraint("duration_min > 0", name="ck_services_duration_positive"),
        CheckConstraint("buffer_time_min >= 0", name="ck_services_buffer_non_negative"),
    )
