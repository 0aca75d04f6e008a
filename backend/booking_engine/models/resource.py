"""Resource models: bookable staff, rooms and equipment."""

from enum import Enum

import ulid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base


class ResourceType(str, Enum):
    """Kinds of bookable resource."""

    STAFF = "staff"
    ROOM = "room"
    EQUIPMENT = "equipment"


class Resource(Base):
    __tablename__ = "resources"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(255), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(20), nullable=False, default=ResourceType.STAFF.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="resources")
    schedules = relationship("Schedule", back_populates="resource", cascade="all, delete-orphan")
    service_links = relationship(
        "ResourceService", back_populates="resource", cascade="all, delete-orphan"
    )


class ResourceService(Base):
    """Which services a resource offers, with an optional per-resource duration."""

    __tablename__ = "resource_services"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    resource_id = Column(
        String(26), ForeignKey("resources.id", ondelete="CASCADE"), nullable=False
    )
    service_id = Column(String(26), ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    custom_duration = Column(Integer, nullable=True)

    resource = relationship("Resource", back_populates="service_links")
    service = relationship("Service")

    __table_args__ = (
        UniqueConstraint("resource_id", "service_id", name="uq_resource_services_pair"),
    )
