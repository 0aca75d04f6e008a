"""Location model: a physical site with its own IANA timezone."""

import ulid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..core.constants import DEFAULT_TIMEZONE
from ..database import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    tenant_id = Column(String(255), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="locations")
    schedules = relationship("Schedule", back_populates="location", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Location {self.id} {self.name!r} tz={self.timezone}>"
