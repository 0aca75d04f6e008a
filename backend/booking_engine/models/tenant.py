# backend/booking_engine/models/tenant.py
"""
Tenant model.

A tenant is one storefront (the shop that owns locations, resources and
services). It also carries the rolling usage counter checked by the quota
guard; the limit itself comes from the plan catalog, not from this row.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String
from sqlalchemy.orm import relationship

from ..core.plans import PlanType
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    """Storefront account with its plan and usage cycle."""

    __tablename__ = "tenants"

    id = Column(String(255), primary_key=True)
    name = Column(String(255), nullable=True)

    # Billing
    plan_type = Column(String(20), nullable=False, default=PlanType.FREE.value)
    plan_name = Column(String(100), nullable=True)
    billing_id = Column(String(255), nullable=True)

    # Usage cycle
    current_usage = Column(Integer, nullable=False, default=0)
    usage_cycle_start = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_now_utc)

    locations = relationship("Location", back_populates="tenant", cascade="all, delete-orphan")
    resources = relationship("Resource", back_populates="tenant", cascade="all, delete-orphan")
    services = relationship("Service", back_populates="tenant", cascade="all, delete-orphan")

    __table_args__ = (CheckConstraint("current_usage >= 0", name="ck_tenants_usage_non_negative"),)

    def __repr__(self) -> str:
        return f"<Tenant {self.id} plan={self.plan_type} usage={self.current_usage}>"
