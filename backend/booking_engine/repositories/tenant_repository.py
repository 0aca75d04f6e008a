# backend/booking_engine/repositories/tenant_repository.py
"""
Tenant Repository for the booking engine.

Owns the usage counter. Every counter change is a single UPDATE evaluated by
the database, so concurrent increments and decrements never lose writes and
the counter never goes below zero.
"""

from datetime import datetime, timedelta
import logging
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import RepositoryException
from ..core.plans import PlanType
from ..core.timezone_utils import ensure_utc
from ..models.booking import Booking, BookingStatus
from ..models.tenant import Tenant
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class TenantRepository(BaseRepository[Tenant]):
    """Tenant rows and their rolling usage cycle."""

    def __init__(self, db: Session):
        super().__init__(db, Tenant)
        self.logger = logging.getLogger(__name__)

    def get_or_create(self, tenant_id: str, now: datetime) -> Tenant:
        """
        Fetch a tenant, creating it on the FREE plan when first seen.

        The new row starts with zero usage and a cycle beginning at now. The
        insert ignores a conflicting id, so two first requests from the same
        shop both end up reading the single row that won.
        """
        tenant = self.get_by_id(tenant_id, load_relationships=False)
        if tenant is not None:
            return tenant

        values = {
            "id": tenant_id,
            "plan_type": PlanType.FREE.value,
            "current_usage": 0,
            "usage_cycle_start": ensure_utc(now),
        }
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = pg_insert(Tenant).values(**values).on_conflict_do_nothing(index_elements=["id"])
        elif dialect == "sqlite":
            stmt = (
                sqlite_insert(Tenant).values(**values).on_conflict_do_nothing(index_elements=["id"])
            )
        else:
            self.logger.info("Creating tenant %s on the %s plan", tenant_id, PlanType.FREE.value)
            return self.create(**values)

        try:
            inserted = self.db.execute(stmt).rowcount
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating tenant {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to create tenant: {str(e)}") from e

        if inserted:
            self.logger.info("Created tenant %s on the %s plan", tenant_id, PlanType.FREE.value)

        tenant = self.get_by_id(tenant_id, load_relationships=False)
        if tenant is None:
            raise RepositoryException(f"Tenant {tenant_id} missing after insert")
        return tenant

    def reset_cycle_if_expired(self, tenant_id: str, now: datetime, cycle_days: int) -> bool:
        """
        Start a new usage cycle when the current one is at least cycle_days old.

        The age check and the reset happen in one conditional UPDATE.

        Returns:
            True if the cycle was reset
        """
        now = ensure_utc(now)
        try:
            updated = (
                self.db.query(Tenant)
                .filter(
                    Tenant.id == tenant_id,
                    Tenant.usage_cycle_start <= now - timedelta(days=cycle_days),
                )
                .update(
                    {Tenant.current_usage: 0, Tenant.usage_cycle_start: now},
                    synchronize_session="fetch",
                )
            )
            return bool(updated)
        except SQLAlchemyError as e:
            self.logger.error(f"Error resetting usage cycle for {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to reset usage cycle: {str(e)}")

    def increment_usage(self, tenant_id: str, amount: int = 1) -> int:
        """
        Atomically add to the usage counter.

        Returns:
            Number of rows updated (0 when the tenant does not exist)
        """
        try:
            return (
                self.db.query(Tenant)
                .filter(Tenant.id == tenant_id)
                .update(
                    {Tenant.current_usage: Tenant.current_usage + amount},
                    synchronize_session="fetch",
                )
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error incrementing usage for {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to increment usage: {str(e)}")

    def decrement_usage(self, tenant_id: str, amount: int = 1) -> int:
        """
        Atomically subtract from the usage counter, flooring at zero.

        Returns:
            Number of rows updated (0 when the tenant does not exist)
        """
        floored = case(
            (Tenant.current_usage > amount, Tenant.current_usage - amount),
            else_=0,
        )
        try:
            return (
                self.db.query(Tenant)
                .filter(Tenant.id == tenant_id)
                .update({Tenant.current_usage: floored}, synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error decrementing usage for {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to decrement usage: {str(e)}")

    def set_usage(self, tenant_id: str, usage: int) -> int:
        """Overwrite the usage counter with a recomputed value."""
        try:
            return (
                self.db.query(Tenant)
                .filter(Tenant.id == tenant_id)
                .update({Tenant.current_usage: max(0, usage)}, synchronize_session="fetch")
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error setting usage for {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to set usage: {str(e)}")

    def count_confirmed_bookings_since(self, tenant_id: str, since: datetime) -> int:
        """Count the tenant's CONFIRMED bookings created at or after since."""
        try:
            return int(
                self.db.query(func.count(Booking.id))
                .filter(
                    Booking.tenant_id == tenant_id,
                    Booking.status == BookingStatus.CONFIRMED.value,
                    Booking.created_at >= ensure_utc(since),
                )
                .scalar()
                or 0
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting confirmed bookings for {tenant_id}: {str(e)}")
            raise RepositoryException(f"Failed to count confirmed bookings: {str(e)}")

    def upsert_plan(
        self,
        tenant_id: str,
        plan_type: PlanType,
        plan_name: str,
        billing_id: Optional[str],
        now: datetime,
    ) -> Tenant:
        """Set a tenant's plan, creating the tenant when it does not exist yet."""
        tenant = self.get_or_create(tenant_id, now)
        updates = {"plan_type": plan_type.value, "plan_name": plan_name}
        if billing_id is not None:
            updates["billing_id"] = billing_id
        updated = self.update(tenant.id, **updates)
        return updated if updated is not None else tenant
