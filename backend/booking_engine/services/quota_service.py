# backend/booking_engine/services/quota_service.py
"""
Quota Service for the booking engine.

Tracks how many bookings a tenant has confirmed in its rolling usage cycle
and decides whether the tenant may still be offered slots. Limits come from
the injected PlanCatalog.

The cycle resets lazily: any read or counter change first starts a new cycle
when the current one is at least usage_cycle_days old.
"""

from datetime import datetime, timedelta, timezone
import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.plans import DEFAULT_PLAN_CATALOG, PlanCatalog, PlanType
from ..core.timezone_utils import ensure_utc
from ..models.booking import BookingStatus
from ..models.tenant import Tenant
from ..repositories import RepositoryFactory
from ..repositories.tenant_repository import TenantRepository
from ..schemas.quota import QuotaCheckResult, UsageInfo
from .base import BaseService

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QuotaService(BaseService):
    """Usage-quota guard for tenants."""

    def __init__(
        self,
        db: Session,
        plans: PlanCatalog = DEFAULT_PLAN_CATALOG,
        repository: Optional[TenantRepository] = None,
        clock: Callable[[], datetime] = _utcnow,
        cycle_days: Optional[int] = None,
    ):
        """
        Initialize quota service.

        Args:
            db: Database session
            plans: Plan limits to enforce
            repository: Optional TenantRepository instance
            clock: Returns the current UTC instant
            cycle_days: Usage cycle length; defaults to settings.usage_cycle_days
        """
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.plans = plans
        self.repository = repository or RepositoryFactory.create_tenant_repository(db)
        self.clock = clock
        self.cycle_days = cycle_days or settings.usage_cycle_days

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    def _load_current(self, tenant_id: str, now: datetime) -> Tenant:
        """Fetch or create the tenant, then apply the lazy cycle reset."""
        tenant = self.repository.get_or_create(tenant_id, now)
        if self.repository.reset_cycle_if_expired(tenant_id, now, self.cycle_days):
            self.logger.info(f"Usage cycle reset for tenant {tenant_id}")
        return tenant

    def _usage_info(self, tenant: Tenant) -> UsageInfo:
        plan_type = self.plans.resolve(tenant.plan_type)
        plan = self.plans.get(plan_type)
        usage = int(tenant.current_usage or 0)
        cycle_start = ensure_utc(tenant.usage_cycle_start)

        if plan.is_unbounded:
            remaining = None
            percentage = 0.0
            limit_reached = False
        else:
            limit = plan.usage_limit
            remaining = max(0, limit - usage)
            percentage = min(100.0, round(usage / limit * 100, 1)) if limit > 0 else 100.0
            limit_reached = usage >= limit

        return UsageInfo(
            tenant_id=tenant.id,
            plan_type=plan_type.value,
            plan_name=tenant.plan_name or plan.name,
            current_usage=usage,
            usage_limit=plan.usage_limit,
            remaining=remaining,
            usage_percentage=percentage,
            is_limit_reached=limit_reached,
            cycle_start=cycle_start,
            cycle_end=cycle_start + timedelta(days=self.cycle_days),
        )

    @BaseService.measure_operation("get_usage")
    def get_usage(self, tenant_id: str) -> UsageInfo:
        """
        Current usage for a tenant, creating the tenant on first sight.

        Raises:
            RepositoryException: If storage access fails
        """
        with self.transaction():
            tenant = self._load_current(tenant_id, self._now())
        return self._usage_info(tenant)

    @BaseService.measure_operation("check_quota")
    def check_quota(self, tenant_id: str) -> QuotaCheckResult:
        """
        Whether the tenant is under its plan limit.

        Unbounded plans are always allowed. A refusal carries the usage
        snapshot so the caller can prompt for an upgrade.
        """
        usage = self.get_usage(tenant_id)
        if not usage.is_limit_reached:
            return QuotaCheckResult(allowed=True, usage=usage)

        self.logger.info(
            f"Tenant {tenant_id} reached its {usage.plan_type} limit "
            f"({usage.current_usage}/{usage.usage_limit})"
        )
        return QuotaCheckResult(
            allowed=False,
            error=(
                f"Usage limit reached ({usage.current_usage}/{usage.usage_limit}). "
                "Upgrade the plan to accept more bookings."
            ),
            usage=usage,
        )

    @BaseService.measure_operation("increment_usage")
    def increment(self, tenant_id: str, amount: int = 1) -> UsageInfo:
        """Add to the tenant's usage after applying the lazy reset."""
        if amount < 0:
            raise ValidationException("amount must not be negative", code="INVALID_AMOUNT")

        with self.transaction():
            tenant = self._load_current(tenant_id, self._now())
            self.repository.increment_usage(tenant_id, amount)
        return self._usage_info(tenant)

    @BaseService.measure_operation("decrement_usage")
    def decrement(self, tenant_id: str, amount: int = 1) -> UsageInfo:
        """
        Subtract from the tenant's usage, never going below zero.

        Raises:
            NotFoundException: If the tenant does not exist
        """
        if amount < 0:
            raise ValidationException("amount must not be negative", code="INVALID_AMOUNT")

        tenant = self.repository.get_by_id(tenant_id, load_relationships=False)
        if tenant is None:
            raise NotFoundException(f"Tenant {tenant_id} not found", code="TENANT_NOT_FOUND")

        with self.transaction():
            self.repository.reset_cycle_if_expired(tenant_id, self._now(), self.cycle_days)
            self.repository.decrement_usage(tenant_id, amount)
        return self._usage_info(tenant)

    @BaseService.measure_operation("recalculate_usage")
    def recalculate(self, tenant_id: str) -> UsageInfo:
        """Rebuild usage from CONFIRMED bookings created in the trailing cycle."""
        now = self._now()
        with self.transaction():
            tenant = self.repository.get_or_create(tenant_id, now)
            count = self.repository.count_confirmed_bookings_since(
                tenant_id, now - timedelta(days=self.cycle_days)
            )
            self.repository.set_usage(tenant_id, count)
        self.logger.info(f"Recalculated usage for tenant {tenant_id}: {count}")
        return self._usage_info(tenant)

    @BaseService.measure_operation("update_plan")
    def update_plan(
        self, tenant_id: str, plan_type: str, billing_id: Optional[str] = None
    ) -> UsageInfo:
        """
        Switch a tenant to a plan, creating the tenant if needed.

        Raises:
            ValidationException: If plan_type is not a known plan
        """
        try:
            plan_enum = PlanType(plan_type)
        except ValueError as e:
            raise ValidationException(
                f"Unknown plan type: {plan_type}",
                code="INVALID_PLAN",
                details={"plan_type": plan_type},
            ) from e

        plan = self.plans.get(plan_enum.value)
        with self.transaction():
            tenant = self.repository.upsert_plan(
                tenant_id, plan_enum, plan.name, billing_id, self._now()
            )
        self.logger.info(f"Tenant {tenant_id} moved to plan {plan_enum.value}")
        return self._usage_info(tenant)

    def apply_status_transition(
        self, tenant_id: str, old_status: Optional[str], new_status: str
    ) -> Optional[UsageInfo]:
        """
        Keep usage in step with a booking status change.

        Entering CONFIRMED counts a booking; leaving it releases one. Other
        transitions leave usage untouched and return None.
        """
        confirmed = BookingStatus.CONFIRMED.value
        old_value = getattr(old_status, "value", old_status)
        new_value = getattr(new_status, "value", new_status)

        if old_value != confirmed and new_value == confirmed:
            return self.increment(tenant_id)
        if old_value == confirmed and new_value != confirmed:
            return self.decrement(tenant_id)
        return None

    def apply_deletion(self, tenant_id: str, status: str) -> Optional[UsageInfo]:
        """Release usage when a confirmed booking is deleted."""
        if getattr(status, "value", status) == BookingStatus.CONFIRMED.value:
            return self.decrement(tenant_id)
        return None
