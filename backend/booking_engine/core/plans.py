"""
Billing plan catalog.

Plan limits are an immutable value handed to QuotaService; nothing reads a
process-wide mutable table.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional


class PlanType(str, Enum):
    """Subscription tiers."""

    FREE = "FREE"
    STANDARD = "STANDARD"
    PRO = "PRO"
    MAX = "MAX"


@dataclass(frozen=True)
class PlanConfig:
    """Limits of one plan. usage_limit=None means unbounded."""

    name: str
    usage_limit: Optional[int]
    amount: float = 0.0
    currency_code: str = "USD"

    @property
    def is_unbounded(self) -> bool:
        return self.usage_limit is None


@dataclass(frozen=True)
class PlanCatalog:
    """Read-only mapping of plan type to its configuration."""

    plans: Mapping[PlanType, PlanConfig]
    fallback: PlanType = PlanType.FREE

    def __post_init__(self) -> None:
        if self.fallback not in self.plans:
            raise ValueError(f"Fallback plan {self.fallback} missing from catalog")
        object.__setattr__(self, "plans", MappingProxyType(dict(self.plans)))

    def resolve(self, plan_type: Optional[str]) -> PlanType:
        """Plan type actually in force; unknown or missing types get the fallback."""
        try:
            resolved = PlanType(plan_type)
        except ValueError:
            return self.fallback
        return resolved if resolved in self.plans else self.fallback

    def get(self, plan_type: Optional[str]) -> PlanConfig:
        """Config for a plan type; unknown or missing types get the fallback plan."""
        return self.plans[self.resolve(plan_type)]


DEFAULT_PLAN_CATALOG = PlanCatalog(
    plans={
        PlanType.FREE: PlanConfig(name="Free", usage_limit=30, amount=0),
        PlanType.STANDARD: PlanConfig(name="Standard", usage_limit=100, amount=9),
        PlanType.PRO: PlanConfig(name="Pro", usage_limit=500, amount=29),
        PlanType.MAX: PlanConfig(name="Max", usage_limit=None, amount=79),
    }
)
