"""Subscription plans and their usage limits."""

import math
from dataclasses import asdict, dataclass
from typing import Dict

TRIAL_DAYS = 14

UNLIMITED = math.inf


@dataclass(frozen=True)
class PlanLimits:
    products_audited: float
    visibility_checks_per_month: int
    ai_optimizations_per_month: int
    platforms: int
    competitors_tracked: int
    history_days: int
    export_csv: bool
    api_access: bool

    def to_dict(self) -> Dict[str, object]:
        """Limits as JSON-safe values; unlimited becomes None."""
        data = asdict(self)
        return {key: None if value == UNLIMITED else value for key, value in data.items()}


PLAN_LIMITS: Dict[str, PlanLimits] = {
    "FREE": PlanLimits(10, 3, 3, 1, 0, 7, False, False),
    "BASIC": PlanLimits(100, 10, 20, 2, 1, 30, False, False),
    "PLUS": PlanLimits(500, 50, 100, 4, 3, 90, True, False),
    "PREMIUM": PlanLimits(UNLIMITED, 200, 500, 5, 10, 365, True, True),
}

PLAN_NAMES = {
    "FREE": "Free Trial",
    "BASIC": "Starter",
    "PLUS": "Growth",
    "PREMIUM": "Scale",
}

PLAN_PRICES = {
    "FREE": 0,
    "BASIC": 49,
    "PLUS": 99,
    "PREMIUM": 199,
}


def get_plan_limits(plan: str) -> PlanLimits:
    """Get limits for a plan, falling back to FREE for unknown plans."""
    return PLAN_LIMITS.get((plan or "FREE").upper(), PLAN_LIMITS["FREE"])


def has_feature(plan: str, feature: str) -> bool:
    """Check whether a boolean feature (export_csv, api_access) is enabled for a plan."""
    return bool(getattr(get_plan_limits(plan), feature, False))
