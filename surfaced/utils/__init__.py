"""Shared utilities: configuration, logging, errors and plans"""

from .config import get_config, get_config_manager, get_settings
from .errors import (
    AppError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
    PlanLimitError,
    RateLimitError,
    ServiceUnavailableError,
    UnauthorizedError,
    ValidationError,
)
from .plans import PLAN_LIMITS, get_plan_limits, has_feature

__all__ = [
    "get_config",
    "get_config_manager",
    "get_settings",
    "AppError",
    "ExternalServiceError",
    "ForbiddenError",
    "NotFoundError",
    "PlanLimitError",
    "RateLimitError",
    "ServiceUnavailableError",
    "UnauthorizedError",
    "ValidationError",
    "PLAN_LIMITS",
    "get_plan_limits",
    "has_feature",
]
