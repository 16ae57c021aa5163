"""Application error types."""

from typing import Any, Dict, Optional


class AppError(Exception):
    """Base error carrying an HTTP status and a machine-readable code."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_ERROR", 400, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, "UNAUTHORIZED", 401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "FORBIDDEN", 403)


class NotFoundError(AppError):
    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found", "NOT_FOUND", 404)


class RateLimitError(AppError):
    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None):
        details = {"retry_after": retry_after} if retry_after else None
        super().__init__(message, "RATE_LIMIT_EXCEEDED", 429, details)


class PlanLimitError(AppError):
    """Raised when an operation would exceed the shop's plan allowance."""

    def __init__(self, message: str, limit: Optional[int] = None, used: Optional[int] = None):
        details = {"limit": limit, "used": used} if limit is not None else None
        super().__init__(message, "PLAN_LIMIT_EXCEEDED", 403, details)


class ExternalServiceError(AppError):
    """Raised when Shopify, an LLM provider or another upstream fails."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}", "EXTERNAL_SERVICE_ERROR", 502, {"service": service})


class ServiceUnavailableError(AppError):
    """Raised when a feature needs an upstream that is not configured."""

    def __init__(self, message: str):
        super().__init__(message, "SERVICE_UNAVAILABLE", 503)
