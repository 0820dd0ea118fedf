# app/core/exceptions.py
"""
Application error taxonomy.

Every error carries an HTTP status and a stable, user-facing message. The
exception handler in ``app.main`` renders them as
``{"success": false, "error": ..., "message": ..., **payload}``.
"""
from typing import Any, Dict, Optional


class AppError(Exception):
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.error = error or self.message
        self.payload = payload or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.error, "message": self.message}
        body.update(self.payload)
        return body


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 400
    default_message = "Conflict"


class AuthError(AppError):
    status_code = 401
    default_message = "Invalid credentials"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class TenantInactiveError(ForbiddenError):
    default_message = "This account has been deactivated. Please contact support."

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("error", "Tenant inactive")
        super().__init__(message, **kwargs)


class SubscriptionRequiredError(ForbiddenError):
    default_message = "Your subscription has expired. Please renew to continue using the service."

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("error", "Subscription expired or not found")
        super().__init__(message, **kwargs)


class SubscriptionExpiredError(AppError):
    status_code = 403
    default_message = "Subscription expired"

    def __init__(self, message: Optional[str] = None, **kwargs):
        kwargs.setdefault("error", "Subscription expired")
        super().__init__(message, **kwargs)


class QuotaExceededError(AppError):
    status_code = 403
    default_message = "Image limit reached"


class PaymentError(AppError):
    status_code = 400
    default_message = "Payment required"


class RateLimitError(AppError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class DependencyError(AppError):
    status_code = 500
    default_message = "External service failure"
