"""Exception taxonomy shared by the domain, the HTTP adapter and the front-ends."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Sequence


class MilkCenterError(Exception):
    """Base exception for milk center client errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class ApiError(MilkCenterError):
    """Non-success response from the backend."""

    def __init__(self, message: str, status_code: int, payload: dict[str, Any] | None = None):
        super().__init__(message=message, status_code=status_code, error_code=f"HTTP_{status_code}")
        self.payload: dict[str, Any] = dict(payload or {})


class ValidationApiError(ApiError):
    """400 carrying a structured ``errors: [{field, message}]`` array."""

    def __init__(self, message: str, errors: Sequence[dict[str, Any]], payload: dict[str, Any] | None = None):
        super().__init__(message, 400, payload)
        self.errors: list[dict[str, Any]] = list(errors)


class AccessDeniedError(ApiError):
    """The server revoked this principal's access; the session is already gone."""

    access_denied = True

    def __init__(self, payload: dict[str, Any] | None = None):
        super().__init__(
            "Your access has been revoked. Please contact an administrator for reactivation.",
            403,
            payload,
        )
        self.payload["accessDenied"] = True


class AuthenticationError(MilkCenterError):
    def __init__(self, message: str = "Authentication failed", status_code: int = 401):
        super().__init__(message=message, status_code=status_code, error_code="AUTHENTICATION_FAILED")


class RateLimitError(MilkCenterError):
    def __init__(self, message: str = "Too many login attempts. Please try again later."):
        super().__init__(message=message, status_code=429, error_code="RATE_LIMITED")


class NetworkError(MilkCenterError):
    """Transport failure or timeout; ``status_code`` is 0 or 408."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message=message, status_code=status_code, error_code="NETWORK_ERROR")


class PermissionDeniedError(MilkCenterError):
    """Client-side capability check failed; no request was sent."""

    def __init__(self, message: str = "Permission denied"):
        super().__init__(message=message, status_code=403, error_code="PERMISSION_DENIED")


class BusinessRuleError(MilkCenterError):
    def __init__(self, message: str, error_code: str = "BUSINESS_RULE"):
        super().__init__(message=message, status_code=422, error_code=error_code)


class RateNotFound(BusinessRuleError):
    def __init__(self, fat_percentage: Decimal):
        self.fat_percentage = fat_percentage
        super().__init__(
            f"Fat rate not available for {fat_percentage}%. Please configure this exact fat rate first.",
            error_code="RATE_NOT_FOUND",
        )


class FarmerInactiveError(BusinessRuleError):
    def __init__(self, message: str):
        super().__init__(message, error_code="FARMER_INACTIVE")


class FormValidationError(BusinessRuleError):
    """Local form validation failed; ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str], message: str = "Form Validation Failed"):
        super().__init__(message, error_code="FORM_VALIDATION")
        self.errors = dict(errors)
