"""Single normalization point between raised errors and what the operator sees."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

from milk_center.domain.errors import (
    AccessDeniedError,
    ApiError,
    AuthenticationError,
    FormValidationError,
    MilkCenterError,
    NetworkError,
    ValidationApiError,
)
from milk_center.domain.validation import error_kind, format_field_name

logger = logging.getLogger(__name__)

ErrorType = Literal["validation", "network", "auth", "server", "client", "unknown"]


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str
    kind: str = "custom"


@dataclass(frozen=True)
class ParsedError:
    message: str
    type: ErrorType
    status_code: int | None = None
    validation_errors: Sequence[FieldError] = field(default_factory=tuple)
    context: str | None = None
    access_denied: bool = False


def error_type_for_status(status: int) -> ErrorType:
    if status == 0:
        return "network"
    if status in (401, 403):
        return "auth"
    if status in (400, 422):
        return "validation"
    if 400 <= status < 500:
        return "client"
    if status >= 500:
        return "server"
    return "unknown"


def _backend_field_errors(errors: Sequence[dict[str, Any]]) -> tuple[FieldError, ...]:
    parsed = []
    for err in errors:
        name = err.get("field") or err.get("path") or err.get("param") or "unknown"
        message = err.get("message") or err.get("msg") or "Invalid value"
        parsed.append(FieldError(format_field_name(str(name)), str(message), err.get("type") or error_kind(str(message))))
    return tuple(parsed)


def parse_error(
    exc: BaseException,
    context: str | None = None,
    fallback_message: str = "An unexpected error occurred",
    log: bool = True,
) -> ParsedError:
    if log:
        logger.error("Error%s: %s", f" in {context}" if context else "", exc)

    if isinstance(exc, ValidationApiError):
        return ParsedError(
            message=exc.message,
            type="validation",
            status_code=exc.status_code,
            validation_errors=_backend_field_errors(exc.errors),
            context=context,
        )
    if isinstance(exc, FormValidationError):
        return ParsedError(
            message=exc.message,
            type="validation",
            status_code=exc.status_code,
            validation_errors=tuple(
                FieldError(format_field_name(name), message, error_kind(message)) for name, message in exc.errors.items()
            ),
            context=context,
        )
    if isinstance(exc, NetworkError):
        return ParsedError(exc.message, "network", exc.status_code, context=context)
    if isinstance(exc, ApiError):
        return ParsedError(
            message=exc.message,
            type=error_type_for_status(exc.status_code),
            status_code=exc.status_code,
            context=context,
            access_denied=isinstance(exc, AccessDeniedError),
        )
    if isinstance(exc, AuthenticationError):
        return ParsedError(exc.message, "auth", exc.status_code, context=context)
    if isinstance(exc, MilkCenterError):
        return ParsedError(exc.message, error_type_for_status(exc.status_code), exc.status_code, context=context)
    return ParsedError(str(exc) or fallback_message, "unknown", 500, context=context)


def is_access_denied(exc: BaseException) -> bool:
    return isinstance(exc, AccessDeniedError)


_LOGIN_MESSAGES: dict[int, tuple[str, str | None]] = {
    401: ("Authentication Failed", "Invalid username or password. Please check your credentials."),
    403: ("Access Denied", "Access denied. Your account may be deactivated."),
    429: ("Rate Limited", "Too many login attempts. Please try again later."),
    500: ("Server Error", None),
    0: ("Connection Failed", None),
}


def login_error_message(exc: BaseException) -> tuple[str, str]:
    """``(title, message)`` for the login screen."""
    parsed = parse_error(exc, context="login")
    status = parsed.status_code if parsed.status_code is not None else -1
    if status == 500:
        return "Server Error", "Server error occurred. Please try again later or contact support."
    if status == 0:
        return "Connection Failed", "Network error. Please check your internet connection and try again."
    if status in _LOGIN_MESSAGES:
        title, default = _LOGIN_MESSAGES[status]
        return title, parsed.message or default or ""
    return "Login Failed", parsed.message or "Login failed. Please try again."
