"""
Centralized Error Response Builder for Burnout Buddy.

Provides consistent error codes and messages for the API response
envelope. Error codes are constants; the builder returns structured
error dicts compatible with ``success_response`` / ``error_response``
in ``src.api.schemas``.
"""

from __future__ import annotations

from typing import Any

from src.lib.exceptions import (
    BurnoutBuddyException,
    ConfigurationError,
    NotFoundError,
    ServiceUnavailableError,
    StateError,
    ValidationError,
)

# =============================================================================
# Error Code Constants
# =============================================================================

AUTH_REQUIRED = "AUTH_REQUIRED"
RATE_LIMITED = "RATE_LIMITED"
NOT_FOUND = "NOT_FOUND"
VALIDATION_ERROR = "VALIDATION_ERROR"
CONFLICT = "CONFLICT"
SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
INTERNAL_ERROR = "INTERNAL_ERROR"

_ERROR_MESSAGES: dict[str, str] = {
    AUTH_REQUIRED: "Authentication is required.",
    RATE_LIMITED: "Too many requests. Please try again later.",
    NOT_FOUND: "The requested resource was not found.",
    VALIDATION_ERROR: "Invalid input. Please check your request.",
    CONFLICT: "The request conflicts with the current state.",
    SERVICE_UNAVAILABLE: "This feature is temporarily unavailable.",
    INTERNAL_ERROR: "An internal error occurred. Please try again.",
}

# Exception type -> (error code, HTTP status). Order matters: first match wins.
_EXCEPTION_STATUS: tuple[tuple[type[BurnoutBuddyException], str, int], ...] = (
    (ValidationError, VALIDATION_ERROR, 422),
    (NotFoundError, NOT_FOUND, 404),
    (StateError, CONFLICT, 409),
    (ServiceUnavailableError, SERVICE_UNAVAILABLE, 503),
    (ConfigurationError, INTERNAL_ERROR, 500),
)


def get_error_message(code: str) -> str:
    """Get the default message for an error code."""
    return _ERROR_MESSAGES.get(code, "An error occurred.")


def build_error_response(
    code: str,
    message: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a structured error response dict.

    Args:
        code: Error code constant (e.g. NOT_FOUND)
        message: Optional override message
        details: Optional additional error details

    Returns:
        Structured error dict: {"code": str, "message": str, "details": dict | None}
    """
    error: dict[str, Any] = {
        "code": code,
        "message": message if message is not None else get_error_message(code),
    }
    if details is not None:
        error["details"] = details
    return error


def classify_exception(exc: BurnoutBuddyException) -> tuple[str, int]:
    """Map an application exception to (error code, HTTP status)."""
    for exc_type, code, status in _EXCEPTION_STATUS:
        if isinstance(exc, exc_type):
            return code, status
    return INTERNAL_ERROR, 500


__all__ = [
    "AUTH_REQUIRED",
    "RATE_LIMITED",
    "NOT_FOUND",
    "VALIDATION_ERROR",
    "CONFLICT",
    "SERVICE_UNAVAILABLE",
    "INTERNAL_ERROR",
    "get_error_message",
    "build_error_response",
    "classify_exception",
]
