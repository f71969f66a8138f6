"""
Custom exception hierarchy for Burnout Buddy.

All exceptions inherit from BurnoutBuddyException so the API layer can
map any application error to an HTTP status while still catching
specific types where it matters:

- ConfigurationError: the static catalog or environment is unusable
- ValidationError / NotFoundError / StateError: bad caller input
- ServiceError family: external collaborators (LLM, storage)
"""

from __future__ import annotations


class BurnoutBuddyException(Exception):
    """Base exception for all Burnout Buddy errors."""


class ConfigurationError(BurnoutBuddyException):
    """Missing environment variables, unusable practice catalog, or startup failures."""


class ValidationError(BurnoutBuddyException):
    """Input validation, parsing, or type conversion failures."""


class NotFoundError(BurnoutBuddyException):
    """A referenced check-in, reset, or practice does not exist."""


class StateError(BurnoutBuddyException):
    """Invalid state transitions, e.g. overwriting a write-once outcome."""


class ServiceError(BurnoutBuddyException):
    """Service failures (API errors, connection refused, unexpected responses)."""


class ExternalServiceError(ServiceError):
    """External API call failures (LLM providers, document stores)."""


class ServiceUnavailableError(ServiceError):
    """An optional external service is not configured or its circuit is open."""


class DatabaseError(BurnoutBuddyException):
    """Database connection, query, or migration failures."""


class SerializationError(BurnoutBuddyException):
    """JSON encode/decode, history document serialization failures."""
