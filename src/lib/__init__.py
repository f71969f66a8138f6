"""
Lib package for Burnout Buddy.

Contains shared utilities:
- exceptions.py: Exception hierarchy rooted at BurnoutBuddyException
- errors.py: Error codes and API error response builder
- logging.py: structlog + stdlib logging setup
- circuit_breaker.py: Circuit breaker for LLM calls
"""

from src.lib.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerError,
    CircuitState,
    get_all_circuit_breakers,
    get_circuit_breaker,
)
from src.lib.exceptions import (
    BurnoutBuddyException,
    ConfigurationError,
    DatabaseError,
    ExternalServiceError,
    NotFoundError,
    SerializationError,
    ServiceError,
    ServiceUnavailableError,
    StateError,
    ValidationError,
)

__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitState",
    "get_all_circuit_breakers",
    "get_circuit_breaker",
    "BurnoutBuddyException",
    "ConfigurationError",
    "DatabaseError",
    "ExternalServiceError",
    "NotFoundError",
    "SerializationError",
    "ServiceError",
    "ServiceUnavailableError",
    "StateError",
    "ValidationError",
]
