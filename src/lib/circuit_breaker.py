"""
Circuit breaker for the LLM-backed features.

Mood-text analysis and story generation both call an external
OpenAI-compatible endpoint. When that endpoint keeps failing we stop
calling it for a while and serve the local fallback instead of making
every request wait for a timeout.

States:
- CLOSED: calls pass through.
- OPEN: calls are rejected with CircuitBreakerError until the
  recovery timeout elapses.
- HALF_OPEN: one probe call is allowed; success closes the circuit,
  failure reopens it.

Usage:
    breaker = get_circuit_breaker("openai_chat")
    async with breaker:
        response = await client.post(...)
"""

from __future__ import annotations

import asyncio
import logging
import time
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class CircuitState(StrEnum):
    """Possible states for a circuit breaker."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_after: float) -> None:
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is open. Retry after {retry_after:.1f}s.")


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker guarded by an asyncio.Lock.

    Args:
        name: Identifier for the protected service (used in logging).
        failure_threshold: Consecutive failures before opening.
        recovery_timeout: Seconds in OPEN before a HALF_OPEN probe is allowed.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        recovery_timeout: float = 60.0,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._probe_in_flight = False
        self._opened_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def retry_after_seconds(self) -> float:
        """Seconds until the circuit may attempt recovery (0 when not OPEN)."""
        if self._state != CircuitState.OPEN:
            return 0.0
        return max(0.0, self.recovery_timeout - (time.monotonic() - self._opened_at))

    def _set_state(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return
        logger.info("Circuit breaker '%s': %s -> %s", self.name, self._state.value, new_state.value)
        self._state = new_state

    async def allow_request(self) -> bool:
        """Return True if a call may go through right now."""
        async with self._lock:
            if self._state == CircuitState.CLOSED:
                return True
            if self._state == CircuitState.OPEN:
                if self.retry_after_seconds() > 0:
                    return False
                self._set_state(CircuitState.HALF_OPEN)
                self._probe_in_flight = False
            if self._probe_in_flight:
                return False
            self._probe_in_flight = True
            return True

    async def record_success(self) -> None:
        async with self._lock:
            self._failure_count = 0
            self._probe_in_flight = False
            self._set_state(CircuitState.CLOSED)

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._probe_in_flight = False
            if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.warning(
                        "Circuit breaker '%s' opening after %d consecutive failures",
                        self.name,
                        self._failure_count,
                    )
                self._opened_at = time.monotonic()
                self._set_state(CircuitState.OPEN)

    async def reset(self) -> None:
        """Manually close the circuit (tests, admin tooling)."""
        async with self._lock:
            self._failure_count = 0
            self._probe_in_flight = False
            self._opened_at = 0.0
            self._set_state(CircuitState.CLOSED)

    async def __aenter__(self) -> CircuitBreaker:
        if not await self.allow_request():
            raise CircuitBreakerError(self.name, self.retry_after_seconds())
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is None:
            await self.record_success()
        else:
            await self.record_failure()


# =============================================================================
# Named registry
# =============================================================================

_registry: dict[str, CircuitBreaker] = {}


def get_circuit_breaker(
    name: str,
    failure_threshold: int = 3,
    recovery_timeout: float = 60.0,
) -> CircuitBreaker:
    """Get or create a named circuit breaker (settings apply on creation only)."""
    if name not in _registry:
        _registry[name] = CircuitBreaker(
            name=name,
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
        )
    return _registry[name]


def get_all_circuit_breakers() -> dict[str, CircuitBreaker]:
    """Return a snapshot of all registered circuit breakers."""
    return dict(_registry)


__all__ = [
    "CircuitBreaker",
    "CircuitBreakerError",
    "CircuitState",
    "get_all_circuit_breakers",
    "get_circuit_breaker",
]
