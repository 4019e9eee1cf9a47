"""
Resilience patterns for external provider calls.

This module provides:
1. Circuit Breaker - Fail fast after consecutive failures
2. Retry with Tenacity - Exponential backoff with jitter

Usage:
    from kronos.services.data_providers.resilience import (
        CircuitBreaker,
        retry_async,
    )

    breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=30.0, name="yfinance")

    async def fetch_series():
        await breaker.guard()  # Raises CircuitOpenError if open
        try:
            result = await retry_async(do_fetch, max_attempts=3, base_delay=1.0)
            breaker.record_success()
            return result
        except Exception as e:
            breaker.record_failure(e)
            raise
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from kronos.core.logging import get_logger

logger = get_logger("resilience")

T = TypeVar("T")


# =============================================================================
# Exceptions
# =============================================================================


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open and blocking calls."""

    def __init__(self, name: str, message: str = "Circuit breaker is open"):
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, attempts: int, last_error: BaseException | None = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} retry attempts exhausted"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


# =============================================================================
# Circuit Breaker
# =============================================================================


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failing fast, blocking calls
    HALF_OPEN = "half_open"  # Testing if service recovered


@dataclass
class CircuitBreaker:
    """
    Circuit breaker pattern for fail-fast protection.

    States:
    - CLOSED: Normal operation, counting failures
    - OPEN: After threshold failures, block all calls
    - HALF_OPEN: After recovery timeout, allow test request

    Args:
        failure_threshold: Number of consecutive failures before opening
        recovery_timeout: Seconds to wait before testing (half-open)
        name: Identifier for logging
        excluded_exceptions: Exception types that shouldn't trigger circuit
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    name: str = "circuit"
    excluded_exceptions: tuple[type, ...] = ()

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: float | None = field(default=None, init=False)

    @property
    def state(self) -> CircuitState:
        """Current circuit state (may transition from OPEN to HALF_OPEN)."""
        if self._state == CircuitState.OPEN and self._last_failure_time:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                return CircuitState.HALF_OPEN
        return self._state

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    def allows_request(self) -> bool:
        """Non-raising variant of guard()."""
        return self.state != CircuitState.OPEN

    async def guard(self) -> None:
        """
        Guard entry to protected code. Raises CircuitOpenError if open.

        Call this before attempting the protected operation.
        """
        state = self.state

        if state == CircuitState.OPEN:
            raise CircuitOpenError(
                self.name,
                f"Circuit open after {self._failure_count} failures, "
                f"retry in {self.recovery_timeout - (time.monotonic() - (self._last_failure_time or 0)):.1f}s",
            )

        if state == CircuitState.HALF_OPEN:
            logger.info(f"[{self.name}] Circuit half-open, allowing test request")

    def record_success(self) -> None:
        """Record a successful call, reset failure count."""
        if self._state != CircuitState.CLOSED:
            logger.info(f"[{self.name}] Circuit closed after successful recovery")

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None

    def record_failure(self, error: BaseException | None = None) -> None:
        """Record a failed call. Opens circuit after threshold failures."""
        if error and isinstance(error, self.excluded_exceptions):
            return

        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"[{self.name}] Circuit OPEN after {self._failure_count} failures"
                )
            self._state = CircuitState.OPEN
        else:
            logger.debug(
                f"[{self.name}] Failure {self._failure_count}/{self.failure_threshold}"
            )

    def reset(self) -> None:
        """Force reset to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None

    def get_stats(self) -> dict[str, Any]:
        """Get circuit breaker statistics."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }


# =============================================================================
# Retry with Exponential Backoff
# =============================================================================

DEFAULT_RETRY_EXCEPTIONS: tuple[type[BaseException], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    jitter: float = 0.5,
    retry_on: tuple[type[BaseException], ...] = DEFAULT_RETRY_EXCEPTIONS,
) -> T:
    """
    Retry an async callable with exponential backoff and jitter.

    Args:
        func: Async callable to retry
        max_attempts: Maximum attempts (including the first)
        base_delay: Initial delay in seconds
        max_delay: Max delay cap
        jitter: Maximum random seconds added to each wait
        retry_on: Exceptions to retry on; others propagate immediately

    Returns:
        Result from successful func call

    Raises:
        RetryExhaustedError: If all attempts fail
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=base_delay, max=max_delay) + wait_random(0, jitter),
            retry=retry_if_exception_type(retry_on),
            reraise=False,
        ):
            with attempt:
                return await func()
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.warning(f"Retry exhausted after {max_attempts} attempts: {last_error}")
        raise RetryExhaustedError(max_attempts, last_error) from last_error

    raise RetryExhaustedError(max_attempts)
