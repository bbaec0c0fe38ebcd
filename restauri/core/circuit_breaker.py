"""
Circuit Breaker

This module guards calls to a fallible dependency (the database) so that a
dependency that keeps failing is not hammered with further requests.

States:
- CLOSED: calls pass through; consecutive failures are counted
- OPEN: calls are rejected with CircuitOpenError without being attempted
- HALF_OPEN: the reset timeout has elapsed; the next call is a trial

Transitions happen only inside execute(); there is no background timer.
A successful trial closes the circuit, a failed one opens it again.

All state mutation happens between awaits, so an instance is safe to share
between coroutines on one event loop. It is not thread safe.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from restauri.core.logger import get_logger
from restauri.core.monitoring import PerformanceMonitor

logger = get_logger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "CLOSED"        # Normal operation
    OPEN = "OPEN"            # Failing, requests blocked
    HALF_OPEN = "HALF_OPEN"  # Probing recovery with the next call


class CircuitOpenError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit breaker '{name}' is OPEN")
        self.name = name
        self.retry_after = retry_after  # seconds until a trial call is allowed


@dataclass(frozen=True)
class CircuitBreakerConfig:
    failure_threshold: int = 5
    reset_timeout: int = 30000  # milliseconds

    def __post_init__(self):
        if self.failure_threshold <= 0:
            raise ValueError(f"failure_threshold must be a positive integer, got: {self.failure_threshold}")
        if self.reset_timeout < 0:
            raise ValueError(f"reset_timeout must not be negative, got: {self.reset_timeout}")


class CircuitBreaker:
    """
    Three-state circuit breaker around async operations.

    Usage::

        breaker = CircuitBreaker(CircuitBreakerConfig(failure_threshold=5, reset_timeout=30000))
        rows = await breaker.execute(lambda: run_in_threadpool(query))
    """

    def __init__(
        self,
        config: Optional[CircuitBreakerConfig] = None,
        name: str = "default",
        monitor: Optional[PerformanceMonitor] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or CircuitBreakerConfig()
        self.name = name
        self.monitor = monitor or PerformanceMonitor(clock=clock)
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0

        self.total_calls = 0
        self.failed_calls = 0
        self.rejected_calls = 0
        self.last_error: Optional[BaseException] = None
        self.average_response_time = 0.0  # milliseconds, successful calls only
        self._successful_calls = 0
        self._trial_in_flight = False
        self.last_state_change = clock()

    @property
    def failure_threshold(self) -> int:
        return self.config.failure_threshold

    @property
    def reset_timeout(self) -> int:
        return self.config.reset_timeout

    def _elapsed_since_failure_ms(self) -> float:
        return (self._clock() - self.last_failure_time) * 1000

    def _should_attempt_reset(self) -> bool:
        return self.state == CircuitState.OPEN and self._elapsed_since_failure_ms() >= self.reset_timeout

    def _transition(self, state: CircuitState) -> None:
        previous = self.state
        self.state = state
        self.last_state_change = self._clock()
        message = f"Circuit breaker '{self.name}' state changed: {previous.value} -> {state.value}"
        extra = {"component": "circuit_breaker", "failure_count": self.failure_count}
        if state == CircuitState.OPEN:
            logger.warning(message, extra={**extra, "last_error": repr(self.last_error)})
        else:
            logger.info(message, extra=extra)

    def _mark_success(self, duration_ms: float) -> None:
        self.failure_count = 0
        if self.state == CircuitState.HALF_OPEN:
            self._transition(CircuitState.CLOSED)

        self._successful_calls += 1
        n = self._successful_calls
        self.average_response_time = (self.average_response_time * (n - 1) + duration_ms) / n

    def _mark_failure(self, error: BaseException) -> None:
        self.failure_count += 1
        self.failed_calls += 1
        self.last_error = error
        self.last_failure_time = self._clock()

        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            if self.state != CircuitState.OPEN:
                self._transition(CircuitState.OPEN)

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run *operation* through the breaker.

        Raises CircuitOpenError without calling *operation* while the circuit
        is open; otherwise returns its result or re-raises its exception.
        """
        if self.state == CircuitState.OPEN:
            if self._should_attempt_reset():
                self._transition(CircuitState.HALF_OPEN)
            else:
                self.rejected_calls += 1
                retry_after = max(0.0, (self.reset_timeout - self._elapsed_since_failure_ms()) / 1000)
                raise CircuitOpenError(self.name, retry_after)
        elif self.state == CircuitState.HALF_OPEN and self._trial_in_flight:
            # Only one probe at a time while half-open
            self.rejected_calls += 1
            raise CircuitOpenError(self.name, 0.0)

        is_trial = self.state == CircuitState.HALF_OPEN
        if is_trial:
            self._trial_in_flight = True

        start = time.perf_counter()
        try:
            with self.monitor.track(f"circuit-breaker.{self.name}.execute"):
                result = await operation()
        except Exception as exc:
            self._mark_failure(exc)
            raise
        finally:
            self.total_calls += 1
            if is_trial:
                self._trial_in_flight = False

        self._mark_success((time.perf_counter() - start) * 1000)
        return result

    def error_rate(self) -> float:
        # No calls yet means no errors; avoid reporting NaN
        if self.total_calls == 0:
            return 0.0
        return self.failed_calls / self.total_calls * 100

    def get_health(self) -> Dict[str, Any]:
        """Read-only snapshot of breaker state and call metrics."""
        now = self._clock()
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self.failure_count,
            "failure_threshold": self.failure_threshold,
            "reset_timeout": self.reset_timeout,
            "metrics": {
                "total_calls": self.total_calls,
                "failed_calls": self.failed_calls,
                "rejected_calls": self.rejected_calls,
                "last_error": str(self.last_error) if self.last_error is not None else None,
                "average_response_time": round(self.average_response_time, 3),
                "last_state_change": datetime.fromtimestamp(self.last_state_change, tz=timezone.utc).isoformat(),
                "error_rate": round(self.error_rate(), 2),
                "uptime": round((now - self.last_state_change) * 1000, 3),
            },
        }


def create_db_circuit_breaker(failure_threshold: int, reset_timeout: int) -> CircuitBreaker:
    """Factory for the breaker that guards database calls."""
    return CircuitBreaker(
        CircuitBreakerConfig(failure_threshold=failure_threshold, reset_timeout=reset_timeout),
        name="database",
    )
