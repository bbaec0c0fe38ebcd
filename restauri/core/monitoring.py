"""
Performance Monitor

Records the duration and outcome of named operations in a sliding window
and warns about slow or repeatedly failing operations.

Usage::

    end = monitor.start_operation("db.query")
    try:
        ...
    finally:
        end()

or, recording failures as well::

    with monitor.track("db.query"):
        ...
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from restauri.core.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OperationMetric:
    operation: str
    duration: float  # milliseconds
    timestamp: float  # epoch seconds
    success: bool = True
    error: Optional[str] = None


class PerformanceMonitor:
    """In-process operation metrics with a bounded sliding window."""

    WINDOW_SECONDS = 5 * 60
    MAX_METRICS = 1000
    SLOW_OPERATION_MS = 500
    ERROR_PATTERN_THRESHOLD = 3

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._metrics: List[OperationMetric] = []

    def start_operation(self, operation: str) -> Callable[[], None]:
        """Start timing *operation*; call the returned function to finish it."""
        start = time.perf_counter()
        finished = False

        def end(error: Optional[BaseException] = None) -> None:
            nonlocal finished
            if finished:
                return
            finished = True
            self._end_operation(operation, start, error)

        return end

    @contextmanager
    def track(self, operation: str) -> Iterator[None]:
        """Context manager form of :meth:`start_operation` that records failures."""
        end = self.start_operation(operation)
        try:
            yield
        except BaseException as exc:
            end(exc)
            raise
        else:
            end()

    def _end_operation(self, operation: str, start: float, error: Optional[BaseException]) -> None:
        duration = (time.perf_counter() - start) * 1000
        metric = OperationMetric(
            operation=operation,
            duration=duration,
            timestamp=self._clock(),
            success=error is None,
            error=str(error) if error is not None else None,
        )
        self._metrics.append(metric)
        self._prune()

        if duration > self.SLOW_OPERATION_MS:
            logger.warning(
                f"Slow operation detected: {operation} took {duration:.2f}ms",
                extra={"component": "monitoring", "operation": operation},
            )

        if error is not None:
            recent_errors = [m for m in self._metrics if m.operation == operation and not m.success][-5:]
            if len(recent_errors) >= self.ERROR_PATTERN_THRESHOLD:
                logger.error(
                    f"Error pattern detected for {operation}: {len(recent_errors)} recent failures",
                    extra={
                        "component": "monitoring",
                        "operation": operation,
                        "last_errors": [m.error for m in recent_errors],
                    },
                )

    def _prune(self) -> None:
        now = self._clock()
        self._metrics = [
            m for m in self._metrics if now - m.timestamp < self.WINDOW_SECONDS
        ][-self.MAX_METRICS:]

    def get_metrics(self, operation: Optional[str] = None) -> List[OperationMetric]:
        if operation:
            return [m for m in self._metrics if m.operation == operation]
        return list(self._metrics)

    def get_average_response_time(self, operation: str) -> float:
        relevant = self.get_metrics(operation)
        if not relevant:
            return 0.0
        return sum(m.duration for m in relevant) / len(relevant)

    def get_error_rate(self, operation: str) -> float:
        relevant = self.get_metrics(operation)
        if not relevant:
            return 0.0
        errors = len([m for m in relevant if not m.success])
        return errors / len(relevant) * 100

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation call count, average duration and error rate."""
        operations = sorted({m.operation for m in self._metrics})
        return {
            op: {
                "calls": len(self.get_metrics(op)),
                "average_response_time": round(self.get_average_response_time(op), 2),
                "error_rate": round(self.get_error_rate(op), 2),
                "window_started_at": datetime.fromtimestamp(
                    min(m.timestamp for m in self.get_metrics(op)), tz=timezone.utc
                ).isoformat(),
            }
            for op in operations
        }
