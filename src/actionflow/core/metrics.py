"""Metrics collection for ActionFlow.

Tracks:
- Operation latency per action type
- Successes and failures per action type
- Retries and timeouts
- Batch outcomes

The collector is an injected sink: nothing records metrics unless a
collector is handed to it. Timing is explicit (Timer, timed_call) rather
than decorator-based.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, TypeVar

T = TypeVar("T")

# Percentiles are computed over the most recent samples only
LATENCY_SAMPLE_LIMIT = 1000


@dataclass
class LatencyStats:
    """Statistics for latency measurements."""

    count: int = 0
    total_ms: float = 0.0
    min_ms: float = float("inf")
    max_ms: float = 0.0
    values: deque[float] = field(default_factory=lambda: deque(maxlen=LATENCY_SAMPLE_LIMIT))

    def record(self, duration_ms: float) -> None:
        """Record a latency measurement.

        Args:
            duration_ms: Duration in milliseconds
        """
        self.count += 1
        self.total_ms += duration_ms
        self.min_ms = min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        self.values.append(duration_ms)

    @property
    def avg_ms(self) -> float:
        """Average latency in milliseconds."""
        return self.total_ms / self.count if self.count > 0 else 0.0

    def _percentile(self, fraction: float) -> float:
        if not self.values:
            return 0.0
        sorted_values = sorted(self.values)
        idx = int(len(sorted_values) * fraction)
        return sorted_values[min(idx, len(sorted_values) - 1)]

    @property
    def p50_ms(self) -> float:
        """50th percentile (median) latency."""
        return self._percentile(0.5)

    @property
    def p95_ms(self) -> float:
        """95th percentile latency."""
        return self._percentile(0.95)

    @property
    def p99_ms(self) -> float:
        """99th percentile latency."""
        return self._percentile(0.99)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "count": self.count,
            "total_ms": round(self.total_ms, 2),
            "avg_ms": round(self.avg_ms, 2),
            "min_ms": round(self.min_ms, 2) if self.min_ms != float("inf") else 0.0,
            "max_ms": round(self.max_ms, 2),
            "p50_ms": round(self.p50_ms, 2),
            "p95_ms": round(self.p95_ms, 2),
            "p99_ms": round(self.p99_ms, 2),
        }

    def reset(self) -> None:
        """Reset all statistics."""
        self.count = 0
        self.total_ms = 0.0
        self.min_ms = float("inf")
        self.max_ms = 0.0
        self.values.clear()


@dataclass
class OperationCounts:
    """Outcome counters for one action type."""

    succeeded: int = 0
    failed: int = 0
    retries: int = 0
    timeouts: int = 0

    @property
    def total(self) -> int:
        """Completed operations (successes plus failures)."""
        return self.succeeded + self.failed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "retries": self.retries,
            "timeouts": self.timeouts,
            "success_rate": round(self.succeeded / self.total, 4) if self.total else 0.0,
        }


class MetricsCollector:
    """Collects and aggregates operation metrics.

    Thread-safe; the orchestrator itself is single-threaded but a
    collector may be shared with reporting code.
    """

    def __init__(self) -> None:
        """Initialize metrics collector."""
        self._lock = Lock()
        self._latency: dict[str, LatencyStats] = {}
        self._counts: dict[str, OperationCounts] = {}
        self._batches: dict[str, int] = {"artifact": 0, "concurrent": 0}

    def _counts_for(self, name: str) -> OperationCounts:
        if name not in self._counts:
            self._counts[name] = OperationCounts()
        return self._counts[name]

    def record_operation(self, name: str, duration_ms: float, success: bool) -> None:
        """Record a completed operation.

        Args:
            name: Operation name (usually the action type)
            duration_ms: Duration in milliseconds
            success: Whether the operation succeeded
        """
        with self._lock:
            self._latency.setdefault(name, LatencyStats()).record(duration_ms)
            counts = self._counts_for(name)
            if success:
                counts.succeeded += 1
            else:
                counts.failed += 1

    def record_retry(self, name: str) -> None:
        """Record a retry of an operation."""
        with self._lock:
            self._counts_for(name).retries += 1

    def record_timeout(self, name: str) -> None:
        """Record an operation timeout."""
        with self._lock:
            self._counts_for(name).timeouts += 1

    def record_batch(self, mode: str) -> None:
        """Record a batch execution ("artifact" or "concurrent")."""
        with self._lock:
            self._batches[mode] = self._batches.get(mode, 0) + 1

    def get_latency(self, name: str) -> LatencyStats | None:
        """Get latency stats for an operation name."""
        with self._lock:
            return self._latency.get(name)

    def get_summary(self) -> dict[str, Any]:
        """Get metrics summary.

        Returns:
            Dictionary with aggregated metrics
        """
        with self._lock:
            succeeded = sum(c.succeeded for c in self._counts.values())
            failed = sum(c.failed for c in self._counts.values())
            total = succeeded + failed
            return {
                "operations": {
                    "total": total,
                    "succeeded": succeeded,
                    "failed": failed,
                    "success_rate": round(succeeded / total, 4) if total else 0.0,
                    "by_type": {
                        name: counts.to_dict() for name, counts in self._counts.items()
                    },
                },
                "latency": {
                    name: stats.to_dict() for name, stats in self._latency.items()
                },
                "batches": dict(self._batches),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._latency.clear()
            self._counts.clear()
            self._batches = {"artifact": 0, "concurrent": 0}


class Timer:
    """Context manager for timing operations.

    Example:
        with Timer() as timer:
            # Do something
            pass
        print(f"Duration: {timer.duration_ms}ms")
    """

    def __init__(self) -> None:
        """Initialize timer."""
        self.start_time: float = 0
        self.end_time: float = 0

    def __enter__(self) -> Timer:
        """Start timing."""
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args: Any) -> None:
        """Stop timing."""
        self.end_time = time.perf_counter()

    @property
    def duration_ms(self) -> float:
        """Duration in milliseconds."""
        return (self.end_time - self.start_time) * 1000

    @property
    def duration_seconds(self) -> float:
        """Duration in seconds."""
        return self.end_time - self.start_time


async def timed_call(
    sink: MetricsCollector | None,
    name: str,
    func: Callable[[], Awaitable[T]],
) -> T:
    """Await func and record its duration and outcome in sink.

    Args:
        sink: Collector to write to; None disables recording.
        name: Operation name to record under.
        func: Zero-argument coroutine function.

    Returns:
        Whatever func returns. Exceptions propagate after being recorded.
    """
    success = False
    timer = Timer()
    try:
        with timer:
            result = await func()
        success = True
        return result
    finally:
        if sink is not None:
            sink.record_operation(name, timer.duration_ms, success)
