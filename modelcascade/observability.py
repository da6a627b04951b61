"""
Metric hooks for cascade runs.

The executor reports attempt and run metrics to any number of hooks.
Implement MetricHook to forward them to Prometheus, StatsD,
OpenTelemetry or similar backends.

Metrics emitted by FallbackExecutor:
    cascade.attempts            counter  tags: attempt_id, status
    cascade.attempt.duration    timing   tags: attempt_id, status
    cascade.runs                counter  tags: state
    cascade.run.duration        timing   tags: state
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class MetricHook(Protocol):
    """
    Protocol for metric backends.

    Example:
        >>> class StatsdHook:
        ...     def increment(self, name, value=1.0, tags=None):
        ...         statsd.incr(name, value, tags=tags)
        ...
        ...     def timing(self, name, duration_ms, tags=None):
        ...         statsd.timing(name, duration_ms, tags=tags)
        >>>
        >>> executor = FallbackExecutor(metric_hooks=[StatsdHook()])
    """

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        """Increment a counter metric."""
        ...

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        """Record a duration in milliseconds."""
        ...


class LoggingMetricHook:
    """
    Hook that logs metrics (for development and debugging).

    Example:
        >>> hook = LoggingMetricHook()
        >>> hook.increment("cascade.runs", 1.0, {"state": "succeeded"})
        DEBUG:modelcascade.metrics:COUNTER cascade.runs=1.0 tags={'state': 'succeeded'}
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger("modelcascade.metrics")
        self.level = level

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"COUNTER {name}={value} tags={tags}")

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        self.logger.log(self.level, f"TIMING {name}={duration_ms}ms tags={tags}")


@dataclass
class TimingStats:
    """Statistics for recorded timings."""

    count: int
    total: float
    min: float
    max: float
    avg: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "total": self.total,
            "min": self.min,
            "max": self.max,
            "avg": self.avg,
        }


class InMemoryMetricHook:
    """
    In-memory metrics for tests and simple use cases.

    Example:
        >>> hook = InMemoryMetricHook()
        >>> executor = FallbackExecutor(metric_hooks=[hook])
        >>> await executor.run(catalog, request)
        >>> hook.get_counter("cascade.runs", {"state": "succeeded"})
        1.0
    """

    def __init__(self) -> None:
        self.counters: dict[str, float] = defaultdict(float)
        self.timings: dict[str, list[float]] = defaultdict(list)

    def _make_key(self, name: str, tags: dict[str, Any] | None) -> str:
        """Create a unique key from metric name and tags."""
        if not tags:
            return name
        tag_str = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
        return f"{name}[{tag_str}]"

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        self.counters[self._make_key(name, tags)] += value

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        self.timings[self._make_key(name, tags)].append(duration_ms)

    def get_counter(self, name: str, tags: dict[str, Any] | None = None) -> float:
        """Current counter value, or 0.0 if never incremented."""
        return self.counters.get(self._make_key(name, tags), 0.0)

    def get_timing_stats(
        self, name: str, tags: dict[str, Any] | None = None
    ) -> TimingStats | None:
        """Statistics for a timing metric, or None if nothing was recorded."""
        values = self.timings.get(self._make_key(name, tags), [])
        if not values:
            return None
        return TimingStats(
            count=len(values),
            total=sum(values),
            min=min(values),
            max=max(values),
            avg=sum(values) / len(values),
        )

    def reset(self) -> None:
        self.counters.clear()
        self.timings.clear()


class MetricEmitter:
    """Fans metrics out to hooks; a failing hook is logged and skipped."""

    def __init__(self, hooks: Iterable[MetricHook] = ()) -> None:
        self.hooks: list[MetricHook] = list(hooks)

    def add_hook(self, hook: MetricHook) -> None:
        self.hooks.append(hook)

    def increment(self, name: str, value: float = 1.0, tags: dict[str, Any] | None = None) -> None:
        for hook in self.hooks:
            try:
                hook.increment(name, value, tags)
            except Exception as e:
                logger.error(f"Metric hook {type(hook).__name__} failed on {name}: {e}")

    def timing(self, name: str, duration_ms: float, tags: dict[str, Any] | None = None) -> None:
        for hook in self.hooks:
            try:
                hook.timing(name, duration_ms, tags)
            except Exception as e:
                logger.error(f"Metric hook {type(hook).__name__} failed on {name}: {e}")
