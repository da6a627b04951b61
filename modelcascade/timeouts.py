"""
Timeout handling for cascade runs.

Provides the time-budget bookkeeping the executor uses: per-attempt
timeout defaults and an optional global deadline spanning all attempts
of a run.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any


@dataclass
class TimeoutConfig:
    """
    Timeout settings for a cascade.

    Attributes:
        default_attempt_timeout_ms: Applied to catalog entries without
            their own timeout.
        global_timeout_ms: Optional bound on the whole run. None means
            only per-attempt timeouts apply.

    Example:
        >>> config = TimeoutConfig(
        ...     default_attempt_timeout_ms=30000,
        ...     global_timeout_ms=90000,
        ... )
    """

    default_attempt_timeout_ms: int = 30_000
    global_timeout_ms: int | None = None

    def __post_init__(self) -> None:
        if self.default_attempt_timeout_ms <= 0:
            raise ValueError(
                f"default_attempt_timeout_ms must be positive, got {self.default_attempt_timeout_ms}"
            )
        if self.global_timeout_ms is not None and self.global_timeout_ms <= 0:
            raise ValueError(f"global_timeout_ms must be positive, got {self.global_timeout_ms}")

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "default_attempt_timeout_ms": self.default_attempt_timeout_ms,
            "global_timeout_ms": self.global_timeout_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TimeoutConfig:
        """Create config from dictionary."""
        return cls(
            default_attempt_timeout_ms=data.get("default_attempt_timeout_ms", 30_000),
            global_timeout_ms=data.get("global_timeout_ms"),
        )


class Deadline:
    """
    Tracks the remaining wall-clock budget of a run.

    Uses the monotonic clock. A deadline created with timeout_ms=None is
    unbounded: it never expires and only the per-attempt timeout applies.

    Example:
        >>> deadline = Deadline(timeout_ms=5000)
        >>> budget = deadline.bound(attempt_timeout_ms=30000)  # <= 5000
        >>> if deadline.is_expired():
        ...     ...
    """

    def __init__(self, timeout_ms: float | None = None) -> None:
        """
        Start the deadline.

        Args:
            timeout_ms: Total budget in milliseconds, or None for no bound.
        """
        if timeout_ms is not None and timeout_ms <= 0:
            raise ValueError(f"Timeout must be positive, got {timeout_ms}")
        self.timeout_ms = timeout_ms
        self.started_at = time.monotonic()
        self._expires_at = (
            None if timeout_ms is None else self.started_at + timeout_ms / 1000.0
        )

    @property
    def bounded(self) -> bool:
        return self._expires_at is not None

    def remaining_ms(self) -> float | None:
        """
        Get remaining budget.

        Returns:
            Milliseconds left (never negative), or None when unbounded.
        """
        if self._expires_at is None:
            return None
        return max(0.0, (self._expires_at - time.monotonic()) * 1000.0)

    def elapsed_ms(self) -> float:
        """Milliseconds since the deadline started."""
        return (time.monotonic() - self.started_at) * 1000.0

    def is_expired(self) -> bool:
        """Check if the budget is used up."""
        if self._expires_at is None:
            return False
        return time.monotonic() >= self._expires_at

    def bound(self, attempt_timeout_ms: float) -> float:
        """
        Effective timeout for the next attempt.

        Args:
            attempt_timeout_ms: The attempt's own timeout.

        Returns:
            The minimum of the attempt timeout and the remaining budget.
        """
        remaining = self.remaining_ms()
        if remaining is None:
            return attempt_timeout_ms
        return min(attempt_timeout_ms, remaining)

    def limits(self, attempt_timeout_ms: float) -> bool:
        """Whether the global budget, not the attempt timeout, is the binding limit."""
        remaining = self.remaining_ms()
        return remaining is not None and remaining < attempt_timeout_ms

    def __repr__(self) -> str:
        return f"Deadline(timeout_ms={self.timeout_ms}, remaining_ms={self.remaining_ms()})"
