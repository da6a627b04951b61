"""
Core type definitions for modelcascade.

This module defines the data structures shared by the catalog and the
executor: attempt descriptors, per-attempt outcomes and the aggregate
record of one cascade run.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# Terminal failure reasons
ALL_ATTEMPTS_FAILED = "all-attempts-failed"
GLOBAL_TIMEOUT = "global-timeout"
CANCELLED = "cancelled"
EMPTY_RESPONSE = "empty response"


def generate_request_id() -> str:
    """Generate a correlation id for a cascade run."""
    return uuid.uuid4().hex


class AttemptStatus(Enum):
    """Outcome classification for a single attempt."""

    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    SKIPPED = "skipped"

    def __str__(self) -> str:
        return self.value


class RunState(Enum):
    """Lifecycle state of a FallbackRun."""

    PENDING = "pending"
    ATTEMPTING = "attempting"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Whether no transition can leave this state."""
        return self not in (RunState.PENDING, RunState.ATTEMPTING)


@dataclass(frozen=True)
class AttemptDescriptor:
    """
    One callable target in a provider catalog.

    Attributes:
        id: Stable identifier (e.g., "opencode/minimax-m2.1-free").
        transport: Object performing the actual call (see transports).
        tier: Coarse priority; lower tiers are attempted first.
        timeout_ms: Per-attempt timeout in milliseconds.
        enabled: Disabled entries are never attempted.
        index: Original declaration position, used as the tie-break key.
        metadata: Free-form data (provider, model name, ...).

    Example:
        >>> descriptor = AttemptDescriptor(
        ...     id="ollama/llama3.2",
        ...     transport=OllamaTransport("llama3.2"),
        ...     tier=2,
        ...     timeout_ms=30000,
        ... )
    """

    id: str
    transport: Any
    tier: int = 0
    timeout_ms: float | None = None
    enabled: bool = True
    index: int = 0
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def sort_key(self) -> tuple[int, int]:
        """Ordering key: tier first, then declaration order."""
        return (self.tier, self.index)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (the transport is not serialized)."""
        return {
            "id": self.id,
            "tier": self.tier,
            "timeout_ms": self.timeout_ms,
            "enabled": self.enabled,
            "index": self.index,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class AttemptPayload:
    """
    A usable response together with its provenance.

    Attributes:
        data: The raw response returned by the transport.
        source: Id of the attempt that produced it.
    """

    data: Any
    source: str


@dataclass(frozen=True)
class AttemptOutcome:
    """
    Result of executing (or not executing) a single attempt.

    Attributes:
        attempt_id: Id of the AttemptDescriptor this outcome belongs to.
        status: Classification of the attempt.
        payload: Only set when status is SUCCESS.
        reason: Only set when status is not SUCCESS.
        duration_ms: Wall-clock time spent on the attempt.
    """

    attempt_id: str
    status: AttemptStatus
    payload: AttemptPayload | None = None
    reason: str | None = None
    duration_ms: float = 0.0

    def __post_init__(self) -> None:
        if self.status is AttemptStatus.SUCCESS:
            if self.payload is None:
                raise ValueError("Successful outcome requires a payload")
        elif self.payload is not None:
            raise ValueError(f"Outcome with status '{self.status}' cannot carry a payload")

    @property
    def succeeded(self) -> bool:
        return self.status is AttemptStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "attempt_id": self.attempt_id,
            "status": self.status.value,
            "reason": self.reason,
            "duration_ms": round(self.duration_ms, 3),
            "source": self.payload.source if self.payload else None,
        }


@dataclass(frozen=True)
class FailureSummary:
    """
    Terminal failure of a cascade run.

    Attributes:
        reason: One of "all-attempts-failed", "global-timeout", "cancelled".
        failures: (attempt_id, status, reason) for every recorded attempt.
    """

    reason: str
    failures: tuple[tuple[str, str, str | None], ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "failures": [
                {"attempt_id": attempt_id, "status": status, "reason": reason}
                for attempt_id, status, reason in self.failures
            ],
        }


@dataclass
class FallbackRun:
    """
    Aggregate record of one top-level cascade request.

    A run starts PENDING, moves to ATTEMPTING when the first attempt
    begins and ends in exactly one terminal state. Terminal states are
    absorbing: finishing a run twice raises RuntimeError.

    Attributes:
        request_id: Correlation id for logging and tracing.
        attempts: Outcomes in execution order.
        state: Current lifecycle state.
        result: Winning payload, or a FailureSummary, once terminal.
        duration_ms: Total wall-clock time of the run.

    Example:
        >>> run = await executor.run(catalog, request)
        >>> if run.succeeded:
        ...     print(f"Answered by {run.source}")
        ... else:
        ...     print(run.describe(verbose=True))
    """

    request_id: str = field(default_factory=generate_request_id)
    attempts: list[AttemptOutcome] = field(default_factory=list)
    state: RunState = RunState.PENDING
    result: AttemptPayload | FailureSummary | None = None
    duration_ms: float = 0.0

    def record(self, outcome: AttemptOutcome) -> None:
        """Append an attempt outcome."""
        self._ensure_open()
        self.state = RunState.ATTEMPTING
        self.attempts.append(outcome)

    def succeed(self, payload: AttemptPayload) -> None:
        """Finalize the run with a winning payload."""
        self._ensure_open()
        self.state = RunState.SUCCEEDED
        self.result = payload

    def fail(self, state: RunState, reason: str) -> None:
        """Finalize the run as a failure."""
        self._ensure_open()
        if not state.is_terminal or state is RunState.SUCCEEDED:
            raise ValueError(f"'{state.value}' is not a failure state")
        self.state = state
        self.result = FailureSummary(
            reason=reason,
            failures=tuple(
                (outcome.attempt_id, outcome.status.value, outcome.reason)
                for outcome in self.attempts
            ),
        )

    def _ensure_open(self) -> None:
        if self.state.is_terminal:
            raise RuntimeError(
                f"Run {self.request_id} already finished in state '{self.state.value}'"
            )

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.SUCCEEDED

    @property
    def payload(self) -> AttemptPayload | None:
        """Winning payload, or None when the run failed."""
        return self.result if isinstance(self.result, AttemptPayload) else None

    @property
    def source(self) -> str | None:
        """Id of the attempt that served the request."""
        payload = self.payload
        return payload.source if payload else None

    @property
    def failure(self) -> FailureSummary | None:
        return self.result if isinstance(self.result, FailureSummary) else None

    def describe(self, verbose: bool = False) -> str:
        """
        Render the run for a user-facing layer.

        Args:
            verbose: Include the per-attempt breakdown on failure.

        Returns:
            A short message, or a multi-line breakdown when verbose.
        """
        if self.succeeded:
            return f"Answered by {self.source}"

        failure = self.failure
        reason = failure.reason if failure else self.state.value
        if not verbose:
            return f"Service unavailable ({reason})"

        lines = [f"Service unavailable ({reason}), {len(self.attempts)} attempt(s):"]
        for outcome in self.attempts:
            lines.append(f"  - {outcome.attempt_id}: {outcome.status.value} ({outcome.reason})")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (the payload data is not included)."""
        result: dict[str, Any] | None
        if isinstance(self.result, AttemptPayload):
            result = {"source": self.result.source}
        elif isinstance(self.result, FailureSummary):
            result = self.result.to_dict()
        else:
            result = None
        return {
            "request_id": self.request_id,
            "state": self.state.value,
            "duration_ms": round(self.duration_ms, 3),
            "attempts": [outcome.to_dict() for outcome in self.attempts],
            "result": result,
        }
