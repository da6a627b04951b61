"""
Fallback executor.

Drives one request through a provider catalog: attempts run strictly one
after another, the first usable answer wins, and every failure is
recorded in the returned FallbackRun instead of being raised.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from modelcascade.catalog import ProviderCatalog
from modelcascade.exceptions import ConfigurationError, TransportTimeout
from modelcascade.observability import MetricEmitter, MetricHook
from modelcascade.timeouts import Deadline
from modelcascade.types import (
    ALL_ATTEMPTS_FAILED,
    CANCELLED,
    EMPTY_RESPONSE,
    GLOBAL_TIMEOUT,
    AttemptDescriptor,
    AttemptOutcome,
    AttemptPayload,
    AttemptStatus,
    FallbackRun,
    RunState,
    generate_request_id,
)

logger = logging.getLogger(__name__)

_TIMEOUT_ERRORS = (asyncio.TimeoutError, TimeoutError, TransportTimeout)


@dataclass
class RunOptions:
    """
    Per-run options.

    Attributes:
        override: Attempt id to try first, before catalog order.
        global_timeout_ms: Bound on the whole run. None means only
            per-attempt timeouts apply.
        request_id: Correlation id. Generated when None.
        cancel_event: Setting this event aborts the in-flight attempt and
            finalizes the run as cancelled.

    Example:
        >>> options = RunOptions(override="ollama/llama3.2", global_timeout_ms=60000)
        >>> run = await executor.run(catalog, request, options)
    """

    override: str | None = None
    global_timeout_ms: float | None = None
    request_id: str | None = None
    cancel_event: asyncio.Event | None = None

    def __post_init__(self) -> None:
        if self.global_timeout_ms is not None and self.global_timeout_ms <= 0:
            raise ConfigurationError(
                "global_timeout_ms",
                expected="positive number of milliseconds",
                received=self.global_timeout_ms,
            )


def _reason(exc: BaseException) -> str:
    """Human-readable failure reason for an exception."""
    return str(exc) or type(exc).__name__


class FallbackExecutor:
    """
    Sequential first-success-wins executor.

    Attempts are never run in parallel and never retried within a run.
    Transport failures, timeouts and unusable responses are captured as
    AttemptOutcome values; run() always returns a FallbackRun.

    Example:
        >>> executor = FallbackExecutor()
        >>> run = await executor.run(catalog, ChatRequest.from_prompt("Hello"))
        >>> if run.succeeded:
        ...     print(run.source, run.payload.data.text)
        ... else:
        ...     print(run.describe(verbose=True))
    """

    def __init__(self, metric_hooks: Iterable[MetricHook] | None = None) -> None:
        """
        Initialize the executor.

        Args:
            metric_hooks: Hooks receiving attempt and run metrics.
        """
        self._metrics = MetricEmitter(metric_hooks or ())

    def add_metric_hook(self, hook: MetricHook) -> None:
        self._metrics.add_hook(hook)

    async def run(
        self,
        catalog: ProviderCatalog,
        request: Any,
        options: RunOptions | None = None,
    ) -> FallbackRun:
        """
        Execute the cascade for one request.

        Args:
            catalog: Provider catalog; its order is snapshotted at start.
            request: Forwarded verbatim to every transport.
            options: Override, global timeout, request id, cancel signal.

        Returns:
            A finished FallbackRun, successful or not.

        Raises:
            asyncio.CancelledError: If the task running this coroutine is
                cancelled. The in-flight transport call is cancelled first.
        """
        options = options or RunOptions()
        run = FallbackRun(request_id=options.request_id or generate_request_id())
        attempts = catalog.ordered_attempts(options.override)
        deadline = Deadline(options.global_timeout_ms)

        logger.debug(
            f"Run {run.request_id}: {len(attempts)} attempt(s) "
            f"[{', '.join(d.id for d in attempts)}]"
        )

        await self._walk(run, attempts, request, deadline, options.cancel_event)

        run.duration_ms = deadline.elapsed_ms()
        self._metrics.increment("cascade.runs", tags={"state": run.state.value})
        self._metrics.timing("cascade.run.duration", run.duration_ms, tags={"state": run.state.value})

        if run.succeeded:
            logger.info(
                f"Run {run.request_id} served by '{run.source}' "
                f"after {len(run.attempts)} attempt(s)"
            )
        else:
            logger.error(f"Run {run.request_id} failed: {run.describe(verbose=True)}")
        return run

    def run_sync(
        self,
        catalog: ProviderCatalog,
        request: Any,
        options: RunOptions | None = None,
    ) -> FallbackRun:
        """
        Blocking variant of run() for callers without an event loop.

        Raises:
            RuntimeError: If called from inside a running event loop.
        """
        return asyncio.run(self.run(catalog, request, options))

    async def _walk(
        self,
        run: FallbackRun,
        attempts: Sequence[AttemptDescriptor],
        request: Any,
        deadline: Deadline,
        cancel_event: asyncio.Event | None,
    ) -> None:
        for position, descriptor in enumerate(attempts):
            if cancel_event is not None and cancel_event.is_set():
                run.fail(RunState.CANCELLED, CANCELLED)
                return

            if deadline.is_expired():
                self._skip_remaining(run, attempts[position:])
                run.fail(RunState.TIMED_OUT, GLOBAL_TIMEOUT)
                return

            budget_is_global = deadline.limits(descriptor.timeout_ms)
            outcome, timer_fired = await self._attempt(descriptor, request, deadline, cancel_event)
            run.record(outcome)
            self._record_metrics(outcome)

            if outcome.status is AttemptStatus.SUCCESS:
                run.succeed(outcome.payload)
                return

            if outcome.status is AttemptStatus.SKIPPED:
                run.fail(RunState.CANCELLED, CANCELLED)
                return

            logger.warning(
                f"Run {run.request_id}: '{descriptor.id}' {outcome.status.value}: {outcome.reason}"
            )

            # A transport's own timeout only ends the run once the budget is gone.
            if outcome.status is AttemptStatus.TIMEOUT and (
                (timer_fired and budget_is_global) or deadline.is_expired()
            ):
                self._skip_remaining(run, attempts[position + 1:])
                run.fail(RunState.TIMED_OUT, GLOBAL_TIMEOUT)
                return

        run.fail(RunState.EXHAUSTED, ALL_ATTEMPTS_FAILED)

    def _skip_remaining(self, run: FallbackRun, remaining: Sequence[AttemptDescriptor]) -> None:
        for descriptor in remaining:
            outcome = AttemptOutcome(
                attempt_id=descriptor.id,
                status=AttemptStatus.SKIPPED,
                reason=GLOBAL_TIMEOUT,
            )
            run.record(outcome)
            self._record_metrics(outcome)

    async def _attempt(
        self,
        descriptor: AttemptDescriptor,
        request: Any,
        deadline: Deadline,
        cancel_event: asyncio.Event | None,
    ) -> tuple[AttemptOutcome, bool]:
        """
        Run one attempt, racing the transport against its timer and the cancel signal.

        Returns:
            The outcome, and whether the executor's timer cut the call off.
        """
        timeout_ms = deadline.bound(descriptor.timeout_ms)
        transport = descriptor.transport
        started = time.monotonic()

        logger.debug(f"Attempting '{descriptor.id}' (timeout={timeout_ms:.0f}ms)")

        call = asyncio.ensure_future(self._invoke(transport, request, timeout_ms))
        waiters: set[asyncio.Future[Any]] = {call}
        cancel_waiter: asyncio.Future[Any] | None = None
        if cancel_event is not None:
            cancel_waiter = asyncio.ensure_future(cancel_event.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=timeout_ms / 1000.0,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._abandon(call)
            raise
        finally:
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        duration_ms = (time.monotonic() - started) * 1000.0

        if call not in done:
            await self._abandon(call)
            if cancel_waiter is not None and cancel_waiter in done:
                return AttemptOutcome(
                    attempt_id=descriptor.id,
                    status=AttemptStatus.SKIPPED,
                    reason=CANCELLED,
                    duration_ms=duration_ms,
                ), False
            return AttemptOutcome(
                attempt_id=descriptor.id,
                status=AttemptStatus.TIMEOUT,
                reason=f"timed out after {timeout_ms:.0f}ms",
                duration_ms=duration_ms,
            ), True

        return self._classify(descriptor, call, duration_ms), False

    @staticmethod
    async def _invoke(transport: Any, request: Any, timeout_ms: float) -> Any:
        result = transport.invoke(request, timeout_ms)
        if asyncio.isfuture(result) or asyncio.iscoroutine(result):
            result = await result
        return result

    @staticmethod
    async def _abandon(call: asyncio.Future[Any]) -> None:
        """Cancel an in-flight call and wait until it can no longer produce a result."""
        call.cancel()
        await asyncio.gather(call, return_exceptions=True)

    @staticmethod
    def _classify(
        descriptor: AttemptDescriptor,
        call: asyncio.Future[Any],
        duration_ms: float,
    ) -> AttemptOutcome:
        if call.cancelled():
            return AttemptOutcome(
                attempt_id=descriptor.id,
                status=AttemptStatus.ERROR,
                reason="transport call was cancelled",
                duration_ms=duration_ms,
            )

        exc = call.exception()
        if exc is not None:
            status = (
                AttemptStatus.TIMEOUT if isinstance(exc, _TIMEOUT_ERRORS) else AttemptStatus.ERROR
            )
            return AttemptOutcome(
                attempt_id=descriptor.id,
                status=status,
                reason=_reason(exc),
                duration_ms=duration_ms,
            )

        response = call.result()
        try:
            usable = descriptor.transport.is_usable_response(response)
        except Exception as e:
            return AttemptOutcome(
                attempt_id=descriptor.id,
                status=AttemptStatus.ERROR,
                reason=f"response check failed: {_reason(e)}",
                duration_ms=duration_ms,
            )

        if not usable:
            return AttemptOutcome(
                attempt_id=descriptor.id,
                status=AttemptStatus.ERROR,
                reason=EMPTY_RESPONSE,
                duration_ms=duration_ms,
            )

        return AttemptOutcome(
            attempt_id=descriptor.id,
            status=AttemptStatus.SUCCESS,
            payload=AttemptPayload(data=response, source=descriptor.id),
            duration_ms=duration_ms,
        )

    def _record_metrics(self, outcome: AttemptOutcome) -> None:
        tags = {"attempt_id": outcome.attempt_id, "status": outcome.status.value}
        self._metrics.increment("cascade.attempts", tags=tags)
        self._metrics.timing("cascade.attempt.duration", outcome.duration_ms, tags=tags)
