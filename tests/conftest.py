"""
Pytest fixtures for modelcascade tests.

Provides scripted transports and common catalogs.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from modelcascade import ChatRequest, ProviderCatalog
from modelcascade.observability import InMemoryMetricHook


class ScriptedTransport:
    """
    Transport with a fixed behaviour that records every call.

    Args:
        result: Value returned by invoke().
        error: Exception raised by invoke() (takes precedence).
        delay: Seconds to sleep before answering. None means never answer.
        usable: Result of is_usable_response(); defaults to truthiness.
    """

    def __init__(
        self,
        result: Any = "OK",
        error: Exception | None = None,
        delay: float | None = 0.0,
        usable: bool | None = None,
    ) -> None:
        self.result = result
        self.error = error
        self.delay = delay
        self.usable = usable
        self.calls: list[tuple[Any, float]] = []
        self.cancelled = False
        self.finished = False

    async def invoke(self, request: Any, timeout_ms: float) -> Any:
        self.calls.append((request, timeout_ms))
        try:
            if self.delay is None:
                await asyncio.Event().wait()
            elif self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        self.finished = True
        if self.error is not None:
            raise self.error
        return self.result

    def is_usable_response(self, response: Any) -> bool:
        if self.usable is not None:
            return self.usable
        return bool(response)

    @property
    def call_count(self) -> int:
        return len(self.calls)


def ok(result: Any = "OK", delay: float = 0.0) -> ScriptedTransport:
    return ScriptedTransport(result=result, delay=delay)


def failing(message: str = "boom") -> ScriptedTransport:
    return ScriptedTransport(error=RuntimeError(message))


def hanging() -> ScriptedTransport:
    return ScriptedTransport(delay=None)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def request_payload() -> ChatRequest:
    """A simple prompt request."""
    return ChatRequest.from_prompt("Hello")


@pytest.fixture
def metrics() -> InMemoryMetricHook:
    return InMemoryMetricHook()


@pytest.fixture
def transports() -> dict[str, ScriptedTransport]:
    """Transports for the three-entry catalog, all succeeding."""
    return {"A": ok("from A"), "B": ok("from B"), "C": ok("from C")}


@pytest.fixture
def tiered_catalog(transports: dict[str, ScriptedTransport]) -> ProviderCatalog:
    """Entries A, B at tier 0 and C at tier 1, in that declaration order."""
    return ProviderCatalog.build(
        [
            {"id": "A", "tier": 0},
            {"id": "B", "tier": 0},
            {"id": "C", "tier": 1},
        ],
        transports=transports,
    )
