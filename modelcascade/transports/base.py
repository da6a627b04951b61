"""
Transport interface for cascade attempts.

A transport performs the actual call against one model endpoint. The
cascade core only holds a reference to it and relies on two things:
invoke() raises on any failure instead of returning a sentinel, and
is_usable_response() decides whether a structurally valid response is
worth returning to the caller.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatRequest:
    """
    Provider-agnostic generation request.

    Attributes:
        messages: Chat messages, [{"role": "user", "content": "..."}].
        prompt: Plain prompt for completion-style endpoints.
        options: Generation options (temperature, top_p, top_k, ...).

    Example:
        >>> request = ChatRequest.from_prompt("Hello", temperature=0.2)
        >>> request.as_messages()
        [{'role': 'user', 'content': 'Hello'}]
    """

    messages: tuple[Mapping[str, str], ...] = ()
    prompt: str | None = None
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.messages and not self.prompt:
            raise ValueError("ChatRequest needs messages or a prompt")

    @classmethod
    def from_prompt(cls, prompt: str, system: str | None = None, **options: Any) -> ChatRequest:
        """Build a request from a single prompt."""
        messages: list[Mapping[str, str]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return cls(messages=tuple(messages), prompt=prompt, options=options)

    @classmethod
    def from_messages(cls, messages: Sequence[Mapping[str, str]], **options: Any) -> ChatRequest:
        return cls(messages=tuple(messages), options=options)

    def as_messages(self) -> list[dict[str, str]]:
        """Messages for chat endpoints."""
        if self.messages:
            return [dict(m) for m in self.messages]
        return [{"role": "user", "content": self.prompt or ""}]

    def as_prompt(self) -> str:
        """Prompt for completion endpoints."""
        if self.prompt:
            return self.prompt
        return "\n\n".join(m.get("content", "") for m in self.messages)


@dataclass
class ModelResponse:
    """
    Normalized model answer.

    Attributes:
        text: Generated text.
        model: Model that produced it.
        provider: Provider name (ollama, openrouter, ...).
        raw: Decoded provider response body.
        metadata: Token counts, durations and similar extras.
    """

    text: str
    model: str
    provider: str
    raw: Any = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "model": self.model,
            "provider": self.provider,
            "metadata": self.metadata,
        }


def is_non_empty(response: Any) -> bool:
    """
    Default success predicate.

    None, blank strings and empty containers are rejected. ModelResponse
    objects are judged by their text.
    """
    if response is None:
        return False
    if isinstance(response, ModelResponse):
        return has_text(response)
    if isinstance(response, str):
        return bool(response.strip())
    if isinstance(response, (bytes, Mapping, Sequence, set, frozenset)):
        return len(response) > 0
    return True


def has_text(response: Any) -> bool:
    """Predicate for ModelResponse: the generated text is not blank."""
    text = getattr(response, "text", None)
    return isinstance(text, str) and bool(text.strip())


@runtime_checkable
class Transport(Protocol):
    """
    Protocol every attempt transport implements.

    Example:
        >>> class EchoTransport:
        ...     async def invoke(self, request, timeout_ms):
        ...         return request.as_prompt()
        ...
        ...     def is_usable_response(self, response):
        ...         return bool(response)
    """

    async def invoke(self, request: Any, timeout_ms: float) -> Any:
        """
        Perform the call.

        Args:
            request: The caller's request, forwarded verbatim.
            timeout_ms: Budget for this call in milliseconds.

        Raises:
            Exception: On any non-success condition.
        """
        ...

    def is_usable_response(self, response: Any) -> bool:
        """Whether the response can be returned to the caller."""
        ...


class CallableTransport:
    """
    Adapts a plain function into a Transport.

    Async functions are awaited directly. Synchronous functions run in
    the default thread pool; a timed-out thread cannot be stopped, but its
    result is discarded.

    Example:
        >>> async def call_model(request):
        ...     return await client.complete(request.as_prompt())
        >>>
        >>> transport = CallableTransport(call_model)
    """

    def __init__(
        self,
        func: Callable[..., Any],
        predicate: Callable[[Any], bool] | None = None,
        pass_timeout: bool = False,
        name: str | None = None,
    ) -> None:
        """
        Args:
            func: Called as func(request), or func(request, timeout_ms=...)
                when pass_timeout is True.
            predicate: Success predicate (defaults to is_non_empty).
            pass_timeout: Forward the attempt budget to func.
            name: Name used in logs.
        """
        self.func = func
        self.predicate = predicate or is_non_empty
        self.pass_timeout = pass_timeout
        self.name = name or getattr(func, "__name__", type(func).__name__)

    async def invoke(self, request: Any, timeout_ms: float) -> Any:
        kwargs = {"timeout_ms": timeout_ms} if self.pass_timeout else {}

        if inspect.iscoroutinefunction(self.func):
            return await self.func(request, **kwargs)

        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            None, functools.partial(self.func, request, **kwargs)
        )
        if inspect.isawaitable(result):
            result = await result
        return result

    def is_usable_response(self, response: Any) -> bool:
        return self.predicate(response)

    def __repr__(self) -> str:
        return f"CallableTransport({self.name})"


def as_transport(target: Any) -> Transport:
    """
    Coerce a transport-like object.

    Objects that already implement the protocol are returned unchanged,
    plain callables are wrapped in CallableTransport.

    Raises:
        TypeError: If target is neither.
    """
    if isinstance(target, Transport):
        return target
    if callable(target):
        return CallableTransport(target)
    raise TypeError(f"{type(target).__name__} is not a transport or callable")
