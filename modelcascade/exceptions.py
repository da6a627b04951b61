"""
Custom exceptions for modelcascade.

Only configuration-time problems are raised to callers. Anything that
goes wrong while walking the cascade is captured into the FallbackRun.
"""

from __future__ import annotations

from typing import Any


class CascadeError(Exception):
    """
    Base exception for all modelcascade errors.

    Attributes:
        message: Human-readable error description.
        details: Additional context about the error.

    Example:
        >>> try:
        ...     catalog.set_enabled("unknown", False)
        ... except CascadeError as e:
        ...     logger.error(f"Cascade error: {e}")
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(CascadeError):
    """
    Raised when catalog or cascade configuration is malformed.

    A catalog is never partially built: any invalid entry aborts
    construction entirely.

    Attributes:
        config_key: The configuration key or entry id that is invalid.
        expected: Description of the expected value.
        received: The value that was provided.

    Example:
        >>> raise ConfigurationError(
        ...     config_key="ollama/llama3.2",
        ...     expected="unique id",
        ...     received="duplicate",
        ... )
    """

    def __init__(
        self,
        config_key: str,
        expected: str | None = None,
        received: Any = None,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.config_key = config_key
        self.expected = expected
        self.received = received

        if message is None:
            message = f"Invalid configuration for '{config_key}'"
            if expected:
                message += f": expected {expected}"
                if received is not None:
                    message += f", got {received!r}"

        merged = {
            "config_key": config_key,
            "expected": expected,
        }
        if details:
            merged.update(details)
        super().__init__(message, merged)


class NotFoundError(CascadeError):
    """
    Raised when an operation references an unknown id.

    Attributes:
        kind: What was being looked up (e.g., "attempt", "tool").
        name: The id that was not found.
        available: Ids that do exist, for diagnostics.
    """

    def __init__(
        self,
        kind: str,
        name: str,
        available: list[str] | None = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.available = available or []

        message = f"No {kind} named '{name}'"
        details: dict[str, Any] = {"kind": kind, "name": name}
        if self.available:
            details["available"] = self.available
        super().__init__(message, details)


class TransportError(CascadeError):
    """
    Raised by transports when a provider call fails.

    The executor catches it (like any other exception) and records the
    attempt as an error, so it never reaches the caller of run().

    Attributes:
        provider: Provider or attempt id that failed.
        status_code: HTTP status code, if the failure was an HTTP response.

    Example:
        >>> raise TransportError("openrouter", "rate limited", status_code=429)
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.provider = provider
        self.status_code = status_code

        details: dict[str, Any] = {"provider": provider}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"HTTP {self.status_code}: {self.message}"
        return self.message


class TransportTimeout(TransportError):
    """
    Raised by transports whose own client-side timeout fired.

    The executor classifies it as a timeout rather than an error.
    """

    def __init__(self, provider: str, timeout_ms: float) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(provider, f"timed out after {timeout_ms:.0f}ms")
