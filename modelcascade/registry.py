"""
Capability registry.

A keyed map of capabilities (tools, agents, MCP servers) with enable and
disable flags. Registries are ordinary objects created and owned by
whatever composes the application; there is no module-level instance.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from modelcascade.exceptions import ConfigurationError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class CapabilityResult:
    """
    Result of executing a capability.

    Attributes:
        name: Capability that was executed.
        success: Whether execution succeeded.
        data: Returned value when successful.
        error: Error message when failed.
        execution_time: Seconds spent executing.
    """

    name: str
    success: bool
    data: Any = None
    error: str | None = None
    execution_time: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "success": self.success,
            "data": self.data if self.success else None,
            "error": self.error,
            "execution_time": self.execution_time,
        }


@runtime_checkable
class Capability(Protocol):
    """Anything a registry can hold: a name and an async execute()."""

    name: str

    async def execute(self, params: Mapping[str, Any]) -> CapabilityResult:
        ...


@dataclass
class FunctionCapability:
    """
    Capability backed by a plain function.

    Parameters are declared as {"name": {"type": ..., "required": bool,
    "default": ...}}. Missing required parameters fail the call before the
    function runs; declared defaults are filled in.

    Example:
        >>> def add(a: float, b: float) -> float:
        ...     return a + b
        >>>
        >>> add_tool = FunctionCapability(
        ...     name="add",
        ...     func=add,
        ...     description="Add two numbers",
        ...     parameters={"a": {"required": True}, "b": {"required": True}},
        ... )
    """

    name: str
    func: Callable[..., Any]
    description: str = ""
    parameters: dict[str, dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Capability name cannot be empty")

    def missing_parameters(self, params: Mapping[str, Any]) -> list[str]:
        return [
            key
            for key, spec in self.parameters.items()
            if spec.get("required") and key not in params
        ]

    async def execute(self, params: Mapping[str, Any]) -> CapabilityResult:
        missing = self.missing_parameters(params)
        if missing:
            return CapabilityResult(
                name=self.name,
                success=False,
                error=f"Missing required parameter(s): {', '.join(missing)}",
            )

        arguments = {
            key: spec["default"]
            for key, spec in self.parameters.items()
            if "default" in spec
        }
        arguments.update(params)

        start = time.monotonic()
        try:
            if inspect.iscoroutinefunction(self.func):
                value = await self.func(**arguments)
            else:
                loop = asyncio.get_running_loop()
                value = await loop.run_in_executor(None, functools.partial(self.func, **arguments))
                if inspect.isawaitable(value):
                    value = await value
        except Exception as e:
            logger.warning(f"Capability '{self.name}' failed: {e}")
            return CapabilityResult(
                name=self.name,
                success=False,
                error=str(e) or type(e).__name__,
                execution_time=time.monotonic() - start,
            )
        return CapabilityResult(
            name=self.name,
            success=True,
            data=value,
            execution_time=time.monotonic() - start,
        )


@dataclass
class _Entry:
    capability: Capability
    enabled: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


class CapabilityRegistry:
    """
    Thread-safe registry of named capabilities.

    Example:
        >>> tools = CapabilityRegistry(kind="tool")
        >>> tools.register(add_tool)
        >>> tools.disable("add")
        >>> [c.name for c in tools.list(only_enabled=True)]
        []
        >>> result = await tools.execute("add", {"a": 1, "b": 2})
        >>> result.success
        False
    """

    def __init__(self, kind: str = "capability") -> None:
        """
        Args:
            kind: What the registry holds ("tool", "agent", "mcp server"),
                used in errors and logs.
        """
        self.kind = kind
        self._entries: dict[str, _Entry] = {}
        self._lock = threading.RLock()

    def register(
        self,
        capability: Capability,
        enabled: bool = True,
        **metadata: Any,
    ) -> CapabilityRegistry:
        """
        Register a capability.

        Returns:
            Self for chaining.

        Raises:
            ConfigurationError: If the name is already registered.
        """
        with self._lock:
            if capability.name in self._entries:
                raise ConfigurationError(
                    capability.name,
                    message=f"{self.kind.capitalize()} '{capability.name}' is already registered",
                )
            self._entries[capability.name] = _Entry(capability, enabled, dict(metadata))
            logger.debug(f"Registered {self.kind}: {capability.name}")
        return self

    def unregister(self, name: str) -> Capability:
        """
        Remove a capability.

        Returns:
            The removed capability.

        Raises:
            NotFoundError: If the name is unknown.
        """
        with self._lock:
            entry = self._entries.pop(name, None)
            if entry is None:
                raise NotFoundError(self.kind, name, available=list(self._entries))
            logger.debug(f"Unregistered {self.kind}: {name}")
            return entry.capability

    def get(self, name: str) -> Capability:
        """
        Raises:
            NotFoundError: If the name is unknown.
        """
        return self._entry(name).capability

    def is_enabled(self, name: str) -> bool:
        return self._entry(name).enabled

    def metadata(self, name: str) -> dict[str, Any]:
        return dict(self._entry(name).metadata)

    def enable(self, name: str) -> None:
        self._set_enabled(name, True)

    def disable(self, name: str) -> None:
        self._set_enabled(name, False)

    def _set_enabled(self, name: str, enabled: bool) -> None:
        with self._lock:
            self._entry(name).enabled = enabled
        logger.info(f"{self.kind.capitalize()} '{name}' {'enabled' if enabled else 'disabled'}")

    def _entry(self, name: str) -> _Entry:
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                raise NotFoundError(self.kind, name, available=list(self._entries))
            return entry

    def list(self, only_enabled: bool = False) -> list[Capability]:
        """Capabilities in registration order."""
        with self._lock:
            return [
                entry.capability
                for entry in self._entries.values()
                if entry.enabled or not only_enabled
            ]

    def names(self, only_enabled: bool = False) -> list[str]:
        return [c.name for c in self.list(only_enabled=only_enabled)]

    async def execute(
        self,
        name: str,
        params: Mapping[str, Any] | None = None,
    ) -> CapabilityResult:
        """
        Execute a capability by name.

        Failures inside the capability are returned as an unsuccessful
        CapabilityResult, as is an attempt to run a disabled capability.

        Raises:
            NotFoundError: If the name is unknown.
        """
        entry = self._entry(name)
        if not entry.enabled:
            return CapabilityResult(
                name=name,
                success=False,
                error=f"{self.kind.capitalize()} '{name}' is disabled",
            )

        try:
            return await entry.capability.execute(dict(params or {}))
        except Exception as e:
            logger.warning(f"{self.kind.capitalize()} '{name}' raised: {e}")
            return CapabilityResult(name=name, success=False, error=str(e) or type(e).__name__)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, name: object) -> bool:
        return name in self._entries
