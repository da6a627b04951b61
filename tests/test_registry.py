"""
Tests for the capability registry.
"""

import threading

import pytest

from modelcascade import (
    Capability,
    CapabilityRegistry,
    CapabilityResult,
    ConfigurationError,
    FunctionCapability,
    NotFoundError,
)


def add(a, b):
    return a + b


async def greet(name, greeting="Hello"):
    return f"{greeting}, {name}"


@pytest.fixture
def tools() -> CapabilityRegistry:
    registry = CapabilityRegistry(kind="tool")
    registry.register(
        FunctionCapability(
            name="add",
            func=add,
            description="Add two numbers",
            parameters={"a": {"required": True}, "b": {"required": True}},
        )
    )
    registry.register(
        FunctionCapability(
            name="greet",
            func=greet,
            parameters={"name": {"required": True}, "greeting": {"default": "Hi"}},
        ),
        category="text",
    )
    return registry


class TestRegistration:
    """Tests for register/unregister/list."""

    def test_list_in_registration_order(self, tools):
        assert tools.names() == ["add", "greet"]
        assert len(tools) == 2
        assert "add" in tools

    def test_duplicate_rejected(self, tools):
        with pytest.raises(ConfigurationError, match="Tool 'add' is already registered"):
            tools.register(FunctionCapability(name="add", func=add))

    def test_unregister(self, tools):
        removed = tools.unregister("add")
        assert removed.name == "add"
        assert tools.names() == ["greet"]

    def test_unregister_unknown(self, tools):
        with pytest.raises(NotFoundError, match="No tool named 'nope'"):
            tools.unregister("nope")

    def test_get_unknown(self, tools):
        with pytest.raises(NotFoundError):
            tools.get("nope")

    def test_enable_disable(self, tools):
        tools.disable("add")
        assert tools.is_enabled("add") is False
        assert tools.names(only_enabled=True) == ["greet"]
        tools.enable("add")
        assert tools.names(only_enabled=True) == ["add", "greet"]

    def test_register_disabled(self):
        registry = CapabilityRegistry()
        registry.register(FunctionCapability(name="x", func=add), enabled=False)
        assert registry.list(only_enabled=True) == []

    def test_metadata(self, tools):
        assert tools.metadata("greet") == {"category": "text"}

    def test_registries_are_independent(self):
        first, second = CapabilityRegistry("agent"), CapabilityRegistry("agent")
        first.register(FunctionCapability(name="x", func=add))
        assert "x" not in second

    def test_function_capability_is_capability(self):
        assert isinstance(FunctionCapability(name="x", func=add), Capability)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            FunctionCapability(name="", func=add)


class TestExecution:
    """Tests for execute()."""

    @pytest.mark.asyncio
    async def test_sync_function(self, tools):
        result = await tools.execute("add", {"a": 2, "b": 3})
        assert result.success
        assert result.data == 5

    @pytest.mark.asyncio
    async def test_sync_function_runs_off_event_loop_thread(self):
        def which_thread():
            return threading.get_ident()

        registry = CapabilityRegistry(kind="tool")
        registry.register(FunctionCapability(name="which_thread", func=which_thread))
        result = await registry.execute("which_thread")

        assert result.success
        assert result.data != threading.get_ident()

    @pytest.mark.asyncio
    async def test_async_function_with_default(self, tools):
        result = await tools.execute("greet", {"name": "Ana"})
        assert result.data == "Hi, Ana"

    @pytest.mark.asyncio
    async def test_missing_required_parameter(self, tools):
        result = await tools.execute("add", {"a": 1})
        assert not result.success
        assert result.error == "Missing required parameter(s): b"

    @pytest.mark.asyncio
    async def test_exception_captured(self, tools):
        result = await tools.execute("add", {"a": 1, "b": "x"})
        assert not result.success
        assert "unsupported operand" in result.error

    @pytest.mark.asyncio
    async def test_disabled_not_executed(self, tools):
        tools.disable("add")
        result = await tools.execute("add", {"a": 1, "b": 2})
        assert not result.success
        assert result.error == "Tool 'add' is disabled"

    @pytest.mark.asyncio
    async def test_unknown_raises(self, tools):
        with pytest.raises(NotFoundError):
            await tools.execute("nope")

    @pytest.mark.asyncio
    async def test_custom_capability(self):
        class Broken:
            name = "broken"

            async def execute(self, params):
                raise RuntimeError("server down")

        registry = CapabilityRegistry(kind="mcp server")
        registry.register(Broken())
        result = await registry.execute("broken")

        assert isinstance(result, CapabilityResult)
        assert result.error == "server down"
        assert result.to_dict()["data"] is None
