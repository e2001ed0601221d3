"""Tests for the tool registry."""

import pytest
from pydantic import Field

from src.tools.base import BaseTool, ToolContext, ToolParams
from src.tools.registry import UNKNOWN_TOOL_REPLY, ToolRegistry

# -- Fixtures ----------------------------------------------------------------


@pytest.fixture
def reg() -> ToolRegistry:
    """Fresh registry for each test."""
    return ToolRegistry()


class EchoParams(ToolParams):
    user_id: str | None = Field(default=None, alias="userId", description="Who")
    text: str = Field(description="What to echo")


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo text back"
    category = "test"
    params_model = EchoParams

    async def execute(self, text: str, user_id: str | None = None) -> str:
        return f"{user_id}:{text}"


class PingTool(BaseTool):
    name = "ping"
    description = "Ping"
    category = "test"

    async def execute(self) -> str:
        return "pong"


class ExplodeTool(BaseTool):
    name = "explode"
    description = "Boom"
    category = "test"

    async def execute(self) -> str:
        raise RuntimeError("kaboom")


class WhoTool(BaseTool):
    name = "who"
    description = "Who"
    category = "test"

    async def execute(self, context: ToolContext | None = None) -> str:
        return context.user_id if context else "nobody"


# -- Registration ------------------------------------------------------------


def test_register_class_based_tool(reg: ToolRegistry) -> None:
    reg.register(EchoTool())
    reg.register(PingTool())
    assert reg.tool_names == ["echo", "ping"]


def test_same_name_replaces(reg: ToolRegistry) -> None:
    reg.register(PingTool())
    reg.register(PingTool())
    assert reg.tool_names == ["ping"]


# -- Schemas -----------------------------------------------------------------


def test_schema_uses_aliases(reg: ToolRegistry) -> None:
    reg.register(EchoTool())
    schema = reg.get_schemas()[0]
    assert schema["name"] == "echo"
    assert schema["description"] == "Echo text back"
    props = schema["input_schema"]["properties"]
    assert "userId" in props
    assert "text" in props
    assert schema["input_schema"]["required"] == ["text"]


def test_schema_without_params(reg: ToolRegistry) -> None:
    reg.register(PingTool())
    assert reg.get_schemas()[0]["input_schema"] == {"type": "object", "properties": {}}


# -- Execution ---------------------------------------------------------------


async def test_execute_without_params(reg: ToolRegistry) -> None:
    reg.register(PingTool())
    assert await reg.execute("ping", {}) == "pong"


async def test_execute_accepts_camel_case_arguments(reg: ToolRegistry) -> None:
    reg.register(EchoTool())
    assert await reg.execute("echo", {"userId": "U1", "text": "hi"}) == "U1:hi"


async def test_execute_unknown_tool(reg: ToolRegistry) -> None:
    assert await reg.execute("nope", {}) == UNKNOWN_TOOL_REPLY


async def test_execute_invalid_arguments(reg: ToolRegistry) -> None:
    reg.register(EchoTool())
    result = await reg.execute("echo", {"userId": "U1"})
    assert result.startswith("FAILURE: invalid arguments for echo")


async def test_execute_handler_exception(reg: ToolRegistry) -> None:
    reg.register(ExplodeTool())
    assert await reg.execute("explode", {}) == "FAILURE: explode crashed (RuntimeError)."


async def test_context_injected_when_accepted(reg: ToolRegistry) -> None:
    reg.register(WhoTool())
    assert await reg.execute("who", {}, ToolContext(user_id="U9")) == "U9"


async def test_context_not_passed_to_handlers_without_it(reg: ToolRegistry) -> None:
    reg.register(EchoTool())
    assert await reg.execute("echo", {"text": "x"}, ToolContext(user_id="U9")) == "None:x"
