"""Tests for the Claude API client wrapper."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import pytest

from src.llm.client import MAX_ATTEMPTS, ModelClient, ModelError, to_api_messages
from src.llm.models import (
    ConversationTurn,
    ImagePart,
    ModelRequest,
    Role,
    ToolCall,
    ToolResult,
)


def _text_block(text: str):
    return SimpleNamespace(type="text", text=text)


def _tool_block(name: str, args: dict, block_id: str):
    return SimpleNamespace(type="tool_use", name=name, input=args, id=block_id)


def _api_response(*blocks, stop_reason: str = "end_turn"):
    return SimpleNamespace(content=list(blocks), stop_reason=stop_reason)


def _client(create: AsyncMock, ops_log=None) -> ModelClient:
    sdk = MagicMock()
    sdk.messages.create = create
    return ModelClient("key", "claude-test", retry_delay=0, ops_log=ops_log, client=sdk)


def _status_error() -> anthropic.APIStatusError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    response = httpx.Response(529, request=request)
    return anthropic.APIStatusError("overloaded", response=response, body=None)


# -- to_api_messages ------------------------------------------------------------


def test_roles_are_mapped() -> None:
    turns = [
        ConversationTurn.user("hi"),
        ConversationTurn(role=Role.MODEL, text_parts=["hello"]),
        ConversationTurn(role=Role.TOOL, tool_results=[ToolResult("t", "ok", "c1")]),
    ]
    messages = to_api_messages(turns)
    assert [m["role"] for m in messages] == ["user", "assistant", "user"]
    assert messages[2]["content"] == [{"type": "tool_result", "tool_use_id": "c1", "content": "ok"}]


def test_leading_model_turn_gets_user_opener() -> None:
    messages = to_api_messages([ConversationTurn(role=Role.MODEL, text_parts=["earlier reply"])])
    assert messages[0]["role"] == "user"
    assert messages[1]["role"] == "assistant"


def test_empty_turns_are_dropped() -> None:
    messages = to_api_messages([ConversationTurn.user("   "), ConversationTurn.user("real")])
    assert len(messages) == 1
    assert messages[0]["content"] == [{"type": "text", "text": "real"}]


def test_image_block_precedes_text() -> None:
    turn = ConversationTurn.user("who?")
    turn.image_parts.append(ImagePart("image/png", "AAAA"))
    content = to_api_messages([turn])[0]["content"]
    assert content[0]["type"] == "image"
    assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "AAAA"}
    assert content[1] == {"type": "text", "text": "who?"}


def test_tool_calls_become_tool_use_blocks() -> None:
    turn = ConversationTurn(role=Role.MODEL, tool_calls=[ToolCall("searchGoogle", {"query": "x"}, "t1")])
    content = to_api_messages([turn])[1]["content"]
    assert content == [{"type": "tool_use", "id": "t1", "name": "searchGoogle", "input": {"query": "x"}}]


# -- generate -----------------------------------------------------------------------


async def test_generate_parses_text_and_tool_calls() -> None:
    create = AsyncMock(
        return_value=_api_response(
            _text_block("Let me check."),
            _tool_block("getCurrentDate", {}, "tu_1"),
            stop_reason="tool_use",
        )
    )
    client = _client(create)

    response = await client.generate(
        ModelRequest(turns=[ConversationTurn.user("date?")], system="sys", tools=[{"name": "x"}])
    )

    assert response.first_text == "Let me check."
    assert response.tool_calls == [ToolCall("getCurrentDate", {}, "tu_1")]
    kwargs = create.await_args.kwargs
    assert kwargs["model"] == "claude-test"
    assert kwargs["system"] == "sys"
    assert kwargs["tools"] == [{"name": "x"}]


async def test_generate_omits_empty_system_and_tools() -> None:
    create = AsyncMock(return_value=_api_response(_text_block("ok")))
    await _client(create).generate(ModelRequest(turns=[ConversationTurn.user("hi")]))
    kwargs = create.await_args.kwargs
    assert "system" not in kwargs
    assert "tools" not in kwargs


async def test_refusal_is_reported_as_blocked() -> None:
    ops_log = MagicMock()
    ops_log.log = AsyncMock(return_value=True)
    create = AsyncMock(return_value=_api_response(stop_reason="refusal"))

    assert await _client(create, ops_log).generate(ModelRequest(turns=[ConversationTurn.user("x")])) is None
    assert "no candidates" in ops_log.log.await_args.args[0]


async def test_empty_content_is_reported() -> None:
    ops_log = MagicMock()
    ops_log.log = AsyncMock(return_value=True)
    create = AsyncMock(return_value=_api_response(stop_reason="max_tokens"))

    assert await _client(create, ops_log).generate(ModelRequest(turns=[ConversationTurn.user("x")])) is None
    assert "no content" in ops_log.log.await_args.args[0]
    assert "max_tokens" in ops_log.log.await_args.args[0]


# -- Retry ------------------------------------------------------------------------------


async def test_retries_once_then_succeeds() -> None:
    create = AsyncMock(side_effect=[_status_error(), _api_response(_text_block("ok"))])
    with patch("src.llm.client.asyncio.sleep", new=AsyncMock()) as sleep:
        response = await _client(create).generate(ModelRequest(turns=[ConversationTurn.user("x")]))

    assert response.first_text == "ok"
    assert create.await_count == 2
    sleep.assert_awaited_once()


async def test_raises_after_max_attempts() -> None:
    create = AsyncMock(side_effect=_status_error())
    with pytest.raises(ModelError):
        await _client(create).generate(ModelRequest(turns=[ConversationTurn.user("x")]))
    assert create.await_count == MAX_ATTEMPTS


async def test_other_errors_are_not_retried() -> None:
    create = AsyncMock(side_effect=ValueError("bad"))
    with pytest.raises(ValueError):
        await _client(create).generate(ModelRequest(turns=[ConversationTurn.user("x")]))
    assert create.await_count == 1


# -- ask -----------------------------------------------------------------------------------


async def test_ask_returns_stripped_text() -> None:
    create = AsyncMock(return_value=_api_response(_text_block("  YES \n")))
    assert await _client(create).ask("Is it?") == "YES"
    assert create.await_args.kwargs["temperature"] == 0.0


async def test_ask_returns_empty_when_blocked() -> None:
    create = AsyncMock(return_value=_api_response(stop_reason="refusal"))
    assert await _client(create).ask("Is it?") == ""
