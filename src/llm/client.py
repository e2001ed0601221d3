"""Async Claude API client with a single retry and block detection."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

import anthropic

from src.llm.models import ConversationTurn, ModelRequest, ModelResponse, Role, ToolCall
from src.notifications.channels import NullOpsLog

if TYPE_CHECKING:
    from src.notifications.channels import OpsLogSink

logger = logging.getLogger(__name__)

# Total attempts per model call (first try + one retry).
MAX_ATTEMPTS = 2

# The Messages API wants the conversation to open with a user turn.
_THREAD_OPENER = "(The conversation so far follows.)"


class ModelError(Exception):
    """The model API failed on every attempt."""


def _content_blocks(turn: ConversationTurn) -> list[dict[str, Any]]:
    """Convert one ConversationTurn into Messages API content blocks."""
    blocks: list[dict[str, Any]] = []
    for result in turn.tool_results:
        blocks.append({
            "type": "tool_result",
            "tool_use_id": result.call_id,
            "content": result.result_text,
        })
    for image in turn.image_parts:
        blocks.append({
            "type": "image",
            "source": {"type": "base64", "media_type": image.mime_type, "data": image.data},
        })
    for text in turn.text_parts:
        if text.strip():
            blocks.append({"type": "text", "text": text})
    for call in turn.tool_calls:
        blocks.append({
            "type": "tool_use",
            "id": call.id,
            "name": call.name,
            "input": call.arguments,
        })
    return blocks


def to_api_messages(turns: list[ConversationTurn]) -> list[dict[str, Any]]:
    """Build the ``messages`` list for the Messages API.

    Turns with no usable content are dropped. Tool turns are sent as user
    turns carrying ``tool_result`` blocks.
    """
    messages: list[dict[str, Any]] = []
    for turn in turns:
        content = _content_blocks(turn)
        if not content:
            continue
        role = "assistant" if turn.role is Role.MODEL else "user"
        messages.append({"role": role, "content": content})

    if messages and messages[0]["role"] == "assistant":
        messages.insert(0, {"role": "user", "content": [{"type": "text", "text": _THREAD_OPENER}]})
    return messages


class ModelClient:
    """Thin wrapper over ``anthropic.AsyncAnthropic`` for one model.

    Every call is attempted up to ``MAX_ATTEMPTS`` times with a fixed delay
    on API status or connection errors. Blocked and empty responses are
    logged (to the Python logger and the ops sink) and returned as None.

    The Messages API has no per-request safety thresholds, so
    ``ModelRequest.relaxed_safety`` is only recorded in the debug log.

    Args:
        api_key: Anthropic API key.
        model: Model ID used for every call.
        retry_delay: Seconds to wait between attempts.
        ops_log: Sink for operational diagnostics.
        client: Pre-built SDK client (tests).
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        retry_delay: float = 1.5,
        ops_log: OpsLogSink | None = None,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._model = model
        self._retry_delay = retry_delay
        self._ops_log = ops_log or NullOpsLog()
        self._client = client or anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)

    @property
    def model(self) -> str:
        return self._model

    async def generate(self, request: ModelRequest) -> ModelResponse | None:
        """Run one model call. Returns None for blocked or empty responses.

        Raises:
            ModelError: if every attempt failed at the transport/API level.
        """
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": to_api_messages(request.turns),
        }
        if request.system:
            kwargs["system"] = request.system
        if request.tools:
            kwargs["tools"] = request.tools
        if request.relaxed_safety:
            logger.debug("Relaxed safety requested; no per-request override on this API")

        response = await self._create_with_retry(kwargs)
        return await self._parse(response)

    async def ask(self, prompt: str, *, max_tokens: int = 64) -> str:
        """Single-shot question with no tools or system text.

        Returns the stripped first text part, or ``""`` when the model
        gave nothing usable.
        """
        response = await self.generate(
            ModelRequest(
                turns=[ConversationTurn.user(prompt)],
                max_tokens=max_tokens,
                temperature=0.0,
            )
        )
        if response is None:
            return ""
        return response.first_text.strip()

    async def _create_with_retry(self, kwargs: dict[str, Any]) -> Any:
        last_exc: Exception | None = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                return await self._client.messages.create(**kwargs)
            except (anthropic.APIStatusError, anthropic.APIConnectionError) as exc:
                last_exc = exc
                logger.warning(
                    "Model call attempt %d/%d failed: %s", attempt, MAX_ATTEMPTS, exc
                )
                if attempt < MAX_ATTEMPTS:
                    await asyncio.sleep(self._retry_delay)
        msg = f"Model request failed after {MAX_ATTEMPTS} attempts: {last_exc}"
        raise ModelError(msg) from last_exc

    async def _parse(self, response: Any) -> ModelResponse | None:
        stop_reason = getattr(response, "stop_reason", "") or ""
        if stop_reason == "refusal":
            await self._report(f"API call returned no candidates. Probable reason: {stop_reason}")
            return None

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in response.content or []:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(name=block.name, arguments=dict(block.input or {}), id=block.id)
                )

        if not text_parts and not tool_calls:
            await self._report(
                f"API call returned a candidate with no content. Finish Reason: {stop_reason or 'Unknown'}"
            )
            return None

        return ModelResponse(text_parts=text_parts, tool_calls=tool_calls, stop_reason=stop_reason)

    async def _report(self, message: str) -> None:
        logger.warning(message)
        await self._ops_log.log(message)
