"""Request/response types for model invocation.

These are provider-neutral. ``src.llm.client`` translates them to and from
the Anthropic Messages API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    USER = "user"
    MODEL = "model"
    TOOL = "tool"


@dataclass(frozen=True)
class ImagePart:
    """Inline image data, base64-encoded."""

    mime_type: str
    data: str


@dataclass(frozen=True)
class ToolCall:
    """A tool invocation requested by the model."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    id: str = ""


@dataclass(frozen=True)
class ToolResult:
    """The string payload returned to the model for one ToolCall."""

    name: str
    result_text: str
    call_id: str = ""


@dataclass
class ConversationTurn:
    """One turn of the conversation sent to the model."""

    role: Role
    text_parts: list[str] = field(default_factory=list)
    image_parts: list[ImagePart] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_results: list[ToolResult] = field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> ConversationTurn:
        return cls(role=Role.USER, text_parts=[text])

    @property
    def text(self) -> str:
        return "".join(self.text_parts)


@dataclass
class ModelRequest:
    """Everything needed for one model call."""

    turns: list[ConversationTurn]
    system: str | None = None
    tools: list[dict[str, Any]] | None = None
    relaxed_safety: bool = False
    max_tokens: int = 1024
    temperature: float = 0.7


@dataclass
class ModelResponse:
    """A usable model response: text parts and/or tool calls."""

    text_parts: list[str] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    stop_reason: str = ""

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def first_text(self) -> str:
        """The first text part, or ``""`` when the response carries none."""
        return self.text_parts[0] if self.text_parts else ""

    def as_turn(self) -> ConversationTurn:
        """Echo this response back into the conversation as a model turn."""
        return ConversationTurn(
            role=Role.MODEL,
            text_parts=list(self.text_parts),
            tool_calls=list(self.tool_calls),
        )
