"""Base types for the tool-calling framework."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


def success(message: str) -> str:
    return f"SUCCESS: {message}"


def failure(reason: str) -> str:
    return f"FAILURE: {reason}"


@dataclass(frozen=True)
class ToolContext:
    """Per-request facts a tool may need but the model does not supply.

    Attributes:
        user_id: Slack user who sent the triggering message.
        attachment_url: Private URL of the trigger's first attachment, if any.
    """

    user_id: str
    attachment_url: str | None = None


class ToolParams(BaseModel):
    """Base class for tool parameter models.

    Subclass with Field() definitions. Fields may declare camelCase aliases
    (the names the model sees); handlers receive snake_case keyword
    arguments. The JSON schema comes from model_json_schema().
    """

    model_config = ConfigDict(populate_by_name=True)


class BaseTool(ABC):
    """Abstract base for tool implementations.

    Every tool returns one human-readable string. Tools catch their own
    failures and report them as ``FAILURE: <reason>`` instead of raising.

    Example::

        class PingTool(BaseTool):
            name = "ping"
            description = "Replies with pong"
            category = "utility"

            async def execute(self, **kwargs) -> str:
                return "pong"
    """

    name: str = ""
    description: str = ""
    category: str = ""
    params_model: type[ToolParams] | None = None

    @abstractmethod
    async def execute(self, **kwargs: Any) -> str:
        """Execute the tool with validated parameters."""
        ...
