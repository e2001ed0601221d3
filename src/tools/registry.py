"""Tool registry: name-to-handler catalog used by the orchestrator."""

from __future__ import annotations

import inspect
import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from src.tools.base import BaseTool, ToolParams, failure

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.tools.base import ToolContext

logger = logging.getLogger(__name__)

# Returned for any tool name the model invents.
UNKNOWN_TOOL_REPLY = (
    "Whoa, tried to use some kinda gadget that's not in my inventory. "
    "My bad. What were you asking?"
)


@dataclass
class ToolDef:
    """Internal representation of a registered tool."""

    name: str
    description: str
    category: str
    handler: Callable[..., Awaitable[str]]
    params_model: type[ToolParams] | None = None


class ToolRegistry:
    """Registry of the tools the model may call.

    Tools are class-based (they hold clients or stores)::

        registry.register(SearchTool(api_key, engine_id))
    """

    def __init__(self) -> None:
        self._tools: dict[str, ToolDef] = {}

    def register(self, tool_instance: BaseTool) -> None:
        """Register a class-based tool instance."""
        self._tools[tool_instance.name] = ToolDef(
            name=tool_instance.name,
            description=tool_instance.description,
            category=tool_instance.category,
            handler=tool_instance.execute,
            params_model=tool_instance.params_model,
        )

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def get_schemas(self) -> list[dict[str, Any]]:
        """Tool declarations in Messages API format."""
        return [self._tool_schema(t) for t in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: dict[str, Any],
        context: ToolContext | None = None,
    ) -> str:
        """Execute a tool by name and return its result text.

        Never raises: unknown names get ``UNKNOWN_TOOL_REPLY``, and bad
        arguments or handler exceptions become ``FAILURE:`` strings. If the
        handler accepts a ``context`` parameter, it is injected.
        """
        tool_def = self._tools.get(name)
        if tool_def is None:
            logger.warning("Model asked for unknown tool '%s'", name)
            return UNKNOWN_TOOL_REPLY

        logger.info("Tool '%s' [%s] called with %s", name, tool_def.category, arguments)
        t0 = time.monotonic()

        try:
            if tool_def.params_model is not None:
                params = tool_def.params_model.model_validate(arguments)
                kwargs = params.model_dump()
            else:
                kwargs = {}

            if context is not None and _accepts_param(tool_def.handler, "context"):
                kwargs["context"] = context

            result = await tool_def.handler(**kwargs)
        except ValidationError as exc:
            logger.warning("Tool '%s' got invalid arguments: %s", name, exc)
            return failure(f"invalid arguments for {name}: {exc.errors()[0]['msg']}")
        except Exception as exc:
            elapsed = time.monotonic() - t0
            logger.exception("Tool '%s' failed in %.2fs", name, elapsed)
            return failure(f"{name} crashed ({type(exc).__name__}).")

        elapsed = time.monotonic() - t0
        logger.info("Tool '%s' [%s] finished in %.2fs", name, tool_def.category, elapsed)
        return result

    @staticmethod
    def _tool_schema(tool_def: ToolDef) -> dict[str, Any]:
        if tool_def.params_model is not None:
            input_schema = tool_def.params_model.model_json_schema(by_alias=True)
        else:
            input_schema = {"type": "object", "properties": {}}

        return {
            "name": tool_def.name,
            "description": tool_def.description,
            "input_schema": input_schema,
        }


def _accepts_param(fn: Callable[..., Any], param_name: str) -> bool:
    return param_name in inspect.signature(fn).parameters
