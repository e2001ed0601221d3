"""Per-user fact tools: remember, recall and forget.

The model calls these when a user shares something worth keeping or asks
what the persona knows about them. ``userId`` is optional; it defaults to
the author of the triggering message.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import Field

from src.memory.models import normalize_fact
from src.tools.base import BaseTool, ToolContext, ToolParams, failure, success

if TYPE_CHECKING:
    from src.memory.store import MemoryStore

logger = logging.getLogger(__name__)

MIN_FACT_LENGTH = 4


def clean_fact(fact: str) -> str:
    """Single-line fact text without a leading "- " bullet. Case is kept."""
    text = " ".join(fact.split())
    if text.startswith("- "):
        text = text[2:].lstrip()
    return text


def _resolve_user(user_id: str | None, context: ToolContext | None) -> str | None:
    if user_id:
        return user_id
    return context.user_id if context else None


# -- rememberFact ------------------------------------------------------------


class RememberFactParams(ToolParams):
    user_id: str | None = Field(
        default=None, alias="userId", description="The Slack ID of the user the fact is about."
    )
    fact: str = Field(description="The single, concise fact to remember.")


class RememberFactTool(BaseTool):
    name = "rememberFact"
    description = (
        "Saves a significant, long-term fact about a user, like their birthday, core "
        "preferences (favorite game/food), or important personal details. You are the "
        "quality filter. Do NOT save trivial, temporary, or conversational filler."
    )
    category = "memory"
    params_model = RememberFactParams

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def execute(
        self, fact: str, user_id: str | None = None, context: ToolContext | None = None
    ) -> str:
        text = clean_fact(fact)
        if len(normalize_fact(text)) < MIN_FACT_LENGTH:
            return failure(
                "The fact provided was rejected for being too short, just a single word, "
                "or lacking meaningful context."
            )
        target = _resolve_user(user_id, context)
        if not target:
            return failure("No user was given to remember this about.")

        record = await self._store.load_user_record(target)
        if record.has_fact(text):
            return success("This fact was already in memory. No action was needed.")

        record.facts.append(f"- {text}")
        await self._store.upsert_user_record(record)
        logger.info("Remembered fact for %s", target)
        return success("The fact was saved to long-term memory.")


# -- recallFacts -------------------------------------------------------------


class RecallFactsParams(ToolParams):
    user_id: str | None = Field(
        default=None,
        alias="userId",
        description="The Slack ID of the user to retrieve facts for.",
    )


class RecallFactsTool(BaseTool):
    name = "recallFacts"
    description = (
        "Retrieves saved facts about a user from long-term memory. Use this to answer "
        "any direct question about a user's personal information, such as their "
        "birthday, preferences, or details they have asked you to remember."
    )
    category = "memory"
    params_model = RecallFactsParams

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def execute(self, user_id: str | None = None, context: ToolContext | None = None) -> str:
        target = _resolve_user(user_id, context)
        record = await self._store.get_user_record(target) if target else None
        if record is None:
            return "I don't seem to have any dirt on you. You're a blank slate."
        if not record.facts:
            return "I've got nothing on you. My file's empty."
        facts = "\n".join(record.facts)
        return f"Here's the intel I have on '{record.nickname}':\n{facts}"


# -- forgetFact --------------------------------------------------------------


class ForgetFactParams(ToolParams):
    user_id: str | None = Field(
        default=None, alias="userId", description="The Slack ID of the user."
    )
    topic: str = Field(
        description="A keyword or topic to search for and remove from the user's memory file."
    )


class ForgetFactTool(BaseTool):
    name = "forgetFact"
    description = (
        "Deletes facts about a specific topic from a user's long-term memory. "
        "Use this when a user asks you to 'forget' something."
    )
    category = "memory"
    params_model = ForgetFactParams

    def __init__(self, store: MemoryStore) -> None:
        self._store = store

    async def execute(
        self, topic: str, user_id: str | None = None, context: ToolContext | None = None
    ) -> str:
        needle = topic.strip().lower()
        if not needle:
            return failure("No topic was given to forget.")

        target = _resolve_user(user_id, context)
        record = await self._store.get_user_record(target) if target else None
        if record is None:
            return success("No file found for user, so nothing to forget.")
        if not record.facts:
            return success("File is already empty, nothing to forget.")

        kept = [f for f in record.facts if needle not in normalize_fact(f)]
        if len(kept) == len(record.facts):
            return success(f"No mention of '{topic}' was found, so nothing was forgotten.")

        record.facts = kept
        await self._store.upsert_user_record(record)
        logger.info("Forgot facts about %r for %s", topic, target)
        return success(f"Facts about '{topic}' were forgotten.")
