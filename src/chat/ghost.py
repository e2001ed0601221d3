"""Ghost mode: unprompted interjections in one designated channel."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.chat.cache import TTLCache
from src.chat.formatting import clean_response
from src.llm.models import ConversationTurn, ModelRequest
from src.llm.prompt import load_persona_prompt

if TYPE_CHECKING:
    from src.chat.models import Message
    from src.llm.client import ModelClient
    from src.memory.relationship import RelationshipTracker
    from src.memory.store import MemoryStore

logger = logging.getLogger(__name__)


def interjection_prompt(text: str) -> str:
    return (
        f'A user in a group chat said: "{text}". Based on your Yuzuha personality (and the '
        "provided relationship context), jump into the conversation with a relevant, "
        "witty, or insightful comment."
    )


class GhostMode:
    """Decides whether to chime in on a message nobody addressed to the persona.

    Args:
        channel_id: The only channel ghost mode listens to.
        nicknames: Lowercase names that trigger an interjection.
        keywords: Extra lowercase trigger words.
        cooldown_seconds: Quiet period per channel after an interjection.
    """

    def __init__(
        self,
        *,
        channel_id: str,
        nicknames: list[str],
        keywords: list[str],
        model: ModelClient,
        store: MemoryStore,
        tracker: RelationshipTracker | None = None,
        cooldown_seconds: float = 15,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        cooldowns: TTLCache | None = None,
    ) -> None:
        self._channel_id = channel_id
        self._triggers = [t for t in (*nicknames, *keywords) if t]
        self._model = model
        self._store = store
        self._tracker = tracker
        self._cooldown_seconds = cooldown_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._cooldowns = cooldowns or TTLCache()

    def applies_to(self, message: Message) -> bool:
        return bool(self._channel_id) and message.channel_id == self._channel_id

    def is_triggered(self, text: str) -> bool:
        lowered = text.lower()
        return any(trigger in lowered for trigger in self._triggers)

    async def interject(self, message: Message) -> str:
        """Cleaned interjection text, or ``""`` to stay silent."""
        if not self.applies_to(message) or message.in_thread:
            return ""
        if message.channel_id in self._cooldowns:
            logger.debug("Ghost mode cooling down in %s", message.channel_id)
            return ""
        if not self.is_triggered(message.text):
            return ""

        score = None
        if self._tracker is not None:
            score = await self._tracker.current_score(message.author_id)
        system = await load_persona_prompt(self._store, message.author_id, score)

        response = await self._model.generate(
            ModelRequest(
                turns=[ConversationTurn.user(interjection_prompt(message.text))],
                system=system,
                relaxed_safety=True,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        )
        text = response.first_text if response is not None else ""
        if not text:
            return ""

        self._cooldowns.set(message.channel_id, "1", self._cooldown_seconds)
        logger.info("Ghost mode interjecting in %s", message.channel_id)
        return clean_response(text)
