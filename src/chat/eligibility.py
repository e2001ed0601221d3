"""Reply etiquette: decide whether the persona should answer a message.

The engine never writes anything. Given the trigger message and a way to
read its thread, it returns the messages to use as context (oldest first,
trigger last) or an empty list when the persona should stay quiet.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from src.chat.models import Message

logger = logging.getLogger(__name__)

ThreadFetcher = Callable[[str, str], Awaitable[list[Message]]]


class EligibilityEngine:
    """Applies the thread etiquette rules for one persona.

    Args:
        bot_user_id: Slack user ID of this persona.
        partner_user_id: Slack user ID of the partner persona.
        fetch_thread: Async ``(channel_id, thread_ts) -> list[Message]``.
    """

    def __init__(
        self,
        bot_user_id: str,
        partner_user_id: str,
        fetch_thread: ThreadFetcher,
    ) -> None:
        self._bot_user_id = bot_user_id
        self._partner_user_id = partner_user_id
        self._fetch_thread = fetch_thread

    async def select_context(self, trigger: Message) -> list[Message]:
        """Return the context to reply with, or ``[]`` to stay silent."""
        if trigger.is_log:
            return []

        mentions_me = trigger.mentions(self._bot_user_id)

        # Both personas summoned: the partner answers first.
        if mentions_me and trigger.mentions(self._partner_user_id):
            logger.debug("Yielding to partner on %s", trigger.id)
            return []

        if trigger.is_direct or mentions_me:
            if trigger.in_thread:
                return await self._fetch(trigger)
            return [trigger]

        if not trigger.in_thread:
            return []

        thread = await self._fetch(trigger)
        if not thread:
            return []
        if thread[-1].id != trigger.id:
            logger.debug("Stale trigger %s is not the latest message in its thread", trigger.id)
            return []

        if trigger.author_id == self._partner_user_id:
            return self._reply_to_partner(thread)
        return self._reply_to_human(trigger, thread)

    def _reply_to_partner(self, thread: list[Message]) -> list[Message]:
        if len(thread) < 2:
            return thread

        previous = thread[-2]
        from_human = not previous.author_is_bot
        mentioned_me = previous.mentions(self._bot_user_id)
        mentioned_partner = previous.mentions(self._partner_user_id)

        if from_human and mentioned_me and mentioned_partner:
            return thread
        if from_human and not mentioned_me:
            return []
        return thread

    def _reply_to_human(self, trigger: Message, thread: list[Message]) -> list[Message]:
        if not thread[0].mentions(self._bot_user_id):
            return []
        if trigger.mentions_anyone and not trigger.mentions(self._bot_user_id):
            return []
        return thread

    async def _fetch(self, trigger: Message) -> list[Message]:
        return await self._fetch_thread(trigger.channel_id, trigger.thread_id or trigger.id)
