"""Slack message event handling: guards, routing and posting the reply."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from src.chat.cache import TTLCache
from src.chat.models import Message

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.chat.ghost import GhostMode
    from src.chat.orchestrator import ResponseOrchestrator
    from src.notifications.channels import ChatChannel

logger = logging.getLogger(__name__)

# Edits, deletions and membership notices never get a reply.
IGNORED_SUBTYPES = frozenset({
    "message_changed",
    "message_deleted",
    "message_replied",
    "channel_join",
    "channel_leave",
})


class EventHandler:
    """Processes one Slack ``message`` event at a time.

    Order of checks: lock, stale guard, self filter, idempotency guard,
    then routing to the orchestrator (DMs, mentions, threads) or ghost
    mode (everything else in the ghost channel).

    Args:
        bot_user_id: This persona's Slack user ID (``U...``).
        bot_id: This persona's bot ID (``B...``).
        chat: Where replies are posted.
        stale_after: Events older than this many seconds are dropped.
        dedupe_ttl: How long a processed event key is remembered.
        lock_timeout: Max seconds to wait for the previous event to finish.
        clock: Wall-clock source compared against Slack ``ts`` values.
    """

    def __init__(
        self,
        *,
        bot_user_id: str,
        bot_id: str,
        orchestrator: ResponseOrchestrator,
        chat: ChatChannel,
        ghost: GhostMode | None = None,
        stale_after: float = 60,
        dedupe_ttl: float = 600,
        lock_timeout: float = 30,
        clock: Callable[[], float] = time.time,
        seen: TTLCache | None = None,
    ) -> None:
        self._bot_user_id = bot_user_id
        self._bot_id = bot_id
        self._orchestrator = orchestrator
        self._chat = chat
        self._ghost = ghost
        self._stale_after = stale_after
        self._dedupe_ttl = dedupe_ttl
        self._lock_timeout = lock_timeout
        self._clock = clock
        self._seen = seen or TTLCache()
        self._lock = asyncio.Lock()

    async def handle(self, event: dict[str, Any]) -> None:
        """Process *event* unless another event holds the lock for too long."""
        try:
            await asyncio.wait_for(self._lock.acquire(), timeout=self._lock_timeout)
        except TimeoutError:
            logger.warning("Dropping event ts=%s: lock busy", event.get("ts"))
            return
        try:
            await self._process(event)
        finally:
            self._lock.release()

    def is_stale(self, event: dict[str, Any]) -> bool:
        try:
            ts = float(event.get("ts", ""))
        except ValueError:
            return True
        return self._clock() - ts > self._stale_after

    def is_own(self, event: dict[str, Any]) -> bool:
        bot_id = event.get("bot_id")
        if bot_id and bot_id == self._bot_id:
            return True
        return bool(self._bot_user_id) and event.get("user") == self._bot_user_id

    async def _process(self, event: dict[str, Any]) -> None:
        if event.get("type") != "message":
            return
        subtype = event.get("subtype")
        if subtype in IGNORED_SUBTYPES:
            logger.debug("Ignoring message subtype=%s", subtype)
            return
        if self.is_stale(event):
            logger.info("Ignoring stale event ts=%s", event.get("ts"))
            return
        if self.is_own(event):
            return

        message = Message.from_slack(event)
        if not self._seen.add_if_absent(message.dedupe_key, self._dedupe_ttl):
            logger.info("Ignoring duplicate event %s", message.dedupe_key)
            return

        logger.info(
            "Slack message: channel=%s user=%s thread=%s text=%s",
            message.channel_id,
            message.author_id,
            message.thread_id,
            message.text[:120],
        )

        if message.is_direct or message.mentions(self._bot_user_id) or message.in_thread:
            reply = await self._orchestrator.answer(message)
            if reply:
                await self._chat.post_message(
                    message.channel_id, reply, thread_ts=message.thread_id or message.id
                )
            return

        if self._ghost is not None and self._ghost.applies_to(message):
            reply = await self._ghost.interject(message)
            if reply:
                await self._chat.post_message(message.channel_id, reply)
