"""Relationship score: how the persona feels about each user.

Every human message nudges the score by a model-rated sentiment
adjustment. The score lives on the user's record and is clamped to
[-100, 100].
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import TYPE_CHECKING

from src.chat.cache import TTLCache
from src.llm.client import ModelError
from src.memory.models import clamp_score
from src.notifications.channels import NullOpsLog

if TYPE_CHECKING:
    from src.llm.client import ModelClient
    from src.llm.models import ConversationTurn
    from src.memory.store import MemoryStore
    from src.notifications.channels import OpsLogSink

logger = logging.getLogger(__name__)

REPEAT_TTL_SECONDS = 300
SEVERE_PENALTY = -20
MAX_ADJUSTMENT = 10

_INT_RE = re.compile(r"^[+-]?\d+")


def message_hash(text: str) -> str:
    return hashlib.sha256(text.encode()).hexdigest()


def severity_prompt(text: str) -> str:
    return (
        "You are a content moderation AI. Does the following text contain any severe "
        "harassment, or sexually explicit content? Respond with ONLY the word YES or NO. "
        f'Text: "{text}"'
    )


def sentiment_prompt(history: list[ConversationTurn]) -> str:
    transcript = "\n".join(f"{turn.role}: {turn.text}" for turn in history)
    return (
        "You are a social interaction analysis AI. Below is the recent history of a "
        "conversation. Your task is to analyze the SENTIMENT of the VERY LAST message "
        'from the "user", taking the entire context of the conversation into account.\n'
        "CRITICAL RULE: You MUST assign a score of 0 to any message that is trivial, a "
        "simple acknowledgment, or lacks meaningful sentiment. Only assign a non-zero "
        'score if the message contains clear, explicit emotion. A sarcastic "thanks" '
        'after a failure is negative. A simple "ok" after helpful advice is neutral.\n\n'
        f"Conversation History:\n{transcript}\n\n"
        "Based on the context, rate the sentiment of the LAST user message on a scale "
        "from -10 to +10. Respond with ONLY the number."
    )


def parse_adjustment(text: str) -> int:
    """Leading integer of *text* if it lies in [-10, 10], else 0."""
    match = _INT_RE.match(text.strip())
    if not match:
        return 0
    value = int(match.group())
    return value if -MAX_ADJUSTMENT <= value <= MAX_ADJUSTMENT else 0


class RelationshipTracker:
    """Scores user messages and keeps the per-user relationship score.

    Args:
        store: Where user records (and their scores) live.
        model: Used for the severity and sentiment classifiers.
        repeat_cache: Last message hash per user. Shared instance in tests.
    """

    def __init__(
        self,
        store: MemoryStore,
        model: ModelClient,
        *,
        ops_log: OpsLogSink | None = None,
        repeat_cache: TTLCache | None = None,
    ) -> None:
        self._store = store
        self._model = model
        self._ops_log = ops_log or NullOpsLog()
        self._repeats = repeat_cache or TTLCache()

    async def current_score(self, user_id: str) -> int:
        """Read-only score lookup. Returns 0 when the store fails."""
        try:
            record = await self._store.load_user_record(user_id)
        except Exception:
            logger.exception("Could not read relationship score for %s", user_id)
            return 0
        return record.relationship_score

    async def update_and_get_score(self, user_id: str, history: list[ConversationTurn]) -> int:
        """Apply the latest message's adjustment and return the score *before* it."""
        try:
            record = await self._store.load_user_record(user_id)
            old_score = record.relationship_score
            adjustment = await self.adjustment(user_id, history)
            record.relationship_score = clamp_score(old_score + adjustment)
            await self._store.upsert_user_record(record)
        except Exception as exc:
            logger.exception("Relationship score update failed for %s", user_id)
            await self._ops_log.log(f"ERROR in relationship score update: {exc!r}")
            return 0
        return old_score

    async def adjustment(self, user_id: str, history: list[ConversationTurn]) -> int:
        """Sentiment adjustment for the last turn of *history*."""
        latest = history[-1].text if history else ""
        if not latest.strip():
            return 0

        digest = message_hash(latest)
        if self._repeats.get(user_id) == digest:
            await self._ops_log.log(f"Vibe Check: Spam detected from user {user_id}. Score: 0")
            return 0
        self._repeats.set(user_id, digest, REPEAT_TTL_SECONDS)

        if await self._is_severe(latest):
            await self._ops_log.log(
                f"Vibe Check: Severe infraction detected! Score: {SEVERE_PENALTY}"
            )
            return SEVERE_PENALTY

        try:
            verdict = await self._model.ask(sentiment_prompt(history), max_tokens=8)
        except ModelError:
            logger.warning("Sentiment classifier unavailable; scoring 0")
            return 0
        score = parse_adjustment(verdict)
        await self._ops_log.log(f"Vibe Check for last message: Score = {score}")
        return score

    async def _is_severe(self, text: str) -> bool:
        try:
            verdict = await self._model.ask(severity_prompt(text), max_tokens=8)
        except ModelError:
            await self._ops_log.log("WARN: Content moderation check failed. Assuming NO.")
            return False
        if not verdict:
            await self._ops_log.log(
                "WARN: Content moderation check returned an invalid response. Assuming NO."
            )
            return False
        return "YES" in verdict.upper()
