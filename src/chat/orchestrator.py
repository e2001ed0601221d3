"""Turn an eligible Slack message into the persona's reply.

Flow for one trigger message:

1. Etiquette check (``EligibilityEngine``); silence means no reply.
2. Partner gate: the partner persona only gets an answer some of the time.
3. Image handling: download, identify, and turn the outcome into a system
   directive.
4. Persona system text, optionally with the relationship score.
5. Model call with tools; if the model asks for tools, run them in order
   and call the model once more with the results.
6. Clean the text for Slack.
"""

from __future__ import annotations

import logging
import random
import traceback
from typing import TYPE_CHECKING

from src.chat.formatting import clean_response
from src.llm.models import ConversationTurn, ModelRequest, Role, ToolResult
from src.llm.prompt import load_persona_prompt
from src.notifications.channels import NullOpsLog
from src.tools.base import ToolContext

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.chat.context import ContextAssembler
    from src.chat.eligibility import EligibilityEngine
    from src.chat.models import Attachment, Message
    from src.llm.client import ModelClient
    from src.llm.models import ImagePart, ModelResponse
    from src.memory.relationship import RelationshipTracker
    from src.memory.store import MemoryStore
    from src.notifications.channels import OpsLogSink
    from src.tools.registry import ToolRegistry
    from src.vision.identify import ImageIdentifier

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I seem to have lost my train of thought... Heh. Ask me that again, or try something else."
)
IMAGE_DOWNLOAD_FAILED_REPLY = (
    "Ugh, I tried to look at that image, but it wouldn't load for me. Mind sending it again?"
)
ERROR_REPLY = "Damn, the whole system just short-circuited on me. My handler needs to see this:"
MAX_TRACE_LENGTH = 300


def image_question_prompt(text: str) -> str:
    return (
        "A user just posted an image in a thread. A few moments later, another user "
        f'replied with the following text: "{text}".\n'
        "Is this new text a direct question or command asking to IDENTIFY, DESCRIBE, or "
        "ANALYZE the image itself?\n"
        'Examples of this are "who is this?", "what\'s that?", "can you describe the picture?".\n'
        "A question about a character's nickname, lore, or other trivia is NOT a direct "
        "request to analyze the image.\n"
        "Answer ONLY with YES or NO."
    )


def trace_marker(exc: BaseException) -> str:
    """One line naming the exception, short enough to post in chat."""
    line = traceback.format_exception_only(type(exc), exc)[-1].strip()
    if len(line) > MAX_TRACE_LENGTH:
        line = line[:MAX_TRACE_LENGTH] + "..."
    return f"`{line}`"


class ResponseOrchestrator:
    """Produces the reply text (or ``""``) for one trigger message.

    Args:
        bot_user_id: This persona's Slack user ID.
        partner_user_id: The partner persona's Slack user ID.
        eligibility: Reply etiquette rules.
        assembler: Message-to-turn conversion.
        model: Model client used for the reply and the image classifier.
        registry: Tools offered to the model.
        store: Persona template and dossiers.
        identifier: Image identification pipeline.
        download_image: Async ``url -> ImagePart | None`` (Slack bearer download).
        tracker: Relationship tracker, or None when scoring is disabled.
        partner_reply_probability: Chance of answering the partner persona.
        rng: ``() -> float`` in [0, 1); override in tests.
    """

    def __init__(
        self,
        *,
        bot_user_id: str,
        partner_user_id: str,
        eligibility: EligibilityEngine,
        assembler: ContextAssembler,
        model: ModelClient,
        registry: ToolRegistry,
        store: MemoryStore,
        identifier: ImageIdentifier,
        download_image: Callable[[str], Awaitable[ImagePart | None]],
        tracker: RelationshipTracker | None = None,
        ops_log: OpsLogSink | None = None,
        partner_reply_probability: float = 0.8,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._bot_user_id = bot_user_id
        self._partner_user_id = partner_user_id
        self._eligibility = eligibility
        self._assembler = assembler
        self._model = model
        self._registry = registry
        self._store = store
        self._identifier = identifier
        self._download_image = download_image
        self._tracker = tracker
        self._ops_log = ops_log or NullOpsLog()
        self._partner_reply_probability = partner_reply_probability
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._rng = rng

    async def answer(self, trigger: Message) -> str:
        """Reply text for *trigger*, or ``""`` when the persona stays quiet."""
        context = await self._eligibility.select_context(trigger)
        if not context:
            return ""
        if not self._passes_partner_gate(trigger):
            logger.info("Skipping partner message %s", trigger.id)
            return ""

        try:
            return await self._respond(trigger, context)
        except Exception as exc:
            logger.exception("Failed to answer message %s", trigger.id)
            await self._ops_log.log(
                f"CRITICAL ERROR while answering {trigger.id}: {traceback.format_exc()}"
            )
            return f"{ERROR_REPLY} {trace_marker(exc)}"

    def _passes_partner_gate(self, trigger: Message) -> bool:
        if trigger.author_id != self._partner_user_id:
            return True
        return self._rng() < self._partner_reply_probability

    async def _respond(self, trigger: Message, context: list[Message]) -> str:
        attachment = await self._resolve_attachment(trigger, context)

        image: ImagePart | None = None
        directive = ""
        if attachment is not None:
            image = await self._download_image(attachment.url)
            if image is None:
                logger.warning("Could not download attachment %s", attachment.id)
                return IMAGE_DOWNLOAD_FAILED_REPLY
            identification = await self._identifier.identify(image)
            directive = identification.directive

        system = await self._system_text(trigger, context)
        if directive:
            system = f"{system}\n{directive}"

        turns = self._assembler.build(context, image)
        tools = self._registry.get_schemas()
        tool_context = ToolContext(
            user_id=trigger.author_id,
            attachment_url=attachment.url if attachment else None,
        )

        first = await self._model.generate(self._request(turns, system, tools))
        if first is None:
            await self._ops_log.log("Initial API response was invalid or blocked. Returning fallback.")
            return FALLBACK_REPLY

        if not first.has_tool_calls:
            return await self._final_text(first, "initial")

        results = []
        for call in first.tool_calls:
            result_text = await self._registry.execute(call.name, call.arguments, tool_context)
            results.append(ToolResult(name=call.name, result_text=result_text, call_id=call.id))

        follow_up = [
            *turns,
            first.as_turn(),
            ConversationTurn(role=Role.TOOL, tool_results=results),
        ]
        second = await self._model.generate(self._request(follow_up, system, tools))
        return await self._final_text(second, "post-tool")

    async def _resolve_attachment(
        self, trigger: Message, context: list[Message]
    ) -> Attachment | None:
        """The trigger's own attachment, or the latest one in the thread when asked about it."""
        if trigger.attachments:
            return trigger.attachments[0]
        if not trigger.in_thread:
            return None
        if not any(m.attachments for m in context):
            return None
        if not await self._is_about_image(trigger.text):
            return None
        for message in reversed(context):
            if message.attachments:
                return message.attachments[0]
        return None

    async def _is_about_image(self, text: str) -> bool:
        if not text:
            return False
        verdict = await self._model.ask(image_question_prompt(text), max_tokens=8)
        logger.debug("Image follow-up classifier said %r", verdict)
        return "YES" in verdict.upper()

    async def _system_text(self, trigger: Message, context: list[Message]) -> str:
        score: int | None = None
        if self._tracker is not None:
            if trigger.author_is_bot:
                score = await self._tracker.current_score(trigger.author_id)
            else:
                history = self._assembler.history(context)
                score = await self._tracker.update_and_get_score(trigger.author_id, history)
        return await load_persona_prompt(self._store, trigger.author_id, score)

    def _request(
        self, turns: list[ConversationTurn], system: str, tools: list[dict]
    ) -> ModelRequest:
        return ModelRequest(
            turns=turns,
            system=system,
            tools=tools or None,
            relaxed_safety=True,
            max_tokens=self._max_tokens,
            temperature=self._temperature,
        )

    async def _final_text(self, response: ModelResponse | None, stage: str) -> str:
        raw = response.first_text if response is not None else ""
        if not raw.strip():
            await self._ops_log.log(f"The AI's {stage} reply contained no text. Returning fallback.")
            return FALLBACK_REPLY
        return clean_response(raw)
