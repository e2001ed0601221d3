"""Turn Slack messages into model conversation turns."""

from __future__ import annotations

from typing import TYPE_CHECKING

from src.llm.models import ConversationTurn, Role

if TYPE_CHECKING:
    from src.chat.models import Message
    from src.llm.models import ImagePart

# Stand-in text for a trailing image-only user message.
DEFAULT_IMAGE_PROMPT = "Describe this image or respond to it in character."


class ContextAssembler:
    """Builds model-ready turns from chat context.

    Messages written by this persona become ``model`` turns; everything
    else (humans and the partner bot) is ``user``.
    """

    def __init__(self, bot_user_id: str) -> None:
        self._bot_user_id = bot_user_id

    def role_for(self, message: Message) -> Role:
        return Role.MODEL if message.author_id == self._bot_user_id else Role.USER

    def build(
        self,
        messages: list[Message],
        image: ImagePart | None = None,
    ) -> list[ConversationTurn]:
        """Convert *messages* (oldest first) to turns; *image* goes on the last one."""
        turns: list[ConversationTurn] = []
        last_index = len(messages) - 1
        for index, message in enumerate(messages):
            role = self.role_for(message)
            text = message.text
            is_last = index == last_index

            if is_last and role is Role.USER and not text and message.has_attachments:
                text = DEFAULT_IMAGE_PROMPT

            turn = ConversationTurn(role=role, text_parts=[text])
            if is_last and image is not None:
                turn.image_parts.append(image)
            turns.append(turn)
        return turns

    def history(self, messages: list[Message]) -> list[ConversationTurn]:
        """Plain text turns, as written, for classifiers that score the conversation."""
        return [
            ConversationTurn(role=self.role_for(m), text_parts=[m.text]) for m in messages
        ]
