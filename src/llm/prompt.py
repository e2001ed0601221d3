"""Persona system prompt assembly."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.memory.store import DOSSIER_PLACEHOLDER

if TYPE_CHECKING:
    from src.memory.models import Dossier
    from src.memory.store import MemoryStore

logger = logging.getLogger(__name__)


def dossier_briefing(user_id: str, dossier: Dossier | None) -> str:
    """The per-user block substituted into the persona template."""
    lines = ["", "--- CURRENT USER DOSSIER ---"]
    if dossier is not None:
        lines.append(
            f"You are speaking with User ID '{user_id}', who is known as "
            f"'{dossier.nickname}'. Your relationship with them is: {dossier.relationship}"
        )
    else:
        lines.append(
            "You are speaking with an unknown user. "
            "You have no established relationship with them."
        )
    lines.append("--- END DOSSIER ---")
    return "\n".join(lines)


def build_persona_prompt(
    template: str,
    user_id: str,
    dossier: Dossier | None,
    relationship_score: int | None = None,
) -> str:
    """Fill the dossier placeholder and optionally append the relationship score."""
    prompt = template.replace(DOSSIER_PLACEHOLDER, dossier_briefing(user_id, dossier), 1)
    if relationship_score is not None:
        prompt += f"\n\nRELATIONSHIP SCORE: {relationship_score}"
    return prompt


async def load_persona_prompt(
    store: MemoryStore,
    user_id: str,
    relationship_score: int | None = None,
) -> str:
    """Read the template and dossier from the store and build the prompt."""
    template = await store.get_persona_template()
    dossier = await store.get_dossier(user_id)
    if dossier is None:
        logger.debug("No dossier for %s", user_id)
    return build_persona_prompt(template, user_id, dossier, relationship_score)
