"""Character recognition for images posted in chat.

Lookup order: the persona's own fingerprint album (perceptual hash within
``MATCH_THRESHOLD`` bits), then Cloud Vision web entities filtered through
a model validator. The outcome is turned into a one-line system directive
that tells the persona how to talk about the image.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from src.notifications.channels import NullOpsLog

if TYPE_CHECKING:
    from src.integrations.cloud_vision import VisionClient
    from src.integrations.cloudinary import CloudinaryHasher
    from src.llm.client import ModelClient
    from src.llm.models import ImagePart
    from src.memory.models import ImageFingerprint
    from src.memory.store import MemoryStore
    from src.notifications.channels import OpsLogSink

logger = logging.getLogger(__name__)

HASH_BITS = 64
# Strictly fewer differing bits than this counts as the same image.
MATCH_THRESHOLD = 5

UNCERTAIN = "UNCERTAIN"


def hamming_distance(hash_a: str, hash_b: str) -> int:
    """Number of differing bits between two 64-bit hex hashes.

    Raises:
        ValueError: if either hash is not valid hex.
    """
    mask = (1 << HASH_BITS) - 1
    a = int(hash_a, 16) & mask
    b = int(hash_b, 16) & mask
    return (a ^ b).bit_count()


def find_match(
    phash: str, fingerprints: list[ImageFingerprint]
) -> tuple[ImageFingerprint, int] | None:
    """First fingerprint (in stored order) within the match threshold."""
    for fingerprint in fingerprints:
        try:
            distance = hamming_distance(phash, fingerprint.perceptual_hash)
        except ValueError:
            logger.warning("Skipping invalid stored hash %r", fingerprint.perceptual_hash)
            continue
        if distance < MATCH_THRESHOLD:
            return fingerprint, distance
    return None


def validator_prompt(candidates: list[str]) -> str:
    return (
        "You are a data validation expert. Here is a list of labels for an image: "
        f"[{', '.join(candidates)}]. Does this list contain a specific, valid name of a "
        "person or a fictional character? Answer ONLY with the single most likely name "
        f'if it exists, otherwise answer ONLY with the word "{UNCERTAIN}".'
    )


class Source(StrEnum):
    MEMORY = "memory"
    VALIDATED = "validated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Identification:
    """Result of identifying one image."""

    source: Source
    name: str | None = None

    @property
    def directive(self) -> str:
        """The ``[System Command: ...]`` line appended to the system text."""
        if self.source is Source.MEMORY:
            return (
                f'[System Command: My internal memory identified this as "{self.name}". '
                "Incorporate this name into your natural, in-character response.]"
            )
        if self.source is Source.VALIDATED:
            return (
                f'[System Command: The character has been identified as "{self.name}". '
                "State this in your own voice and add a brief, relevant comment.]"
            )
        return (
            "[System Command: The character could not be identified. You MUST state "
            "that you are not sure in an in-character way. Do not guess.]"
        )


class ImageIdentifier:
    """Runs the fingerprint, vision and validator steps for one image."""

    def __init__(
        self,
        store: MemoryStore,
        hasher: CloudinaryHasher,
        vision: VisionClient,
        model: ModelClient,
        *,
        ops_log: OpsLogSink | None = None,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._vision = vision
        self._model = model
        self._ops_log = ops_log or NullOpsLog()

    async def identify(self, image: ImagePart) -> Identification:
        name = await self.recall(image)
        if name:
            return Identification(Source.MEMORY, name)

        candidates = await self._vision.web_entities(image)
        name = await self.validate(candidates)
        if name:
            return Identification(Source.VALIDATED, name)
        return Identification(Source.UNKNOWN)

    async def recall(self, image: ImagePart) -> str | None:
        """Name of a remembered image close enough to *image*, if any."""
        phash = await self._hasher.perceptual_hash(image)
        if not phash:
            return None

        match = find_match(phash, await self._store.scan_fingerprints())
        if match is None:
            await self._ops_log.log("No close visual match found in memory.")
            return None

        fingerprint, distance = match
        await self._ops_log.log(
            f'Found a visual match for "{fingerprint.character_name}" with distance: {distance}.'
        )
        return fingerprint.character_name

    async def validate(self, candidates: list[str]) -> str | None:
        """Ask the model to pick a real name out of *candidates*."""
        if not candidates:
            return None

        result = await self._model.ask(validator_prompt(candidates))
        if result and result.upper() != UNCERTAIN and len(result) > 2:
            await self._ops_log.log(f"Validation successful. Extracted name: {result}")
            return result

        await self._ops_log.log(
            f"Validation failed. No specific name found in list: [{', '.join(candidates)}]"
        )
        return None
