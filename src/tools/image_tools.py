"""Image album tool: teach the persona who is in a picture."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import Field

from src.memory.models import ImageFingerprint
from src.tools.base import BaseTool, ToolContext, ToolParams, failure, success

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from src.integrations.cloudinary import CloudinaryHasher
    from src.llm.models import ImagePart
    from src.memory.store import MemoryStore

    ImageDownloader = Callable[[str], Awaitable[ImagePart | None]]

logger = logging.getLogger(__name__)


class RememberImageParams(ToolParams):
    name: str = Field(description="The name of the character in the image.")
    image_url: str | None = Field(
        default=None,
        alias="imageUrl",
        description="The Slack private URL of the image. Defaults to the image in the current message.",
    )


class RememberCharacterImageTool(BaseTool):
    name = "rememberCharacterImage"
    description = (
        "Saves the name of a character and the visual fingerprint of their image to "
        "memory. Use this when a user explicitly tells you who is in an image so you "
        "can recognize it later."
    )
    category = "memory"
    params_model = RememberImageParams

    def __init__(
        self,
        store: MemoryStore,
        hasher: CloudinaryHasher,
        download: ImageDownloader,
    ) -> None:
        self._store = store
        self._hasher = hasher
        self._download = download

    async def execute(
        self,
        name: str,
        image_url: str | None = None,
        context: ToolContext | None = None,
    ) -> str:
        url = image_url or (context.attachment_url if context else None)
        if not url:
            return failure("There is no image to remember.")

        image = await self._download(url)
        if image is None:
            return failure("Could not download the image from Slack.")

        phash = await self._hasher.perceptual_hash(image)
        if not phash:
            return failure("Could not analyze the image to get its fingerprint.")

        await self._store.append_fingerprint(
            ImageFingerprint(perceptual_hash=phash, character_name=name.strip())
        )
        logger.info("Remembered image of %r (%s)", name, phash)
        return success(f'Got it. I\'ve remembered the character "{name}" from that image.')
