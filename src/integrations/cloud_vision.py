"""Google Cloud Vision web detection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from src.notifications.channels import NullOpsLog

if TYPE_CHECKING:
    from src.llm.models import ImagePart
    from src.notifications.channels import OpsLogSink

logger = logging.getLogger(__name__)

ANNOTATE_URL = "https://vision.googleapis.com/v1/images:annotate"
MAX_ENTITIES = 5
HTTP_TIMEOUT = 20


class VisionClient:
    """Asks Cloud Vision which web entities an image resembles."""

    def __init__(self, api_key: str, *, ops_log: OpsLogSink | None = None) -> None:
        self._api_key = api_key
        self._ops_log = ops_log or NullOpsLog()

    async def web_entities(self, image: ImagePart) -> list[str]:
        """Up to ``MAX_ENTITIES`` entity descriptions, or ``[]`` on failure."""
        if not self._api_key:
            await self._ops_log.log("ERROR: CLOUD_VISION_API_KEY is not set.")
            return []

        body = {
            "requests": [{
                "image": {"content": image.data},
                "features": [{"type": "WEB_DETECTION", "maxResults": MAX_ENTITIES}],
            }]
        }
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                resp = await client.post(ANNOTATE_URL, params={"key": self._api_key}, json=body)
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Cloud Vision request failed")
            await self._ops_log.log(f"FATAL ERROR in Cloud Vision request: {exc!r}")
            return []

        names = _entity_names(data)
        if not names:
            await self._ops_log.log("WARN: Vision API did not return any web entities.")
            return []

        await self._ops_log.log(f"Vision API possible names: [{', '.join(names)}]")
        return names


def _entity_names(data: object) -> list[str]:
    """Entity descriptions from an annotate response; ``[]`` for any other shape."""
    responses = data.get("responses") if isinstance(data, dict) else None
    if not isinstance(responses, list) or not responses or not isinstance(responses[0], dict):
        return []
    detection = responses[0].get("webDetection")
    entities = detection.get("webEntities") if isinstance(detection, dict) else None
    if not isinstance(entities, list):
        return []
    return [
        e["description"]
        for e in entities[:MAX_ENTITIES]
        if isinstance(e, dict) and e.get("description")
    ]
