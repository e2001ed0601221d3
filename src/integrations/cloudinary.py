"""Cloudinary upload used only to obtain an image's perceptual hash."""

from __future__ import annotations

import hashlib
import logging
import time
from typing import TYPE_CHECKING

import httpx

from src.notifications.channels import NullOpsLog

if TYPE_CHECKING:
    from collections.abc import Callable

    from src.llm.models import ImagePart
    from src.notifications.channels import OpsLogSink

logger = logging.getLogger(__name__)

UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"
HTTP_TIMEOUT = 20


def sign_upload(timestamp: int, api_secret: str) -> str:
    """SHA-1 signature over the signed upload parameters (``phash`` and ``timestamp``)."""
    payload = f"phash=true&timestamp={timestamp}{api_secret}"
    return hashlib.sha1(payload.encode()).hexdigest()  # noqa: S324


class CloudinaryHasher:
    """Uploads an image with ``phash=true`` and returns the 64-bit hex hash."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        *,
        ops_log: OpsLogSink | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._cloud_name = cloud_name
        self._api_key = api_key
        self._api_secret = api_secret
        self._ops_log = ops_log or NullOpsLog()
        self._clock = clock

    @property
    def configured(self) -> bool:
        return bool(self._cloud_name and self._api_key and self._api_secret)

    async def perceptual_hash(self, image: ImagePart) -> str | None:
        """Return the perceptual hash for *image*, or None on any failure."""
        if not self.configured:
            await self._ops_log.log("ERROR: Cloudinary credentials are not fully set.")
            return None

        timestamp = round(self._clock())
        payload = {
            "file": f"data:{image.mime_type};base64,{image.data}",
            "api_key": self._api_key,
            "timestamp": timestamp,
            "signature": sign_upload(timestamp, self._api_secret),
            "phash": True,
        }
        url = UPLOAD_URL.format(cloud_name=self._cloud_name)
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                resp = await client.post(url, json=payload)
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.exception("Cloudinary upload failed")
            await self._ops_log.log(f"FATAL ERROR in Cloudinary upload: {exc!r}")
            return None

        if not isinstance(data, dict):
            data = {}
        phash = data.get("phash")
        if phash:
            await self._ops_log.log(f"Cloudinary returned pHash: {phash}")
            return str(phash)

        error = data.get("error")
        if isinstance(error, dict):
            reason = error.get("message", "Unknown")
        else:
            reason = str(error or "Unknown")
        logger.warning("Cloudinary returned no pHash: %s", reason)
        await self._ops_log.log(f"ERROR: Failed to get pHash from Cloudinary. Reason: {reason}")
        return None
