"""Outbound Slack calls: posting, the ops log channel, thread reads and file downloads."""

from __future__ import annotations

import base64
import logging
from typing import TYPE_CHECKING

import httpx

from src.chat.models import LOG_PREFIX, ChannelKind, Message
from src.llm.models import ImagePart

if TYPE_CHECKING:
    from slack_sdk.web.async_client import AsyncWebClient

logger = logging.getLogger(__name__)

HTTP_TIMEOUT = 20
DEFAULT_IMAGE_TYPE = "image/jpeg"


class SlackGateway:
    """Slack Web API wrapper implementing ``ChatChannel`` and ``OpsLogSink``.

    Args:
        client: Authenticated ``AsyncWebClient``.
        bot_token: Bot token used as the bearer for ``url_private`` downloads.
        log_channel_id: Channel for operational log lines. Empty disables them.
    """

    def __init__(self, client: AsyncWebClient, bot_token: str, log_channel_id: str = "") -> None:
        self._client = client
        self._bot_token = bot_token
        self._log_channel_id = log_channel_id

    async def post_message(
        self, channel_id: str, text: str, *, thread_ts: str | None = None
    ) -> bool:
        try:
            await self._client.chat_postMessage(channel=channel_id, text=text, thread_ts=thread_ts)
            return True
        except Exception:
            logger.exception("SlackGateway.post_message failed for channel=%s", channel_id)
            return False

    async def log(self, message: str) -> bool:
        """Post ``Log: <message>`` to the log channel (and the Python log)."""
        logger.info("ops: %s", message)
        if not self._log_channel_id:
            return False
        return await self.post_message(self._log_channel_id, f"{LOG_PREFIX} {message}")

    async def fetch_thread(self, channel_id: str, thread_ts: str) -> list[Message]:
        """Every message in the thread, oldest first. ``[]`` on failure."""
        messages: list[Message] = []
        cursor: str | None = None
        try:
            while True:
                resp = await self._client.conversations_replies(
                    channel=channel_id, ts=thread_ts, cursor=cursor, limit=200
                )
                for item in resp.get("messages") or []:
                    messages.append(
                        Message.from_slack(
                            item,
                            channel_id=channel_id,
                            channel_kind=_kind_for(channel_id),
                        )
                    )
                cursor = (resp.get("response_metadata") or {}).get("next_cursor")
                if not cursor:
                    break
        except Exception:
            logger.exception("Failed to fetch thread %s in %s", thread_ts, channel_id)
            return []
        return messages

    async def download_image(self, url: str) -> ImagePart | None:
        """Fetch a private Slack file and return it base64-encoded, or None."""
        headers = {"Authorization": f"Bearer {self._bot_token}"}
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT, follow_redirects=True) as client:
                resp = await client.get(url, headers=headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Image download failed for %s: %s", url, exc)
            return None

        mime_type = resp.headers.get("content-type", DEFAULT_IMAGE_TYPE).split(";")[0].strip()
        if not mime_type.startswith("image/"):
            logger.warning("Download from %s is %s, not an image", url, mime_type)
            return None
        return ImagePart(mime_type=mime_type, data=base64.b64encode(resp.content).decode())


def _kind_for(channel_id: str) -> ChannelKind:
    # Direct message channel IDs start with "D".
    return ChannelKind.DIRECT if channel_id.startswith("D") else ChannelKind.GROUP
