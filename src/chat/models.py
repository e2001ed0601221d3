"""Chat message types shared by the eligibility, context and reply code."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

# Prefix stamped on every operational log line posted to Slack.
LOG_PREFIX = "Log:"


class ChannelKind(StrEnum):
    DIRECT = "direct"
    GROUP = "group"

    @classmethod
    def from_slack(cls, channel_type: str | None) -> ChannelKind:
        return cls.DIRECT if channel_type == "im" else cls.GROUP


@dataclass(frozen=True)
class Attachment:
    """A file attached to a Slack message."""

    id: str
    url: str
    mimetype: str = ""
    name: str = ""

    @classmethod
    def from_slack(cls, payload: dict[str, Any]) -> Attachment | None:
        url = payload.get("url_private") or payload.get("url_private_download") or ""
        if not url:
            return None
        return cls(
            id=payload.get("id", ""),
            url=url,
            mimetype=payload.get("mimetype", ""),
            name=payload.get("name", ""),
        )


@dataclass(frozen=True)
class Message:
    """A single chat message. Immutable once received."""

    id: str
    channel_id: str
    channel_kind: ChannelKind
    author_id: str
    text: str = ""
    author_is_bot: bool = False
    thread_id: str | None = None
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)
    timestamp: float = 0.0
    client_msg_id: str | None = None

    @classmethod
    def from_slack(
        cls,
        payload: dict[str, Any],
        *,
        channel_id: str | None = None,
        channel_kind: ChannelKind | None = None,
    ) -> Message:
        """Build a Message from a Slack event or ``conversations.replies`` item."""
        ts = str(payload.get("ts", ""))
        try:
            timestamp = float(ts)
        except ValueError:
            timestamp = 0.0

        attachments = tuple(
            a for a in (Attachment.from_slack(f) for f in payload.get("files") or []) if a
        )
        kind = channel_kind or ChannelKind.from_slack(payload.get("channel_type"))
        return cls(
            id=ts,
            channel_id=channel_id or payload.get("channel", ""),
            channel_kind=kind,
            author_id=payload.get("user", ""),
            text=payload.get("text") or "",
            author_is_bot=bool(payload.get("bot_id")),
            thread_id=payload.get("thread_ts"),
            attachments=attachments,
            timestamp=timestamp,
            client_msg_id=payload.get("client_msg_id"),
        )

    @property
    def dedupe_key(self) -> str:
        return self.client_msg_id or self.id

    @property
    def in_thread(self) -> bool:
        return self.thread_id is not None

    @property
    def is_direct(self) -> bool:
        return self.channel_kind is ChannelKind.DIRECT

    @property
    def has_attachments(self) -> bool:
        return bool(self.attachments)

    @property
    def is_log(self) -> bool:
        return self.text.startswith(LOG_PREFIX)

    @property
    def mentions_anyone(self) -> bool:
        """True when the text carries Slack's generic ``<@...>`` mention syntax."""
        return "<@" in self.text

    def mentions(self, user_id: str) -> bool:
        """True when *user_id* appears in the message text."""
        return bool(user_id) and user_id in self.text
