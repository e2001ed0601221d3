"""Outbound message protocols shared by the chat components."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatChannel(Protocol):
    """Something that can post a message into a chat channel."""

    async def post_message(
        self, channel_id: str, text: str, *, thread_ts: str | None = None
    ) -> bool:
        """Post *text* to *channel_id*. Returns True on success."""
        ...


@runtime_checkable
class OpsLogSink(Protocol):
    """Operational log destination (a designated Slack channel in production)."""

    async def log(self, message: str) -> bool:
        """Record an operational message. Returns True if it was delivered."""
        ...


class NullOpsLog:
    """An OpsLogSink that drops everything. Used when no log channel is set."""

    async def log(self, message: str) -> bool:
        return False
