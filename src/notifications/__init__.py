"""Outbound chat and ops-log protocols."""

from src.notifications.channels import ChatChannel, NullOpsLog, OpsLogSink

__all__ = [
    "ChatChannel",
    "NullOpsLog",
    "OpsLogSink",
]
