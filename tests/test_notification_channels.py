"""Tests for the outbound message protocols."""

from unittest.mock import MagicMock

from src.bot.slack.client import SlackGateway
from src.notifications.channels import ChatChannel, NullOpsLog, OpsLogSink

# -- Protocol conformance ---------------------------------------------------


def test_slack_gateway_satisfies_protocols() -> None:
    gateway = SlackGateway(MagicMock(), "xoxb-test")
    assert isinstance(gateway, ChatChannel)
    assert isinstance(gateway, OpsLogSink)


def test_null_ops_log_satisfies_protocol() -> None:
    assert isinstance(NullOpsLog(), OpsLogSink)


async def test_null_ops_log_drops_messages() -> None:
    assert await NullOpsLog().log("anything") is False
