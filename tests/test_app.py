"""Tests for application wiring."""

from pathlib import Path

from src.bot.app import BRIEFING_JOB_ID, create_application
from src.config import Settings
from src.webhooks.server import WebhookServer


def _settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "slack_bot_token": "xoxb-test",
        "slack_bot_user_id": "UYUZU",
        "slack_bot_id": "BYUZU",
        "anthropic_api_key": "sk-test",
        "database_path": tmp_path / "yuzu.db",
        "webhook_port": 9999,
    }
    values.update(overrides)
    return Settings(**values)


async def test_create_application_registers_briefing(tmp_path: Path) -> None:
    app = create_application(_settings(tmp_path))

    assert app.scheduler.job_ids() == [BRIEFING_JOB_ID]
    assert isinstance(app.server, WebhookServer)
    assert app.server.port == 9999


async def test_relationship_tracker_is_optional(tmp_path: Path) -> None:
    off = create_application(_settings(tmp_path))
    on = create_application(_settings(tmp_path, relationship_score_enabled=True))

    assert off.handler._orchestrator._tracker is None
    assert on.handler._orchestrator._tracker is not None
