"""Application settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """Bot configuration. All values come from environment variables.

    Built once at startup and handed to every component; nothing in the
    chat logic reads the environment on its own.
    """

    # Slack identity
    slack_bot_token: str = Field(default="")
    slack_bot_user_id: str = Field(default="")
    slack_bot_id: str = Field(default="")
    slack_signing_secret: str = Field(default="")
    partner_bot_user_id: str = Field(default="")
    slack_log_channel_id: str = Field(default="")

    # Anthropic
    anthropic_api_key: str = Field(default="")
    claude_model: str = Field(default="claude-sonnet-4-5-20250929")
    model_max_tokens: int = Field(default=1024)
    model_temperature: float = Field(default=0.7)
    model_retry_delay_seconds: float = Field(default=1.5)

    # Google Custom Search
    google_search_api_key: str = Field(default="")
    google_search_engine_id: str = Field(default="")

    # Google Cloud Vision
    cloud_vision_api_key: str = Field(default="")

    # Cloudinary (perceptual hashing)
    cloudinary_cloud_name: str = Field(default="")
    cloudinary_api_key: str = Field(default="")
    cloudinary_api_secret: str = Field(default="")

    # Database
    database_path: Path = Field(default=Path("data/yuzu.db"))

    # Turso (hosted libSQL); when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Persona behavior
    persona_nicknames: str = Field(default="yuzu,yuzuha,yuzu-chan,柚葉,柚葉ちゃん,ゆず,ゆずちゃん")
    partner_reply_probability: float = Field(default=0.8, ge=0.0, le=1.0)
    relationship_score_enabled: bool = Field(default=False)

    # Ghost mode
    ghost_mode_channel_id: str = Field(default="")
    ghost_trigger_keywords: str = Field(default="")
    ghost_cooldown_seconds: float = Field(default=15)

    # Event handling
    stale_event_seconds: float = Field(default=60)
    dedupe_ttl_seconds: float = Field(default=600)
    lock_timeout_seconds: float = Field(default=30)

    # Daily briefing
    briefing_channel_id: str = Field(default="")
    news_feed_url: str = Field(default="https://www.4gamer.net/rss/arcade/arcade_news.xml")
    briefing_cron: str = Field(default="0 9 * * *")

    # Time
    timezone: str = Field(default="Asia/Tokyo")

    # Webhooks
    webhook_port: int = Field(default=8443)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=_env_file(), env_file_encoding="utf-8", frozen=True
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_persona_nicknames(self) -> list[str]:
        """Parse PERSONA_NICKNAMES into a lowercase list."""
        return [name.lower() for name in _split_csv(self.persona_nicknames)]

    def get_ghost_trigger_keywords(self) -> list[str]:
        """Parse GHOST_TRIGGER_KEYWORDS into a lowercase list."""
        return [word.lower() for word in _split_csv(self.ghost_trigger_keywords)]


settings = Settings()
