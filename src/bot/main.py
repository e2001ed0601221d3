"""Yuzu bot entry point."""

import logging

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


def main() -> None:
    """Start the Slack Events API webhook and the briefing scheduler."""
    from src.bot.app import run

    if not settings.slack_bot_user_id:
        logger.warning("SLACK_BOT_USER_ID is empty; mentions and self-filtering will not work")
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty; every model call will fail")

    logger.info("Starting Yuzu on port %d with model %s...", settings.webhook_port, settings.claude_model)
    run(settings)


if __name__ == "__main__":
    main()
