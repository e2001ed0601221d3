"""Application factory: builds every component from Settings and runs them."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from slack_sdk.web.async_client import AsyncWebClient

from src.bot.slack.client import SlackGateway
from src.bot.slack.handlers import EventHandler
from src.chat.context import ContextAssembler
from src.chat.eligibility import EligibilityEngine
from src.chat.ghost import GhostMode
from src.chat.orchestrator import ResponseOrchestrator
from src.integrations.cloud_vision import VisionClient
from src.integrations.cloudinary import CloudinaryHasher
from src.llm.client import ModelClient
from src.memory.relationship import RelationshipTracker
from src.memory.store import SqlMemoryStore
from src.scheduler.briefing import send_daily_briefing
from src.scheduler.engine import SchedulerEngine
from src.tools import build_registry
from src.vision.identify import ImageIdentifier
from src.webhooks.server import WebhookServer

if TYPE_CHECKING:
    from src.config import Settings

logger = logging.getLogger(__name__)

BRIEFING_JOB_ID = "daily_news_briefing"


@dataclass
class Application:
    """The wired-up bot. ``start``/``stop`` manage the long-running parts."""

    gateway: SlackGateway
    handler: EventHandler
    server: WebhookServer
    scheduler: SchedulerEngine

    async def start(self) -> None:
        await self.scheduler.start()
        await self.server.start()

    async def stop(self) -> None:
        await self.server.stop()
        await self.scheduler.stop()


def create_application(settings: Settings) -> Application:
    """Build every component from *settings*."""
    slack = AsyncWebClient(token=settings.slack_bot_token)
    gateway = SlackGateway(slack, settings.slack_bot_token, settings.slack_log_channel_id)

    store = SqlMemoryStore(
        settings.database_path,
        remote_url=settings.turso_database_url,
        auth_token=settings.turso_auth_token,
    )
    model = ModelClient(
        settings.anthropic_api_key,
        settings.claude_model,
        retry_delay=settings.model_retry_delay_seconds,
        ops_log=gateway,
    )
    hasher = CloudinaryHasher(
        settings.cloudinary_cloud_name,
        settings.cloudinary_api_key,
        settings.cloudinary_api_secret,
        ops_log=gateway,
    )
    identifier = ImageIdentifier(
        store,
        hasher,
        VisionClient(settings.cloud_vision_api_key, ops_log=gateway),
        model,
        ops_log=gateway,
    )
    registry = build_registry(
        store=store,
        hasher=hasher,
        download_image=gateway.download_image,
        google_api_key=settings.google_search_api_key,
        google_engine_id=settings.google_search_engine_id,
        timezone=settings.timezone,
    )
    tracker = (
        RelationshipTracker(store, model, ops_log=gateway)
        if settings.relationship_score_enabled
        else None
    )

    orchestrator = ResponseOrchestrator(
        bot_user_id=settings.slack_bot_user_id,
        partner_user_id=settings.partner_bot_user_id,
        eligibility=EligibilityEngine(
            settings.slack_bot_user_id, settings.partner_bot_user_id, gateway.fetch_thread
        ),
        assembler=ContextAssembler(settings.slack_bot_user_id),
        model=model,
        registry=registry,
        store=store,
        identifier=identifier,
        download_image=gateway.download_image,
        tracker=tracker,
        ops_log=gateway,
        partner_reply_probability=settings.partner_reply_probability,
        max_tokens=settings.model_max_tokens,
        temperature=settings.model_temperature,
    )
    ghost = GhostMode(
        channel_id=settings.ghost_mode_channel_id,
        nicknames=settings.get_persona_nicknames(),
        keywords=settings.get_ghost_trigger_keywords(),
        model=model,
        store=store,
        tracker=tracker,
        cooldown_seconds=settings.ghost_cooldown_seconds,
        max_tokens=settings.model_max_tokens,
        temperature=settings.model_temperature,
    )
    handler = EventHandler(
        bot_user_id=settings.slack_bot_user_id,
        bot_id=settings.slack_bot_id,
        orchestrator=orchestrator,
        chat=gateway,
        ghost=ghost,
        stale_after=settings.stale_event_seconds,
        dedupe_ttl=settings.dedupe_ttl_seconds,
        lock_timeout=settings.lock_timeout_seconds,
    )
    server = WebhookServer(
        handler.handle,
        port=settings.webhook_port,
        signing_secret=settings.slack_signing_secret,
    )

    scheduler = SchedulerEngine(timezone=settings.timezone)

    async def _briefing() -> None:
        await send_daily_briefing(gateway, settings.briefing_channel_id, settings.news_feed_url)

    scheduler.add_cron_job(BRIEFING_JOB_ID, settings.briefing_cron, _briefing)

    logger.info(
        "Application built: model=%s ghost_channel=%s relationship_score=%s",
        settings.claude_model,
        settings.ghost_mode_channel_id or "-",
        settings.relationship_score_enabled,
    )
    return Application(gateway=gateway, handler=handler, server=server, scheduler=scheduler)


def run(settings: Settings) -> None:
    """Start the webhook server and scheduler and block until interrupted."""

    async def _run() -> None:
        app = create_application(settings)
        await app.start()
        try:
            await asyncio.Event().wait()
        finally:
            await app.stop()

    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(_run())
