"""Async HTTP server for the Slack Events API.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop. Every valid
request is acknowledged right away; the event itself is processed in a
background task.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web
from slack_sdk.signature import SignatureVerifier

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    EventCallback = Callable[[dict[str, Any]], Awaitable[None]]

logger = logging.getLogger(__name__)

EVENTS_PATH = "/slack/events"

_HANDLER_KEY = web.AppKey("event_handler", object)
_VERIFIER_KEY = web.AppKey("signature_verifier", object)
_TASKS_KEY = web.AppKey("background_tasks", set)


def _ok() -> web.Response:
    return web.Response(text="OK")


async def _handle_events(request: web.Request) -> web.Response:
    """POST /slack/events: URL verification handshake or event callback."""
    body = await request.read()

    verifier: SignatureVerifier | None = request.app[_VERIFIER_KEY]
    if verifier is not None and not verifier.is_valid_request(body, dict(request.headers)):
        logger.warning("Slack request rejected: bad signature")
        return _ok()

    try:
        payload: dict[str, Any] = json.loads(body)
    except ValueError:
        logger.warning("Slack request ignored: invalid JSON")
        return _ok()
    if not isinstance(payload, dict):
        return _ok()

    if payload.get("type") == "url_verification":
        return web.Response(text=str(payload.get("challenge", "")))

    event = payload.get("event")
    if payload.get("type") != "event_callback" or not isinstance(event, dict):
        return _ok()
    if event.get("type") != "message":
        return _ok()

    # Fire-and-forget: acknowledge now, process in the background.
    task = asyncio.create_task(_run_handler(request.app[_HANDLER_KEY], event))
    tasks: set[asyncio.Task] = request.app[_TASKS_KEY]
    tasks.add(task)
    task.add_done_callback(tasks.discard)
    return _ok()


async def _run_handler(handler: EventCallback, event: dict[str, Any]) -> None:
    """Execute the event handler with error logging."""
    try:
        await handler(event)
    except Exception:
        logger.exception("Slack event handler failed: ts=%s", event.get("ts"))


async def _health(request: web.Request) -> web.Response:
    """GET /health: basic liveness check."""
    return web.json_response({"status": "ok"})


def create_web_app(handler: EventCallback, signing_secret: str = "") -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[_HANDLER_KEY] = handler
    app[_VERIFIER_KEY] = SignatureVerifier(signing_secret) if signing_secret else None
    app[_TASKS_KEY] = set()
    app.router.add_get("/health", _health)
    app.router.add_post(EVENTS_PATH, _handle_events)
    return app


class WebhookServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, handler: EventCallback, *, port: int = 8443, signing_secret: str = "") -> None:
        self.port = port
        self._handler = handler
        self._signing_secret = signing_secret
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for Slack events."""
        if not self._signing_secret:
            logger.warning("SLACK_SIGNING_SECRET empty; request signatures are not checked")

        app = create_web_app(self._handler, self._signing_secret)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "0.0.0.0", self.port)  # noqa: S104
        await site.start()
        logger.info("Webhook server listening on port %d (%s)", self.port, EVENTS_PATH)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Webhook server stopped")
