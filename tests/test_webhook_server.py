"""Tests for the Slack Events API HTTP server."""

import asyncio
import json
import time

from aiohttp.test_utils import TestClient, TestServer
from slack_sdk.signature import SignatureVerifier

from src.webhooks.server import EVENTS_PATH, create_web_app

TEST_SECRET = "test-signing-secret"


# -- Helpers -----------------------------------------------------------------


class _RecordingHandler:
    def __init__(self) -> None:
        self.events: list[dict] = []
        self.called = asyncio.Event()

    async def __call__(self, event: dict) -> None:
        self.events.append(event)
        self.called.set()


async def _make_client(app) -> TestClient:
    """Create a TestClient for the events app."""
    client = TestClient(TestServer(app))
    await client.start_server()
    return client


def _signed_headers(body: bytes, secret: str = TEST_SECRET) -> dict[str, str]:
    timestamp = str(int(time.time()))
    signature = SignatureVerifier(secret).generate_signature(timestamp=timestamp, body=body)
    return {
        "X-Slack-Request-Timestamp": timestamp,
        "X-Slack-Signature": signature,
        "Content-Type": "application/json",
    }


def _callback(event: dict) -> bytes:
    return json.dumps({"type": "event_callback", "event": event}).encode()


# -- Health check -----------------------------------------------------------


async def test_health_check() -> None:
    client = await _make_client(create_web_app(_RecordingHandler()))
    try:
        resp = await client.get("/health")
        assert resp.status == 200
        data = await resp.json()
        assert data["status"] == "ok"
    finally:
        await client.close()


# -- Events -------------------------------------------------------------------


async def test_url_verification_echoes_challenge() -> None:
    client = await _make_client(create_web_app(_RecordingHandler()))
    try:
        resp = await client.post(EVENTS_PATH, json={"type": "url_verification", "challenge": "c-42"})
        assert resp.status == 200
        assert await resp.text() == "c-42"
    finally:
        await client.close()


async def test_message_event_acknowledged_and_dispatched() -> None:
    handler = _RecordingHandler()
    client = await _make_client(create_web_app(handler))
    try:
        resp = await client.post(
            EVENTS_PATH,
            data=_callback({"type": "message", "text": "hi", "ts": "1.0"}),
            headers={"Content-Type": "application/json"},
        )
        assert resp.status == 200
        assert await resp.text() == "OK"
        await asyncio.wait_for(handler.called.wait(), timeout=1)
    finally:
        await client.close()

    assert handler.events == [{"type": "message", "text": "hi", "ts": "1.0"}]


async def test_non_message_event_not_dispatched() -> None:
    handler = _RecordingHandler()
    client = await _make_client(create_web_app(handler))
    try:
        resp = await client.post(
            EVENTS_PATH,
            data=_callback({"type": "reaction_added"}),
            headers={"Content-Type": "application/json"},
        )
        assert await resp.text() == "OK"
        await asyncio.sleep(0)
    finally:
        await client.close()

    assert handler.events == []


async def test_invalid_json_acknowledged() -> None:
    handler = _RecordingHandler()
    client = await _make_client(create_web_app(handler))
    try:
        resp = await client.post(EVENTS_PATH, data=b"{not json")
        assert resp.status == 200
        assert await resp.text() == "OK"
    finally:
        await client.close()

    assert handler.events == []


async def test_handler_failure_does_not_affect_response() -> None:
    done = asyncio.Event()

    async def _boom(event: dict) -> None:
        done.set()
        raise RuntimeError("kaboom")

    client = await _make_client(create_web_app(_boom))
    try:
        resp = await client.post(EVENTS_PATH, data=_callback({"type": "message", "ts": "1.0"}))
        assert await resp.text() == "OK"
        await asyncio.wait_for(done.wait(), timeout=1)
    finally:
        await client.close()


# -- Signatures ---------------------------------------------------------------


async def test_valid_signature_accepted() -> None:
    handler = _RecordingHandler()
    client = await _make_client(create_web_app(handler, signing_secret=TEST_SECRET))
    body = _callback({"type": "message", "text": "signed", "ts": "1.0"})
    try:
        resp = await client.post(EVENTS_PATH, data=body, headers=_signed_headers(body))
        assert await resp.text() == "OK"
        await asyncio.wait_for(handler.called.wait(), timeout=1)
    finally:
        await client.close()

    assert handler.events[0]["text"] == "signed"


async def test_bad_signature_ignored() -> None:
    handler = _RecordingHandler()
    client = await _make_client(create_web_app(handler, signing_secret=TEST_SECRET))
    body = _callback({"type": "message", "text": "forged", "ts": "1.0"})
    try:
        resp = await client.post(EVENTS_PATH, data=body, headers=_signed_headers(body, "wrong"))
        assert resp.status == 200
        assert await resp.text() == "OK"
        await asyncio.sleep(0)
    finally:
        await client.close()

    assert handler.events == []


async def test_unsigned_challenge_rejected_when_secret_set() -> None:
    client = await _make_client(create_web_app(_RecordingHandler(), signing_secret=TEST_SECRET))
    try:
        resp = await client.post(EVENTS_PATH, json={"type": "url_verification", "challenge": "c-1"})
        assert await resp.text() == "OK"
    finally:
        await client.close()
