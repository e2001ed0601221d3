"""Tests for the reply etiquette rules."""

from unittest.mock import AsyncMock

import pytest
from conftest import BOT, HUMAN, PARTNER, make_message

from src.chat.eligibility import EligibilityEngine
from src.chat.models import ChannelKind

ROOT = "1700000000.000001"


def _engine(thread=None) -> tuple[EligibilityEngine, AsyncMock]:
    fetch = AsyncMock(return_value=thread or [])
    return EligibilityEngine(BOT, PARTNER, fetch), fetch


def _threaded(text: str, ts: str, **kwargs):
    return make_message(text, ts=ts, thread=ROOT, **kwargs)


# -- Log and yield ------------------------------------------------------------


async def test_log_messages_are_ignored() -> None:
    engine, fetch = _engine()
    trigger = make_message(f"Log: <@{BOT}> something", kind=ChannelKind.DIRECT)
    assert await engine.select_context(trigger) == []
    fetch.assert_not_awaited()


async def test_yields_when_both_personas_mentioned() -> None:
    engine, _ = _engine()
    trigger = make_message(f"<@{BOT}> <@{PARTNER}> who is faster?")
    assert await engine.select_context(trigger) == []


async def test_yield_applies_in_direct_messages_too() -> None:
    engine, _ = _engine()
    trigger = make_message(f"<@{BOT}> and <@{PARTNER}>", kind=ChannelKind.DIRECT)
    assert await engine.select_context(trigger) == []


# -- Direct summons -------------------------------------------------------------


async def test_direct_message_returns_trigger_only() -> None:
    engine, fetch = _engine()
    trigger = make_message("Hi!", kind=ChannelKind.DIRECT)
    assert await engine.select_context(trigger) == [trigger]
    fetch.assert_not_awaited()


async def test_mention_outside_thread_returns_trigger() -> None:
    engine, _ = _engine()
    trigger = make_message(f"hey <@{BOT}>")
    assert await engine.select_context(trigger) == [trigger]


async def test_mention_in_thread_returns_whole_thread() -> None:
    root = make_message("root", ts=ROOT)
    trigger = _threaded(f"<@{BOT}> thoughts?", "1700000000.000002")
    engine, fetch = _engine([root, trigger])

    assert await engine.select_context(trigger) == [root, trigger]
    fetch.assert_awaited_once_with("C1", ROOT)


async def test_unaddressed_top_level_message_is_ignored() -> None:
    engine, fetch = _engine()
    assert await engine.select_context(make_message("lunch?")) == []
    fetch.assert_not_awaited()


# -- Threaded context -------------------------------------------------------------


async def test_empty_thread_is_silent() -> None:
    engine, _ = _engine([])
    trigger = _threaded("more", "1700000000.000002")
    assert await engine.select_context(trigger) == []


async def test_stale_trigger_is_silent() -> None:
    root = make_message(f"<@{BOT}> start", ts=ROOT)
    trigger = _threaded("first reply", "1700000000.000002")
    newer = _threaded("newer reply", "1700000000.000003")
    engine, _ = _engine([root, trigger, newer])

    assert await engine.select_context(trigger) == []


async def test_human_in_thread_started_with_my_mention() -> None:
    root = make_message(f"<@{BOT}> what's up", ts=ROOT)
    answer = _threaded("not much", "1700000000.000002", author=BOT, bot=True)
    trigger = _threaded("cool, tell me more", "1700000000.000003")
    engine, _ = _engine([root, answer, trigger])

    assert await engine.select_context(trigger) == [root, answer, trigger]


async def test_human_in_thread_not_started_with_my_mention() -> None:
    root = make_message("anyone here?", ts=ROOT)
    trigger = _threaded("hello?", "1700000000.000002")
    engine, _ = _engine([root, trigger])

    assert await engine.select_context(trigger) == []


async def test_human_addressing_someone_else_is_silent() -> None:
    root = make_message(f"<@{BOT}> hi", ts=ROOT)
    trigger = _threaded("<@UOTHER> what do you think?", "1700000000.000002")
    engine, _ = _engine([root, trigger])

    assert await engine.select_context(trigger) == []


# -- Partner in thread --------------------------------------------------------------


async def test_partner_after_human_who_addressed_only_partner_is_silent() -> None:
    root = make_message(f"<@{PARTNER}> tell me a joke", ts=ROOT)
    trigger = _threaded("Why did the...", "1700000000.000002", author=PARTNER, bot=True)
    engine, _ = _engine([root, trigger])

    assert await engine.select_context(trigger) == []


async def test_partner_after_human_who_addressed_both_gets_thread() -> None:
    root = make_message("kick off", ts=ROOT)
    human = _threaded(f"<@{PARTNER}> <@{BOT}> debate!", "1700000000.000002")
    trigger = _threaded("I'll start", "1700000000.000003", author=PARTNER, bot=True)
    thread = [root, human, trigger]
    engine, _ = _engine(thread)

    assert await engine.select_context(trigger) == thread


async def test_partner_after_bot_message_gets_thread() -> None:
    root = make_message(f"<@{BOT}> go", ts=ROOT)
    mine = _threaded("done", "1700000000.000002", author=BOT, bot=True)
    trigger = _threaded("nice", "1700000000.000003", author=PARTNER, bot=True)
    thread = [root, mine, trigger]
    engine, _ = _engine(thread)

    assert await engine.select_context(trigger) == thread


async def test_partner_alone_in_thread_gets_thread() -> None:
    trigger = make_message("solo", ts=ROOT, thread=ROOT, author=PARTNER, bot=True)
    engine, _ = _engine([trigger])

    assert await engine.select_context(trigger) == [trigger]


async def test_partner_after_human_mentioning_me_gets_thread() -> None:
    root = make_message("kick off", ts=ROOT)
    human = _threaded(f"<@{BOT}> you too", "1700000000.000002")
    trigger = _threaded("heh", "1700000000.000003", author=PARTNER, bot=True)
    thread = [root, human, trigger]
    engine, _ = _engine(thread)

    assert await engine.select_context(trigger) == thread


@pytest.mark.parametrize("author", [HUMAN, PARTNER])
async def test_is_deterministic(author: str) -> None:
    root = make_message(f"<@{BOT}> hi", ts=ROOT)
    trigger = _threaded("again", "1700000000.000002", author=author, bot=author == PARTNER)
    engine, _ = _engine([root, trigger])

    first = await engine.select_context(trigger)
    second = await engine.select_context(trigger)
    assert first == second
