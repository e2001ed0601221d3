"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from src.chat.models import Attachment, ChannelKind, Message
from src.memory.models import Dossier, ImageFingerprint, UserRecord
from src.memory.store import DEFAULT_PERSONA, MemoryStore, SqlMemoryStore

BOT = "UYUZU"
PARTNER = "UPARTNER"
HUMAN = "UHUMAN"


class InMemoryStore(MemoryStore):
    """Dict-backed MemoryStore for unit tests."""

    def __init__(self, persona: str = DEFAULT_PERSONA) -> None:
        self.records: dict[str, UserRecord] = {}
        self.dossiers: dict[str, Dossier] = {}
        self.fingerprints: list[ImageFingerprint] = []
        self.persona = persona

    async def get_user_record(self, user_id: str) -> UserRecord | None:
        record = self.records.get(user_id)
        return record.model_copy(deep=True) if record else None

    async def upsert_user_record(self, record: UserRecord) -> None:
        self.records[record.user_id] = record.model_copy(deep=True)

    async def append_fingerprint(self, fingerprint: ImageFingerprint) -> None:
        self.fingerprints.append(fingerprint)

    async def scan_fingerprints(self) -> list[ImageFingerprint]:
        return list(self.fingerprints)

    async def get_dossier(self, user_id: str) -> Dossier | None:
        return self.dossiers.get(user_id)

    async def get_persona_template(self) -> str:
        return self.persona


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def sql_store(tmp_path: Path) -> SqlMemoryStore:
    """A libsql store backed by a temporary local file."""
    return SqlMemoryStore(tmp_path / "test.db")


def make_message(
    text: str = "",
    *,
    ts: str = "1700000000.000100",
    author: str = HUMAN,
    channel: str = "C1",
    kind: ChannelKind = ChannelKind.GROUP,
    thread: str | None = None,
    bot: bool = False,
    files: tuple[Attachment, ...] = (),
    **extra: Any,
) -> Message:
    """Build a Message with sensible defaults."""
    return Message(
        id=ts,
        channel_id=channel,
        channel_kind=kind,
        author_id=author,
        text=text,
        author_is_bot=bot,
        thread_id=thread,
        attachments=files,
        timestamp=float(ts),
        **extra,
    )


@pytest.fixture
def message():
    """Factory fixture wrapping ``make_message``."""
    return make_message
