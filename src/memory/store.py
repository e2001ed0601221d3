"""Persistence for user memory, dossiers, image fingerprints and the persona.

``MemoryStore`` is the interface the chat logic depends on.
``SqlMemoryStore`` implements it over libsql (local SQLite file or Turso),
one table per concern:

- ``user_memory``: one row per user (facts stored newline-joined)
- ``dossiers``: curated nickname + relationship narrative per user
- ``image_memory``: append-only (phash, character name) log
- ``persona``: a single row holding the persona template
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from src.db import get_connection
from src.memory.models import Dossier, ImageFingerprint, UserRecord, clamp_score

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

# Token in the persona template replaced by the per-user dossier briefing.
DOSSIER_PLACEHOLDER = "{{DOSSIER_BRIEFING}}"

DEFAULT_PERSONA = "You are a helpful assistant."

_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)


def strip_block_comments(text: str) -> str:
    """Remove ``/* ... */`` editor notes from a persona template."""
    return _BLOCK_COMMENT_RE.sub("", text)


class MemoryStore(ABC):
    """Storage interface used by tools, the tracker and the prompt builder."""

    @abstractmethod
    async def get_user_record(self, user_id: str) -> UserRecord | None: ...

    @abstractmethod
    async def upsert_user_record(self, record: UserRecord) -> None: ...

    @abstractmethod
    async def append_fingerprint(self, fingerprint: ImageFingerprint) -> None: ...

    @abstractmethod
    async def scan_fingerprints(self) -> list[ImageFingerprint]:
        """All fingerprints in insertion order."""

    @abstractmethod
    async def get_dossier(self, user_id: str) -> Dossier | None: ...

    @abstractmethod
    async def get_persona_template(self) -> str:
        """The persona template with block comments removed."""

    async def load_user_record(self, user_id: str) -> UserRecord:
        """Return the user's record, creating it on first reference.

        New records take their nickname from the dossier, falling back to
        the user ID.
        """
        record = await self.get_user_record(user_id)
        if record is not None:
            return record
        dossier = await self.get_dossier(user_id)
        record = UserRecord(user_id=user_id, nickname=dossier.nickname if dossier else user_id)
        await self.upsert_user_record(record)
        logger.info("Created memory record for %s", user_id)
        return record


_CREATE_TABLES = (
    """
    CREATE TABLE IF NOT EXISTS user_memory (
        user_id            TEXT PRIMARY KEY,
        nickname           TEXT NOT NULL DEFAULT '',
        facts              TEXT NOT NULL DEFAULT '',
        relationship_score INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS dossiers (
        user_id      TEXT PRIMARY KEY,
        nickname     TEXT NOT NULL,
        relationship TEXT NOT NULL DEFAULT ''
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS image_memory (
        id             INTEGER PRIMARY KEY AUTOINCREMENT,
        phash          TEXT NOT NULL,
        character_name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS persona (
        id       INTEGER PRIMARY KEY CHECK (id = 1),
        template TEXT NOT NULL
    )
    """,
)


class SqlMemoryStore(MemoryStore):
    """MemoryStore over libsql.

    Args:
        db_path: Local database file (e.g. ``tmp_path / "test.db"`` in tests).
        remote_url: Turso database URL; when set it takes priority.
        auth_token: Turso auth token.
    """

    def __init__(self, db_path: Path, *, remote_url: str = "", auth_token: str = "") -> None:
        self._db_path = db_path
        self._remote_url = remote_url
        self._auth_token = auth_token
        self._initialised = False

    # -- Internal helpers ------------------------------------------------------

    async def _connect(self):  # noqa: ANN202
        db = await get_connection(
            self._db_path, remote_url=self._remote_url, auth_token=self._auth_token
        )
        if not self._initialised:
            for statement in _CREATE_TABLES:
                await db.execute(statement)
            await db.commit()
            self._initialised = True
        return db

    # -- User records ----------------------------------------------------------

    async def get_user_record(self, user_id: str) -> UserRecord | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT user_id, nickname, facts, relationship_score "
                "FROM user_memory WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            facts = [line for line in (row[2] or "").split("\n") if line.strip()]
            score = row[3] if isinstance(row[3], int) else 0
            return UserRecord(
                user_id=row[0], nickname=row[1] or "", facts=facts, relationship_score=score
            )
        finally:
            await db.close()

    async def upsert_user_record(self, record: UserRecord) -> None:
        db = await self._connect()
        try:
            await db.execute(
                """
                INSERT OR REPLACE INTO user_memory
                    (user_id, nickname, facts, relationship_score)
                VALUES (?, ?, ?, ?)
                """,
                (
                    record.user_id,
                    record.nickname,
                    "\n".join(record.facts),
                    clamp_score(record.relationship_score),
                ),
            )
            await db.commit()
        finally:
            await db.close()

    # -- Image fingerprints ----------------------------------------------------

    async def append_fingerprint(self, fingerprint: ImageFingerprint) -> None:
        db = await self._connect()
        try:
            await db.execute(
                "INSERT INTO image_memory (phash, character_name) VALUES (?, ?)",
                (fingerprint.perceptual_hash, fingerprint.character_name),
            )
            await db.commit()
            logger.info("Remembered image fingerprint for %s", fingerprint.character_name)
        finally:
            await db.close()

    async def scan_fingerprints(self) -> list[ImageFingerprint]:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT phash, character_name FROM image_memory ORDER BY id"
            )
            rows = await cursor.fetchall()
            return [
                ImageFingerprint(perceptual_hash=row[0], character_name=row[1])
                for row in rows
                if row[0]
            ]
        finally:
            await db.close()

    # -- Dossiers --------------------------------------------------------------

    async def get_dossier(self, user_id: str) -> Dossier | None:
        db = await self._connect()
        try:
            cursor = await db.execute(
                "SELECT user_id, nickname, relationship FROM dossiers WHERE user_id = ?",
                (user_id,),
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return Dossier(user_id=row[0], nickname=row[1], relationship=row[2] or "")
        finally:
            await db.close()

    async def upsert_dossier(self, dossier: Dossier) -> None:
        """Insert or replace a dossier (seeding only; the bot never writes these)."""
        db = await self._connect()
        try:
            await db.execute(
                "INSERT OR REPLACE INTO dossiers (user_id, nickname, relationship) VALUES (?, ?, ?)",
                (dossier.user_id, dossier.nickname, dossier.relationship),
            )
            await db.commit()
        finally:
            await db.close()

    # -- Persona ---------------------------------------------------------------

    async def get_persona_template(self) -> str:
        db = await self._connect()
        try:
            cursor = await db.execute("SELECT template FROM persona WHERE id = 1")
            row = await cursor.fetchone()
        finally:
            await db.close()
        if not row or not row[0]:
            logger.error("No persona template stored; using the default prompt")
            return DEFAULT_PERSONA
        return strip_block_comments(row[0])

    async def set_persona_template(self, template: str) -> None:
        """Replace the persona template (seeding only)."""
        db = await self._connect()
        try:
            await db.execute(
                "INSERT OR REPLACE INTO persona (id, template) VALUES (1, ?)", (template,)
            )
            await db.commit()
        finally:
            await db.close()
