"""Async database connection abstraction over libsql.

Provides a thin async wrapper around the synchronous ``libsql`` driver using
``asyncio.to_thread()``. The caller picks the target:

- **Production**: a Turso URL + auth token → remote libSQL
- **Dev/test**: a local SQLite file path
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import libsql

if TYPE_CHECKING:
    from pathlib import Path


class _AsyncCursor:
    """Async facade over a libsql cursor."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)


class _AsyncConnection:
    """Async facade over a libsql connection."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> _AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return _AsyncCursor(cursor)

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def get_connection(
    local_path: Path,
    *,
    remote_url: str = "",
    auth_token: str = "",
) -> _AsyncConnection:
    """Return an async-wrapped libsql connection.

    A non-empty *remote_url* selects Turso; otherwise *local_path* is
    opened (parent directories are created as needed).
    """
    if remote_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=remote_url,
            auth_token=auth_token,
        )
        return _AsyncConnection(conn)

    local_path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(local_path))
    return _AsyncConnection(conn)
