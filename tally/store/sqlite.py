"""
SQLite storage backend.

One `slots` table, one row per key. Every write is a single UPSERT, so a
crash mid-write leaves either the old queue or the new one, never a mix.
A namespace (normally the school id) is prefixed to every key so several
schools can share one database file.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, cast

import aiosqlite

from tally.core.errors import StorageError
from tally.store.base import StorageProvider

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS slots (
    key        TEXT PRIMARY KEY,
    value      BLOB NOT NULL,
    updated_at REAL NOT NULL
)
"""

_UPSERT = (
    "INSERT INTO slots (key, value, updated_at) VALUES (?, ?, ?) "
    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at"
)


class SQLiteStorage(StorageProvider):
    """
    Usage:
        storage = SQLiteStorage("~/.tally/queue.db", namespace="school-42")
        await storage.initialize()      # optional, first access opens lazily

        await storage.set("sync_queue", b"[]")
        value = await storage.get("sync_queue")  # b"[]"
    """

    def __init__(self, db_path: str | Path, namespace: str = "") -> None:
        self._path = Path(db_path).expanduser()
        self._prefix = f"{namespace}/" if namespace else ""
        self._conn: aiosqlite.Connection | None = None

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        if self._conn is not None:
            return
        conn: aiosqlite.Connection | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(self._path))
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA synchronous=NORMAL")
            await conn.execute(_SCHEMA)
            await conn.commit()
        except Exception as e:
            if conn is not None:
                await conn.close()
            raise StorageError(f"Cannot open slot database {self._path}: {e}") from e
        self._conn = conn
        logger.debug(f"Slot database ready at {self._path}")

    async def _connection(self) -> aiosqlite.Connection:
        await self.initialize()
        return cast(aiosqlite.Connection, self._conn)

    async def get(self, key: str) -> bytes | None:
        conn = await self._connection()
        try:
            cursor = await conn.execute(
                "SELECT value FROM slots WHERE key = ?", (self._prefix + key,)
            )
            row = await cursor.fetchone()
            await cursor.close()
        except Exception as e:
            raise StorageError(f"Cannot read slot '{key}': {e}") from e
        return None if row is None else bytes(row[0])

    async def set(self, key: str, value: bytes) -> None:
        await self._write(key, _UPSERT, (self._prefix + key, value, time.time()))

    async def delete(self, key: str) -> bool:
        removed = await self._write(key, "DELETE FROM slots WHERE key = ?", (self._prefix + key,))
        return removed > 0

    async def _write(self, key: str, sql: str, params: tuple[Any, ...]) -> int:
        conn = await self._connection()
        try:
            cursor = await conn.execute(sql, params)
            await conn.commit()
        except Exception as e:
            raise StorageError(f"Cannot write slot '{key}': {e}") from e
        return cursor.rowcount

    async def close(self) -> None:
        conn, self._conn = self._conn, None
        if conn is not None:
            await conn.close()
