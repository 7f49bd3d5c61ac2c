# device-local key-value cache, kept apart from the system of record
import os.path
from typing import Optional

import aiosqlite

from livemart.utils.logger import get_logger

_logger = get_logger(__name__)


class SessionCache:
    """
    Byte values keyed by string, stored in a local sqlite file.

    Nothing here is shared with other devices: losing the file loses whatever
    was cached (the cart, in practice).
    """

    def __init__(self, path: str) -> None:
        self.path = path
        self._ready = False

    async def _connect(self) -> aiosqlite.Connection:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = await aiosqlite.connect(self.path)
        if not self._ready:
            await conn.execute(
                "CREATE TABLE IF NOT EXISTS kv (key TEXT PRIMARY KEY, value BLOB NOT NULL);"
            )
            await conn.commit()
            self._ready = True
        return conn

    async def get(self, key: str) -> Optional[bytes]:
        conn = await self._connect()
        try:
            cur = await conn.execute("SELECT value FROM kv WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
        finally:
            await conn.close()
        return bytes(row[0]) if row else None

    async def set(self, key: str, value: bytes) -> None:
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO kv(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value;
                """,
                (key, value),
            )
            await conn.commit()
        finally:
            await conn.close()
        _logger.debug(f"Cached {len(value)} bytes under '{key}'.")

    async def remove(self, key: str) -> None:
        conn = await self._connect()
        try:
            await conn.execute("DELETE FROM kv WHERE key = ?;", (key,))
            await conn.commit()
        finally:
            await conn.close()
