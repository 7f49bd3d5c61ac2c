# manages connection to db, provides helper methods internal to db package
import asyncio
import os.path
import sqlite3
from contextlib import asynccontextmanager
from sqlite3 import Row

import aiosqlite

from livemart.db.errors import RemoteOperationError
from livemart.db.seed import load_seed
from livemart.utils import config
from livemart.utils.logger import get_logger

_logger = get_logger(__name__)

DB_PATH = config.DB_PATH
SCHEMA_SCRIPT = os.path.join(os.path.dirname(__file__), "schema.sql")

_initialized = False
_init_lock = asyncio.Lock()


async def _init_db(conn: aiosqlite.Connection) -> None:
    _logger.info(f"Initializing database with script {SCHEMA_SCRIPT}...")
    with open(SCHEMA_SCRIPT, "r") as f:
        await conn.executescript(f.read())
    await conn.commit()

    if config.LOAD_SEED_DATA:
        await load_seed(conn)
        await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect() -> aiosqlite.Connection:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Ensures the database is initialized (tables and seed data) on first use.
    Any sqlite error raised while the connection is open is re-raised as
    RemoteOperationError; errors of our own taxonomy pass through untouched.
    """
    global _initialized
    conn = None
    try:
        directory = os.path.dirname(DB_PATH)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = await aiosqlite.connect(DB_PATH)
        conn.row_factory = Row
        await conn.execute("PRAGMA foreign_keys = ON;")

        if not _initialized:
            async with _init_lock:
                if not _initialized:
                    exists = await _table_exists(conn, "users")
                    if not exists:
                        _logger.info("Initializing database...")
                        await _init_db(conn)
                    _initialized = True
    except (sqlite3.Error, OSError) as exc:
        _logger.error(f"Cannot open store at {DB_PATH}: {exc}")
        if conn is not None:
            await conn.close()
        raise RemoteOperationError(f"store unavailable: {exc}") from exc

    try:
        yield conn
    except sqlite3.Error as exc:
        _logger.error(f"Store operation failed: {exc}")
        raise RemoteOperationError(f"store rejected the operation: {exc}") from exc
    finally:
        await conn.close()


@asynccontextmanager
async def transaction() -> aiosqlite.Connection:
    """Connection inside ``BEGIN IMMEDIATE``; commits on success, rolls back on any error.

    IMMEDIATE takes the write lock up front, so concurrent writers queue on
    sqlite's busy timeout instead of interleaving their reads and writes.
    """
    async with connect() as conn:
        await conn.execute("BEGIN IMMEDIATE;")
        try:
            yield conn
        except BaseException:
            await conn.rollback()
            raise
        await conn.commit()
