from datetime import datetime
from typing import List, Optional

import aiosqlite

from livemart.db import models
from livemart.db.database import connect
from livemart.utils.pure import from_ts, to_ts


async def push(
    conn: aiosqlite.Connection,
    uid: int,
    title: str,
    message: str,
    kind: str,
    order_id: Optional[str],
    when: datetime,
) -> None:
    """Queue a notification on an open connection; the caller commits."""
    await conn.execute(
        """
        INSERT INTO notifications(uid, title, message, kind, order_id, created_at, read)
        VALUES (?, ?, ?, ?, ?, ?, 0);
        """,
        (uid, title, message, kind, order_id, to_ts(when)),
    )


async def list_notifications(uid: int, unread_only: bool = False) -> List[models.Notification]:
    """Newest first."""
    query = """
        SELECT id, uid, title, message, kind, order_id, created_at, read
        FROM notifications
        WHERE uid = ?
    """
    if unread_only:
        query += " AND read = 0"
    query += " ORDER BY created_at DESC, id DESC;"
    async with connect() as conn:
        cur = await conn.execute(query, (uid,))
        rows = await cur.fetchall()
        await cur.close()
    return [
        models.Notification(
            id=int(row["id"]),
            uid=int(row["uid"]),
            title=row["title"],
            message=row["message"],
            kind=row["kind"],
            order_id=row["order_id"],
            created_at=from_ts(row["created_at"]),
            read=bool(row["read"]),
        )
        for row in rows
    ]


async def mark_all_read(uid: int) -> int:
    async with connect() as conn:
        res = await conn.execute(
            "UPDATE notifications SET read = 1 WHERE uid = ? AND read = 0;", (uid,)
        )
        await conn.commit()
        return res.rowcount
