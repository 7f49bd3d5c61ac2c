from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Tuple

from livemart.db import crud, models, orders
from livemart.db.database import connect, transaction
from livemart.db.errors import AccessDenied, ValidationError
from livemart.utils import config
from livemart.utils.logger import get_logger
from livemart.utils.pure import from_ts, to_ts

_logger = get_logger(__name__)

# average_rating's answer when nothing has been rated; check the count to tell it apart
NO_RATING = 0.0


def _row_to_feedback(row) -> models.Feedback:
    return models.Feedback(
        id=int(row["id"]),
        order_id=row["order_id"],
        customer_id=int(row["customer_id"]),
        rating=int(row["rating"]),
        comment=row["comment"],
        created_at=from_ts(row["created_at"]),
    )


async def submit(
    order_id: str,
    customer_id: int,
    rating: int,
    comment: str,
    when: Optional[datetime] = None,
) -> models.Feedback:
    """
    Record a rating for a delivered order of this customer.
    With config.FEEDBACK_ONE_PER_ORDER set, a second submission for the same
    order is rejected.
    """
    if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
        raise ValidationError("Rating must be a whole number from 1 to 5.")
    comment = (comment or "").strip()
    if not comment:
        raise ValidationError("Please write a comment.")

    order = await orders.require_order(order_id)
    if order.customer_id != customer_id:
        raise AccessDenied(f"Order {order_id} belongs to another customer.")
    if order.status != "delivered":
        raise ValidationError("Feedback opens once the order is delivered.")

    when = when or datetime.now()
    async with transaction() as conn:
        if config.FEEDBACK_ONE_PER_ORDER:
            cur = await conn.execute(
                "SELECT 1 FROM feedback WHERE order_id = ? LIMIT 1;", (order_id,)
            )
            seen = await cur.fetchone()
            await cur.close()
            if seen:
                raise ValidationError("Feedback was already submitted for this order.")
        cur = await conn.execute(
            """
            INSERT INTO feedback(order_id, customer_id, rating, comment, created_at)
            VALUES (?, ?, ?, ?, ?);
            """,
            (order_id, customer_id, rating, comment, to_ts(when)),
        )
        fid = cur.lastrowid
        await cur.close()

    _logger.info(f"Customer {customer_id} rated order {order_id}: {rating}/5.")
    return models.Feedback(
        id=fid,
        order_id=order_id,
        customer_id=customer_id,
        rating=rating,
        comment=comment,
        created_at=when,
    )


async def rating_summary(product_id: int) -> Tuple[float, int]:
    """
    (average, count) over feedback on orders containing the product.
    The average is rounded half up to one decimal; with count 0 it is NO_RATING.
    Raises NotFoundError for an unknown product.
    """
    await crud.require_product(product_id)
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT AVG(f.rating), COUNT(f.id)
            FROM feedback f
            WHERE f.order_id IN (
                SELECT DISTINCT order_id FROM order_items WHERE product_id = ?
            );
            """,
            (product_id,),
        )
        row = await cur.fetchone()
        await cur.close()
    count = int(row[1] or 0)
    if not count:
        return NO_RATING, 0
    average = Decimal(str(row[0])).quantize(Decimal("0.1"), ROUND_HALF_UP)
    return float(average), count


async def average_rating(product_id: int) -> float:
    average, _ = await rating_summary(product_id)
    return average


async def list_product_feedback(product_id: int) -> List[models.Feedback]:
    """Newest first."""
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT id, order_id, customer_id, rating, comment, created_at
            FROM feedback
            WHERE order_id IN (
                SELECT DISTINCT order_id FROM order_items WHERE product_id = ?
            )
            ORDER BY created_at DESC, id DESC;
            """,
            (product_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_feedback(row) for row in rows]


async def list_order_feedback(order_id: str) -> List[models.Feedback]:
    async with connect() as conn:
        cur = await conn.execute(
            """
            SELECT id, order_id, customer_id, rating, comment, created_at
            FROM feedback WHERE order_id = ? ORDER BY id;
            """,
            (order_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_feedback(row) for row in rows]
