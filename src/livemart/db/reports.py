from typing import Dict

from livemart.db.crud import get_user_role
from livemart.db.database import connect
from livemart.db.errors import NotFoundError, ValidationError


async def seller_stats(seller_id: int) -> Dict[str, float]:
    """
    Dashboard numbers for a retailer (customer orders) or a wholesaler
    (wholesale orders). Revenue counts finished orders only.
    """
    role = await get_user_role(seller_id)
    if role is None:
        raise NotFoundError(f"User {seller_id} not found.")
    if role == "retailer":
        table, owner_col, amount_col, done = "orders", "retailer_id", "total_amount", "delivered"
    elif role == "wholesaler":
        table, owner_col, amount_col, done = (
            "wholesale_orders",
            "wholesaler_id",
            "total_price",
            "completed",
        )
    else:
        raise ValidationError("Only sellers have a dashboard.")

    async with connect() as conn:
        cur = await conn.execute(
            "SELECT COUNT(*) FROM products WHERE owner_id = ?;", (seller_id,)
        )
        total_products = (await cur.fetchone())[0]
        await cur.close()

        cur = await conn.execute(
            f"""
            SELECT
                COUNT(*) AS total_orders,
                COALESCE(SUM(status = 'pending'), 0) AS pending_orders,
                COALESCE(SUM(status = ?), 0) AS completed_orders,
                COALESCE(SUM(CASE WHEN status = ? THEN {amount_col} END), 0.0) AS revenue
            FROM {table}
            WHERE {owner_col} = ?;
            """,
            (done, done, seller_id),
        )
        row = await cur.fetchone()
        await cur.close()

    return {
        "total_products": int(total_products),
        "total_orders": int(row["total_orders"] or 0),
        "pending_orders": int(row["pending_orders"] or 0),
        "completed_orders": int(row["completed_orders"] or 0),
        "revenue": float(row["revenue"] or 0.0),
    }
