# retailer -> wholesaler bulk orders
# pending -> processing -> completed; wholesaler stock is not touched by these orders
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import List, Optional

from livemart.db import crud, models, notifications
from livemart.db.database import connect, transaction
from livemart.db.errors import (
    AccessDenied,
    ConcurrentUpdate,
    InvalidTransition,
    NotFoundError,
    ValidationError,
)
from livemart.utils.logger import get_logger
from livemart.utils.pure import format_money, from_ts, money, new_record_id, to_ts

_logger = get_logger(__name__)

_COLUMNS = """
    id, product_id, product_name, quantity, wholesaler_id, retailer_id,
    status, total_price, created_at, version
"""


def _row_to_order(row) -> models.WholesaleOrder:
    return models.WholesaleOrder(
        id=row["id"],
        product_id=int(row["product_id"]),
        product_name=row["product_name"],
        quantity=int(row["quantity"]),
        wholesaler_id=int(row["wholesaler_id"]),
        retailer_id=int(row["retailer_id"]),
        status=row["status"],
        total_price=float(row["total_price"]),
        created_at=from_ts(row["created_at"]),
        version=int(row["version"]),
    )


async def place_order(
    retailer_id: int, product_id: int, quantity: int, when: Optional[datetime] = None
) -> models.WholesaleOrder:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("Quantity must be a positive whole number.")

    if await crud.get_user_role(retailer_id) != "retailer":
        raise AccessDenied("Only retailers can place wholesale orders.")
    product = await crud.require_product(product_id)
    if await crud.get_user_role(product.owner_id) != "wholesaler":
        raise ValidationError(f"Product {product_id} is not sold by a wholesaler.")

    when = when or datetime.now()
    order = models.WholesaleOrder(
        id=new_record_id("B2B"),
        product_id=product.id,
        product_name=product.name,
        quantity=quantity,
        wholesaler_id=product.owner_id,
        retailer_id=retailer_id,
        status="pending",
        total_price=money(product.price * quantity),
        created_at=when,
        version=0,
    )
    async with transaction() as conn:
        await conn.execute(
            f"INSERT INTO wholesale_orders({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);",
            (
                order.id,
                order.product_id,
                order.product_name,
                order.quantity,
                order.wholesaler_id,
                order.retailer_id,
                order.status,
                order.total_price,
                to_ts(order.created_at),
                order.version,
            ),
        )
        await notifications.push(
            conn,
            order.wholesaler_id,
            "New B2B Order",
            f"B2B Order #{order.id}: retailer {retailer_id} ordered {order.product_name} "
            f"(Qty: {quantity}). Total: {format_money(order.total_price)}.",
            "order_received",
            order.id,
            when,
        )
    _logger.info(f"Retailer {retailer_id} placed wholesale order {order.id}.")
    return order


async def get_order(order_id: str) -> Optional[models.WholesaleOrder]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_COLUMNS} FROM wholesale_orders WHERE id = ?;", (order_id,)
        )
        row = await cur.fetchone()
        await cur.close()
    return _row_to_order(row) if row else None


async def _list_by(column: str, uid: int) -> List[models.WholesaleOrder]:
    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT {_COLUMNS} FROM wholesale_orders
            WHERE {column} = ?
            ORDER BY created_at DESC, id;
            """,
            (uid,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_order(row) for row in rows]


async def list_retailer_orders(retailer_id: int) -> List[models.WholesaleOrder]:
    return await _list_by("retailer_id", retailer_id)


async def list_wholesaler_orders(wholesaler_id: int) -> List[models.WholesaleOrder]:
    return await _list_by("wholesaler_id", wholesaler_id)


async def advance(
    order_id: str, actor_id: int, action: str, when: Optional[datetime] = None
) -> models.WholesaleOrder:
    if action not in models.WHOLESALE_ACTIONS:
        raise ValidationError(f"Unknown wholesale action '{action}'.")
    src, dst = models.WHOLESALE_ACTIONS[action]

    order = await get_order(order_id)
    if order is None:
        raise NotFoundError(f"Wholesale order {order_id} not found.")
    if order.wholesaler_id != actor_id:
        raise AccessDenied(f"Wholesale order {order_id} belongs to another wholesaler.")
    if order.status != src:
        raise InvalidTransition(order_id, order.status, action)

    when = when or datetime.now()
    async with transaction() as conn:
        res = await conn.execute(
            """
            UPDATE wholesale_orders
            SET status = ?, version = version + 1
            WHERE id = ? AND status = ? AND version = ?;
            """,
            (dst, order.id, order.status, order.version),
        )
        if res.rowcount == 0:
            raise ConcurrentUpdate(f"Wholesale order {order_id} changed since it was read.")
        await notifications.push(
            conn,
            order.retailer_id,
            "B2B Order Update",
            f"Your B2B order #{order.id} moved from {order.status} to {dst}.",
            "order_update",
            order.id,
            when,
        )

    _logger.info(f"Wholesale order {order_id}: {order.status} -> {dst}.")
    return dataclasses.replace(order, status=dst, version=order.version + 1)


async def process(order_id: str, actor_id: int) -> models.WholesaleOrder:
    return await advance(order_id, actor_id, "process")


async def complete(order_id: str, actor_id: int) -> models.WholesaleOrder:
    return await advance(order_id, actor_id, "complete")
