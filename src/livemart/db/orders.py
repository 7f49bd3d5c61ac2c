"""
Order workflow: multi-seller checkout and the forward-only status machine.

Checkout turns a cart into one order per seller. Everything one checkout
writes (orders, order items, stock decrements, seller notifications) goes
through a single ``BEGIN IMMEDIATE`` transaction, so a failure part way
through leaves nothing behind. A stock decrement only applies while
``stock >= qty``; otherwise the whole checkout fails with OutOfStock.

Status writes are compare-and-swap on (status, version): a writer that read
an older version loses with ConcurrentUpdate instead of overwriting.
"""

from __future__ import annotations

import dataclasses
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import aiosqlite

from livemart.db import models, notifications
from livemart.db.database import connect, transaction
from livemart.db.errors import (
    AccessDenied,
    ConcurrentUpdate,
    InvalidTransition,
    NotFoundError,
    OutOfStock,
    ValidationError,
)
from livemart.utils import config
from livemart.utils.cart import Cart
from livemart.utils.logger import get_logger
from livemart.utils.pure import format_money, from_ts, money, new_record_id, to_ts

_logger = get_logger(__name__)

_ORDER_COLUMNS = """
    id, customer_id, retailer_id, total_amount, delivery_address, payment_method,
    status, created_at, estimated_delivery, checkout_id, version
"""


# ---------------------------
# Reading orders
# ---------------------------


async def _fetch_orders(
    conn: aiosqlite.Connection, where: str, params: Sequence, suffix: str = ""
) -> List[models.Order]:
    cur = await conn.execute(
        f"SELECT {_ORDER_COLUMNS} FROM orders WHERE {where} {suffix};", tuple(params)
    )
    rows = await cur.fetchall()
    await cur.close()
    if not rows:
        return []

    ids = [row["id"] for row in rows]
    marks = ", ".join("?" for _ in ids)
    cur = await conn.execute(
        f"""
        SELECT order_id, product_id, name, unit_price, quantity
        FROM order_items
        WHERE order_id IN ({marks})
        ORDER BY order_id, line_no;
        """,
        tuple(ids),
    )
    item_rows = await cur.fetchall()
    await cur.close()

    items: Dict[str, List[models.OrderItem]] = {oid: [] for oid in ids}
    for row in item_rows:
        items[row["order_id"]].append(
            models.OrderItem(
                product_id=int(row["product_id"]),
                name=row["name"],
                unit_price=float(row["unit_price"]),
                quantity=int(row["quantity"]),
            )
        )

    return [
        models.Order(
            id=row["id"],
            customer_id=int(row["customer_id"]),
            retailer_id=int(row["retailer_id"]),
            items=tuple(items[row["id"]]),
            total_amount=float(row["total_amount"]),
            delivery_address=row["delivery_address"],
            payment_method=row["payment_method"],
            status=row["status"],
            created_at=from_ts(row["created_at"]),
            estimated_delivery=from_ts(row["estimated_delivery"]),
            checkout_id=row["checkout_id"],
            version=int(row["version"]),
        )
        for row in rows
    ]


async def get_order(order_id: str) -> Optional[models.Order]:
    async with connect() as conn:
        found = await _fetch_orders(conn, "id = ?", (order_id,))
    return found[0] if found else None


async def require_order(order_id: str) -> models.Order:
    order = await get_order(order_id)
    if order is None:
        raise NotFoundError(f"Order {order_id} not found.")
    return order


async def _list_paged(
    column: str, uid: int, status: Optional[str], page: int, page_size: int
) -> Tuple[List[models.Order], int]:
    where = f"{column} = ?"
    params: List = [uid]
    if status:
        where += " AND status = ?"
        params.append(status)
    async with connect() as conn:
        cur = await conn.execute(f"SELECT COUNT(*) FROM orders WHERE {where};", tuple(params))
        total = (await cur.fetchone())[0]
        await cur.close()
        offset = max(page - 1, 0) * page_size
        orders = await _fetch_orders(
            conn,
            where,
            params + [page_size, offset],
            "ORDER BY created_at DESC, id LIMIT ? OFFSET ?",
        )
    return orders, total


async def list_customer_orders(
    customer_id: int, status: Optional[str] = None, page: int = 1, page_size: int = 5
) -> Tuple[List[models.Order], int]:
    """
    A customer's orders in reverse chronological order, paginated.
    Return (orders_for_page, total_count).
    """
    return await _list_paged("customer_id", customer_id, status, page, page_size)


async def list_retailer_orders(
    retailer_id: int, status: Optional[str] = None, page: int = 1, page_size: int = 5
) -> Tuple[List[models.Order], int]:
    """Orders a retailer has received, newest first; same paging as customers."""
    return await _list_paged("retailer_id", retailer_id, status, page, page_size)


async def list_checkout_orders(checkout_id: str) -> List[models.Order]:
    async with connect() as conn:
        return await _fetch_orders(conn, "checkout_id = ?", (checkout_id,), "ORDER BY rowid")


# ---------------------------
# Checkout
# ---------------------------


async def _decrement_stock(conn: aiosqlite.Connection, pid: int, qty: int) -> None:
    res = await conn.execute(
        "UPDATE products SET stock = stock - ? WHERE id = ? AND stock >= ?;",
        (qty, pid, qty),
    )
    if res.rowcount:
        return
    cur = await conn.execute("SELECT stock FROM products WHERE id = ?;", (pid,))
    row = await cur.fetchone()
    await cur.close()
    if row is None:
        raise NotFoundError(f"Product {pid} not found.")
    raise OutOfStock(pid, qty, int(row[0]))


async def _existing_group_order(
    conn: aiosqlite.Connection,
    checkout_id: str,
    seller_id: int,
    lines: List[models.CartLine],
) -> Optional[str]:
    """
    Order an earlier attempt of this checkout placed with the seller, if any.
    Its lines must match the cart group being retried.
    """
    cur = await conn.execute(
        "SELECT id FROM orders WHERE checkout_id = ? AND retailer_id = ?;",
        (checkout_id, seller_id),
    )
    row = await cur.fetchone()
    await cur.close()
    if row is None:
        return None
    order_id = row["id"]

    cur = await conn.execute(
        "SELECT product_id, quantity FROM order_items WHERE order_id = ? ORDER BY line_no;",
        (order_id,),
    )
    placed = [(int(r["product_id"]), int(r["quantity"])) for r in await cur.fetchall()]
    await cur.close()
    if placed != [(line.product_id, line.quantity) for line in lines]:
        raise ValidationError(f"Checkout {checkout_id} was placed for a different cart.")
    return order_id


async def _earlier_attempt(
    conn: aiosqlite.Connection, checkout_id: str
) -> Optional[Tuple[int, int]]:
    """(customer_id, order count) of a checkout already placed under this id."""
    cur = await conn.execute(
        "SELECT MIN(customer_id), COUNT(*) FROM orders WHERE checkout_id = ?;",
        (checkout_id,),
    )
    row = await cur.fetchone()
    await cur.close()
    if not row[1]:
        return None
    return int(row[0]), int(row[1])


async def _create_group_order(
    conn: aiosqlite.Connection,
    customer_id: int,
    seller_id: int,
    lines: List[models.CartLine],
    address: str,
    payment_method: str,
    when: datetime,
    checkout_id: str,
) -> str:
    order_id = new_record_id("ORD")
    total = money(sum(line.subtotal for line in lines))
    eta = when + timedelta(days=config.DELIVERY_DAYS)
    await conn.execute(
        f"""
        INSERT INTO orders({_ORDER_COLUMNS})
        VALUES (?, ?, ?, ?, ?, ?, 'pending', ?, ?, ?, 0);
        """,
        (
            order_id,
            customer_id,
            seller_id,
            total,
            address,
            payment_method,
            to_ts(when),
            to_ts(eta),
            checkout_id,
        ),
    )

    for line_no, line in enumerate(lines, start=1):
        await _decrement_stock(conn, line.product_id, line.quantity)
        await conn.execute(
            """
            INSERT INTO order_items(order_id, line_no, product_id, name, unit_price, quantity)
            VALUES (?, ?, ?, ?, ?, ?);
            """,
            (order_id, line_no, line.product_id, line.name, line.unit_price, line.quantity),
        )

    summary = ", ".join(f"{line.name} x{line.quantity}" for line in lines)
    await notifications.push(
        conn,
        seller_id,
        "New Order Received",
        f"Order #{order_id}: {summary}. Amount: {format_money(total)}. "
        f"Requested delivery: {eta.date()}.",
        "order_received",
        order_id,
        when,
    )
    return order_id


async def checkout(
    cart: Cart,
    delivery_address: str,
    payment_method: str = "online",
    when: Optional[datetime] = None,
    checkout_id: Optional[str] = None,
) -> List[models.Order]:
    """
    Place one order per seller in the cart, decrement stock and clear the cart.

    Returns the created orders in the order their sellers first appear in the
    cart. Passing the checkout_id of an earlier attempt returns that attempt's
    orders without writing anything new. Reusing an id for another customer or
    a different cart raises ValidationError and keeps the cart.

    Raises ValidationError (nothing written), OutOfStock or NotFoundError
    (transaction rolled back, cart kept) or RemoteOperationError.
    """
    address = (delivery_address or "").strip()
    if cart.is_empty():
        raise ValidationError("Cart is empty.")
    if not address:
        raise ValidationError("Delivery address is required.")
    if payment_method not in models.PAYMENT_METHODS:
        raise ValidationError(f"Unknown payment method '{payment_method}'.")

    when = when or datetime.now()
    checkout_id = checkout_id or uuid.uuid4().hex
    order_ids: List[str] = []

    try:
        async with transaction() as conn:
            groups = cart.groups()
            earlier = await _earlier_attempt(conn, checkout_id)
            if earlier is not None:
                owner, placed_count = earlier
                if owner != cart.uid:
                    raise ValidationError(f"Checkout {checkout_id} belongs to another customer.")
                if placed_count != len(groups):
                    raise ValidationError(
                        f"Checkout {checkout_id} was placed for a different cart."
                    )
            for seller_id, lines in groups.items():
                existing = await _existing_group_order(
                    conn, checkout_id, seller_id, lines
                )
                if earlier is not None and not existing:
                    raise ValidationError(
                        f"Checkout {checkout_id} was placed for a different cart."
                    )
                if existing:
                    _logger.info(f"Checkout {checkout_id}: reusing order {existing}.")
                    order_ids.append(existing)
                    continue
                order_ids.append(
                    await _create_group_order(
                        conn,
                        cart.uid,
                        seller_id,
                        lines,
                        address,
                        payment_method,
                        when,
                        checkout_id,
                    )
                )
    except (OutOfStock, NotFoundError, ValidationError) as exc:
        _logger.warning(f"Checkout {checkout_id} for customer {cart.uid} rejected: {exc}")
        raise

    await cart.clear()
    _logger.info(
        f"Checkout {checkout_id}: customer {cart.uid} placed {len(order_ids)} order(s)."
    )

    placed = {o.id: o for o in await list_checkout_orders(checkout_id)}
    return [placed[oid] for oid in order_ids]


# ---------------------------
# Status transitions
# ---------------------------


async def _swap_status(
    order: models.Order,
    new_status: str,
    when: datetime,
    restore_stock: bool = False,
) -> models.Order:
    async with transaction() as conn:
        res = await conn.execute(
            """
            UPDATE orders
            SET status = ?, version = version + 1
            WHERE id = ? AND status = ? AND version = ?;
            """,
            (new_status, order.id, order.status, order.version),
        )
        if res.rowcount == 0:
            raise ConcurrentUpdate(
                f"Order {order.id} changed since it was read (was '{order.status}' v{order.version})."
            )

        if restore_stock:
            for item in order.items:
                restored = await conn.execute(
                    "UPDATE products SET stock = stock + ? WHERE id = ?;",
                    (item.quantity, item.product_id),
                )
                if not restored.rowcount:
                    _logger.warning(
                        f"Order {order.id}: product {item.product_id} no longer listed, stock not restored."
                    )

        message = (
            f"Your order #{order.id} status has been updated from "
            f"{order.status} to {new_status}."
        )
        if new_status == "shipped":
            message += f" Expected delivery: {order.estimated_delivery.date()}"
        await notifications.push(
            conn,
            order.customer_id,
            "Order Status Update",
            message,
            "order_update",
            order.id,
            when,
        )

    _logger.info(f"Order {order.id}: {order.status} -> {new_status}.")
    return dataclasses.replace(order, status=new_status, version=order.version + 1)


def next_action(status: str) -> Optional[str]:
    """The action that moves an order on from status, None at the end of the flow."""
    for action, (src, _) in models.ORDER_ACTIONS.items():
        if src == status:
            return action
    return None


async def advance(
    order_id: str,
    actor_id: int,
    action: str,
    expected_version: Optional[int] = None,
    when: Optional[datetime] = None,
) -> models.Order:
    """
    Apply accept / ship / deliver on behalf of the order's retailer.

    expected_version lets a caller holding an older copy of the order fail
    with ConcurrentUpdate rather than act on what it has not seen.
    """
    if action not in models.ORDER_ACTIONS:
        raise ValidationError(f"Unknown order action '{action}'.")
    src, dst = models.ORDER_ACTIONS[action]

    order = await require_order(order_id)
    if order.retailer_id != actor_id:
        raise AccessDenied(f"Order {order_id} belongs to another retailer.")
    if expected_version is not None and expected_version != order.version:
        raise ConcurrentUpdate(
            f"Order {order_id} is at v{order.version}, caller expected v{expected_version}."
        )
    if order.status != src:
        raise InvalidTransition(order_id, order.status, action)

    return await _swap_status(order, dst, when or datetime.now())


async def accept(order_id: str, actor_id: int, expected_version: Optional[int] = None) -> models.Order:
    return await advance(order_id, actor_id, "accept", expected_version)


async def ship(order_id: str, actor_id: int, expected_version: Optional[int] = None) -> models.Order:
    return await advance(order_id, actor_id, "ship", expected_version)


async def deliver(order_id: str, actor_id: int, expected_version: Optional[int] = None) -> models.Order:
    return await advance(order_id, actor_id, "deliver", expected_version)


async def cancel(
    order_id: str,
    actor_id: int,
    policy: Optional[str] = None,
    when: Optional[datetime] = None,
) -> models.Order:
    """
    Cancel a pending or processing order, by its customer or its retailer.

    The policy (config.CANCEL_POLICY when not given) decides whether this is
    possible at all and whether the decremented stock is put back.
    """
    policy = policy or config.CANCEL_POLICY
    if policy not in config.CANCEL_POLICIES:
        raise ValidationError(f"Unknown cancellation policy '{policy}'.")

    order = await require_order(order_id)
    if actor_id not in (order.customer_id, order.retailer_id):
        raise AccessDenied(f"Order {order_id} is not yours to cancel.")
    if policy == "disabled" or order.status not in models.CANCELLABLE_STATUSES:
        raise InvalidTransition(order_id, order.status, "cancel")

    cancelled = await _swap_status(
        order,
        models.ORDER_CANCELLED,
        when or datetime.now(),
        restore_stock=policy == "restore_stock",
    )
    _logger.info(f"Order {order_id} cancelled by {actor_id} under '{policy}'.")
    return cancelled


def tracking_steps(order: models.Order) -> List[Tuple[str, bool, bool]]:
    """
    (status, reached, current) for each step of the forward flow.
    A cancelled order has reached nothing.
    """
    if order.status == models.ORDER_CANCELLED:
        return [(status, False, False) for status in models.ORDER_FLOW]
    reached_idx = models.ORDER_FLOW.index(order.status)
    return [
        (status, idx <= reached_idx, idx == reached_idx)
        for idx, status in enumerate(models.ORDER_FLOW)
    ]
