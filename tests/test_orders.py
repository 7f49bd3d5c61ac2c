import asyncio
import unittest
from datetime import timedelta

from dbcase import T0, StoreTestCase

from livemart.db import crud, notifications, orders
from livemart.db.errors import (
    AccessDenied,
    ConcurrentUpdate,
    InvalidTransition,
    NotFoundError,
    OutOfStock,
    ValidationError,
)
from livemart.utils import config
from livemart.utils.cart import Cart, cart_key


class OrdersTestCase(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.customer = await self.make_user("customer")
        self.seller_a = await self.make_user("retailer")
        self.seller_b = await self.make_user("retailer")
        self.prod_a = await self.make_product(self.seller_a, "Rice", 100.0, 10)
        self.prod_b = await self.make_product(self.seller_b, "Tea", 50.0, 5)

    async def _place_one(self, qty: int = 1):
        cart = await self.make_cart(self.customer, (self.prod_a, qty))
        placed = await orders.checkout(cart, "12 Main St", when=T0)
        return placed[0]

    # ---------- Checkout ----------

    async def test_checkout_splits_cart_per_seller(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 2), (self.prod_b, 1))
        placed = await orders.checkout(cart, "12 Main St", "cod", when=T0)

        self.assertEqual(len(placed), 2)
        self.assertEqual(
            [(o.retailer_id, o.total_amount) for o in placed],
            [(self.seller_a, 200.0), (self.seller_b, 50.0)],
        )
        self.assertEqual(await self.stock_of(self.prod_a.id), 8)
        self.assertEqual(await self.stock_of(self.prod_b.id), 4)

        first = placed[0]
        self.assertEqual(first.status, "pending")
        self.assertEqual(first.version, 0)
        self.assertEqual(first.payment_method, "cod")
        self.assertEqual(first.delivery_address, "12 Main St")
        self.assertEqual(first.estimated_delivery, T0 + timedelta(days=3))
        self.assertEqual(first.checkout_id, placed[1].checkout_id)
        self.assertEqual(
            [(i.product_id, i.name, i.unit_price, i.quantity) for i in first.items],
            [(self.prod_a.id, "Rice", 100.0, 2)],
        )

        # The cart is gone, in memory and in the session cache
        self.assertTrue(cart.is_empty())
        self.assertIsNone(await self.cache.get(cart_key(self.customer)))
        self.assertTrue((await Cart.load(self.customer, self.cache)).is_empty())

    async def test_checkout_keeps_snapshot_price(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 1))
        # price changes after the item went into the cart
        await crud.update_product(self.prod_a.id, self.seller_a, new_price=150.0)
        placed = await orders.checkout(cart, "12 Main St", when=T0)
        self.assertEqual(placed[0].total_amount, 100.0)

    async def test_checkout_rejects_bad_input_without_side_effects(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 2))
        for address, method in (("", "online"), ("   ", "online"), ("Addr", "cheque")):
            with self.assertRaises(ValidationError):
                await orders.checkout(cart, address, method, when=T0)

        self.assertEqual(cart.item_count(), 2)
        self.assertEqual((await Cart.load(self.customer, self.cache)).item_count(), 2)
        self.assertEqual(await self.stock_of(self.prod_a.id), 10)
        self.assertEqual((await orders.list_customer_orders(self.customer))[1], 0)

        with self.assertRaises(ValidationError):
            await orders.checkout(Cart(uid=self.customer, cache=self.cache), "Addr", when=T0)

    async def test_out_of_stock_in_later_group_rolls_back_everything(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 2), (self.prod_b, 6))
        with self.assertRaises(OutOfStock) as ctx:
            await orders.checkout(cart, "12 Main St", when=T0)

        self.assertEqual(
            (ctx.exception.product_id, ctx.exception.requested, ctx.exception.available),
            (self.prod_b.id, 6, 5),
        )
        self.assertEqual(await self.stock_of(self.prod_a.id), 10)
        self.assertEqual(await self.stock_of(self.prod_b.id), 5)
        self.assertEqual((await orders.list_customer_orders(self.customer))[1], 0)
        self.assertEqual(await notifications.list_notifications(self.seller_a), [])
        # cart is kept so the customer can fix it
        self.assertEqual(cart.item_count(), 8)

    async def test_deleted_product_fails_checkout(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 1))
        await crud.delete_product(self.prod_a.id, self.seller_a)
        with self.assertRaises(NotFoundError):
            await orders.checkout(cart, "12 Main St", when=T0)

    async def test_last_unit_goes_to_exactly_one_buyer(self):
        last = await self.make_product(self.seller_a, "Lamp", 30.0, 1)
        other = await self.make_user("customer")
        cart1 = await self.make_cart(self.customer, (last, 1))
        cart2 = await self.make_cart(other, (last, 1))

        results = await asyncio.gather(
            orders.checkout(cart1, "Addr 1", when=T0),
            orders.checkout(cart2, "Addr 2", when=T0),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, Exception)]
        successes = [r for r in results if not isinstance(r, Exception)]
        self.assertEqual(len(successes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], OutOfStock)
        self.assertEqual(await self.stock_of(last.id), 0)

    async def test_checkout_retry_with_same_id_is_idempotent(self):
        cart = await self.make_cart(self.customer, (self.prod_a, 2), (self.prod_b, 1))
        first = await orders.checkout(cart, "12 Main St", when=T0, checkout_id="attempt-1")

        again = await self.make_cart(self.customer, (self.prod_a, 2), (self.prod_b, 1))
        second = await orders.checkout(again, "12 Main St", when=T0, checkout_id="attempt-1")

        self.assertEqual([o.id for o in first], [o.id for o in second])
        self.assertEqual(await self.stock_of(self.prod_a.id), 8)
        self.assertEqual(await self.stock_of(self.prod_b.id), 4)
        self.assertEqual(len(await orders.list_checkout_orders("attempt-1")), 2)

    async def test_checkout_id_of_another_customer_is_rejected(self):
        first = await orders.checkout(
            await self.make_cart(self.customer, (self.prod_a, 1)), "12 Main St", checkout_id="k"
        )
        other = await self.make_user("customer")
        cart = await self.make_cart(other, (self.prod_a, 5))
        with self.assertRaises(ValidationError):
            await orders.checkout(cart, "9 Side St", checkout_id="k")

        reloaded = await Cart.load(other, self.cache)
        self.assertEqual(reloaded.item_count(), 5)
        self.assertEqual(await self.stock_of(self.prod_a.id), 9)
        self.assertEqual([o.id for o in await orders.list_checkout_orders("k")], [first[0].id])
        self.assertEqual(await orders.list_customer_orders(other), ([], 0))

    async def test_checkout_id_reused_for_different_cart_is_rejected(self):
        await orders.checkout(
            await self.make_cart(self.customer, (self.prod_a, 1)), "12 Main St", checkout_id="k"
        )
        for lines in [((self.prod_a, 3),), ((self.prod_b, 1),), ((self.prod_a, 1), (self.prod_b, 1))]:
            cart = await self.make_cart(self.customer, *lines)
            with self.assertRaises(ValidationError):
                await orders.checkout(cart, "12 Main St", checkout_id="k")
            self.assertFalse((await Cart.load(self.customer, self.cache)).is_empty())

        self.assertEqual(await self.stock_of(self.prod_a.id), 9)
        self.assertEqual(await self.stock_of(self.prod_b.id), 5)
        self.assertEqual(len(await orders.list_checkout_orders("k")), 1)

    async def test_seller_is_notified_of_new_order(self):
        order = await self._place_one(qty=3)
        notes = await notifications.list_notifications(self.seller_a)
        self.assertEqual(len(notes), 1)
        self.assertEqual(notes[0].title, "New Order Received")
        self.assertEqual(notes[0].kind, "order_received")
        self.assertEqual(notes[0].order_id, order.id)
        self.assertIn("Rice x3", notes[0].message)

    # ---------- Listing ----------

    async def test_list_orders_newest_first_with_paging(self):
        ids = []
        for day in range(3):
            cart = await self.make_cart(self.customer, (self.prod_a, 1))
            placed = await orders.checkout(cart, "Addr", when=T0 + timedelta(days=day))
            ids.append(placed[0].id)

        page1, total = await orders.list_customer_orders(self.customer, page=1, page_size=2)
        page2, _ = await orders.list_customer_orders(self.customer, page=2, page_size=2)
        self.assertEqual(total, 3)
        self.assertEqual([o.id for o in page1 + page2], ids[::-1])

        received, total = await orders.list_retailer_orders(self.seller_a)
        self.assertEqual(total, 3)
        self.assertEqual((await orders.list_retailer_orders(self.seller_b))[1], 0)

        pending, total = await orders.list_customer_orders(self.customer, status="shipped")
        self.assertEqual((pending, total), ([], 0))

    # ---------- Status machine ----------

    async def test_forward_transitions_and_customer_updates(self):
        order = await self._place_one()
        accepted = await orders.accept(order.id, self.seller_a)
        self.assertEqual((accepted.status, accepted.version), ("processing", 1))
        shipped = await orders.ship(order.id, self.seller_a)
        delivered = await orders.deliver(order.id, self.seller_a, expected_version=shipped.version)
        self.assertEqual((delivered.status, delivered.version), ("delivered", 3))
        self.assertEqual((await orders.get_order(order.id)).status, "delivered")

        notes = await notifications.list_notifications(self.customer)
        self.assertEqual(len(notes), 3)
        self.assertTrue(all(n.title == "Order Status Update" for n in notes))
        shipped_note = [n for n in notes if "to shipped" in n.message][0]
        self.assertIn("Expected delivery: " + str((T0 + timedelta(days=3)).date()), shipped_note.message)

        with self.assertRaises(InvalidTransition):
            await orders.deliver(order.id, self.seller_a)

    async def test_skipping_a_step_is_rejected(self):
        order = await self._place_one()
        with self.assertRaises(InvalidTransition) as ctx:
            await orders.ship(order.id, self.seller_a)
        self.assertEqual((ctx.exception.current, ctx.exception.requested), ("pending", "ship"))
        self.assertEqual((await orders.get_order(order.id)).status, "pending")

    async def test_transition_checks(self):
        order = await self._place_one()
        with self.assertRaises(AccessDenied):
            await orders.accept(order.id, self.seller_b)
        with self.assertRaises(AccessDenied):
            await orders.accept(order.id, self.customer)
        with self.assertRaises(NotFoundError):
            await orders.accept("ORD-MISSING", self.seller_a)
        with self.assertRaises(ValidationError):
            await orders.advance(order.id, self.seller_a, "teleport")

    async def test_stale_version_loses(self):
        order = await self._place_one()
        await orders.accept(order.id, self.seller_a)
        with self.assertRaises(ConcurrentUpdate):
            await orders.ship(order.id, self.seller_a, expected_version=order.version)
        self.assertEqual((await orders.get_order(order.id)).status, "processing")

    async def test_swap_status_is_compare_and_swap(self):
        order = await self._place_one()
        await orders.accept(order.id, self.seller_a)
        # a writer still holding the pending copy
        with self.assertRaises(ConcurrentUpdate):
            await orders._swap_status(order, "processing", T0)

    def test_next_action(self):
        self.assertEqual(orders.next_action("pending"), "accept")
        self.assertEqual(orders.next_action("processing"), "ship")
        self.assertEqual(orders.next_action("shipped"), "deliver")
        self.assertIsNone(orders.next_action("delivered"))
        self.assertIsNone(orders.next_action("cancelled"))

    async def test_tracking_steps(self):
        order = await self._place_one()
        shipped = await orders.ship(
            order.id, self.seller_a, (await orders.accept(order.id, self.seller_a)).version
        )
        self.assertEqual(
            orders.tracking_steps(shipped),
            [
                ("pending", True, False),
                ("processing", True, False),
                ("shipped", True, True),
                ("delivered", False, False),
            ],
        )

    # ---------- Cancellation ----------

    async def test_cancel_disabled_by_default(self):
        order = await self._place_one()
        with self.assertRaises(InvalidTransition):
            await orders.cancel(order.id, self.customer)
        self.assertEqual((await orders.get_order(order.id)).status, "pending")

    async def test_cancel_keep_stock(self):
        config.CANCEL_POLICY = "keep_stock"
        order = await self._place_one(qty=2)
        cancelled = await orders.cancel(order.id, self.customer)
        self.assertEqual(cancelled.status, "cancelled")
        self.assertEqual(await self.stock_of(self.prod_a.id), 8)
        self.assertTrue(all(not reached for _, reached, _ in orders.tracking_steps(cancelled)))
        with self.assertRaises(InvalidTransition):
            await orders.accept(order.id, self.seller_a)

    async def test_cancel_restore_stock(self):
        order = await self._place_one(qty=2)
        await orders.accept(order.id, self.seller_a)
        cancelled = await orders.cancel(order.id, self.seller_a, policy="restore_stock")
        self.assertEqual(cancelled.status, "cancelled")
        self.assertEqual(await self.stock_of(self.prod_a.id), 10)

    async def test_cancel_rules(self):
        config.CANCEL_POLICY = "restore_stock"
        order = await self._place_one()
        with self.assertRaises(AccessDenied):
            await orders.cancel(order.id, self.seller_b)
        with self.assertRaises(ValidationError):
            await orders.cancel(order.id, self.customer, policy="refund_everything")

        await orders.ship(order.id, self.seller_a, (await orders.accept(order.id, self.seller_a)).version)
        with self.assertRaises(InvalidTransition):
            await orders.cancel(order.id, self.customer)
        self.assertEqual(await self.stock_of(self.prod_a.id), 9)


if __name__ == "__main__":
    unittest.main()
