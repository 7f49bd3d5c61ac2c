import unittest
from datetime import timedelta

from dbcase import T0, StoreTestCase

from livemart.db import notifications, orders, reports
from livemart.utils import config


class ReportsTestCase(StoreTestCase):
    async def asyncSetUp(self):
        await super().asyncSetUp()
        self.customer = await self.make_user("customer")
        self.retailer = await self.make_user("retailer")
        self.lamp = await self.make_product(self.retailer, "Lamp", 40.0, 20)
        await self.make_product(self.retailer, "Mug", 8.0, 0)

    async def _order(self, qty: int, day: int = 0):
        cart = await self.make_cart(self.customer, (self.lamp, qty))
        return (await orders.checkout(cart, "Addr", when=T0 + timedelta(days=day)))[0]

    async def test_retailer_stats(self):
        config.CANCEL_POLICY = "keep_stock"
        delivered = await self._order(2)
        for action in ("accept", "ship", "deliver"):
            await orders.advance(delivered.id, self.retailer, action)
        await self._order(1)
        cancelled = await self._order(5)
        await orders.cancel(cancelled.id, self.customer)

        stats = await reports.seller_stats(self.retailer)
        self.assertEqual(stats["total_products"], 2)
        self.assertEqual(stats["total_orders"], 3)
        self.assertEqual(stats["pending_orders"], 1)
        self.assertEqual(stats["completed_orders"], 1)
        self.assertEqual(stats["revenue"], 80.0)

    async def test_empty_retailer_stats(self):
        other = await self.make_user("retailer")
        stats = await reports.seller_stats(other)
        self.assertEqual(stats["total_orders"], 0)
        self.assertEqual(stats["revenue"], 0.0)


class NotificationsTestCase(StoreTestCase):
    async def test_unread_filter_and_mark_all_read(self):
        customer = await self.make_user("customer")
        retailer = await self.make_user("retailer")
        lamp = await self.make_product(retailer, "Lamp", 40.0, 20)
        for day in range(2):
            cart = await self.make_cart(customer, (lamp, 1))
            await orders.checkout(cart, "Addr", when=T0 + timedelta(days=day))

        notes = await notifications.list_notifications(retailer)
        self.assertEqual(len(notes), 2)
        self.assertGreater(notes[0].created_at, notes[1].created_at)
        self.assertTrue(all(not n.read for n in notes))

        self.assertEqual(await notifications.mark_all_read(retailer), 2)
        self.assertEqual(await notifications.mark_all_read(retailer), 0)
        self.assertEqual(await notifications.list_notifications(retailer, unread_only=True), [])
        self.assertTrue(all(n.read for n in await notifications.list_notifications(retailer)))
        self.assertEqual(await notifications.list_notifications(customer), [])


if __name__ == "__main__":
    unittest.main()
