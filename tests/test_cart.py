import json
import os
import tempfile
import unittest

from dbcase import T0  # also puts src/ on sys.path

from livemart.db.models import Product
from livemart.db.session_cache import SessionCache
from livemart.utils.cart import Cart, cart_key


def product(pid, price, owner, name=None, stock=10, category="General"):
    return Product(
        id=pid,
        name=name or f"Product {pid}",
        description="",
        price=price,
        stock=stock,
        category=category,
        owner_id=owner,
        created_at=T0,
    )


class CartTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.cache = SessionCache(os.path.join(self.temp_dir.name, "cache.sqlite"))
        self.cart = Cart(uid=1001, cache=self.cache)

    def tearDown(self):
        self.temp_dir.cleanup()

    # ---------- Lines & totals ----------

    def test_add_item_increments_existing_line(self):
        p = product(1, 9.99, owner=2001)
        self.cart.add_item(p)
        self.cart.add_item(p)
        self.assertEqual(len(self.cart.lines), 1)
        self.assertEqual(self.cart.find(1).quantity, 2)
        self.assertEqual(self.cart.item_count(), 2)

    def test_line_snapshots_price_and_seller(self):
        p = product(1, 100.0, owner=2001, name="Lamp", category="Home")
        line = self.cart.add_item(p)
        self.assertEqual(
            (line.seller_id, line.unit_price, line.name, line.category),
            (2001, 100.0, "Lamp", "Home"),
        )

    def test_total_sums_surviving_lines(self):
        self.cart.add_item(product(1, 100.0, owner=2001))
        self.cart.set_quantity(1, 2)
        self.cart.add_item(product(2, 50.0, owner=2002))
        self.cart.add_item(product(3, 0.1, owner=2002))
        self.cart.set_quantity(3, 3)
        self.assertEqual(self.cart.total(), 250.3)

        self.cart.remove_item(2)
        self.assertEqual(self.cart.total(), 200.3)

    def test_set_quantity_zero_or_negative_removes_line(self):
        self.cart.add_item(product(1, 5.0, owner=2001))
        self.cart.add_item(product(2, 5.0, owner=2001))
        self.cart.set_quantity(1, 0)
        self.assertIsNone(self.cart.find(1))
        self.cart.set_quantity(2, -3)
        self.assertTrue(self.cart.is_empty())
        self.assertEqual(self.cart.total(), 0)

    def test_set_quantity_unknown_product_is_noop(self):
        self.cart.add_item(product(1, 5.0, owner=2001))
        self.cart.set_quantity(99, 4)
        self.assertEqual([line.product_id for line in self.cart.lines], [1])

    def test_groups_keep_first_appearance_order(self):
        self.cart.add_item(product(1, 1.0, owner=2002))
        self.cart.add_item(product(2, 1.0, owner=2001))
        self.cart.add_item(product(3, 1.0, owner=2002))
        groups = self.cart.groups()
        self.assertEqual(list(groups), [2002, 2001])
        self.assertEqual([line.product_id for line in groups[2002]], [1, 3])

    # ---------- Persistence ----------

    async def test_save_and_load_round_trip(self):
        self.cart.add_item(product(1, 12.5, owner=2001, name="Tea"))
        self.cart.set_quantity(1, 3)
        await self.cart.save()

        raw = await self.cache.get(cart_key(1001))
        self.assertEqual(json.loads(raw)[0]["quantity"], 3)

        loaded = await Cart.load(1001, self.cache)
        self.assertEqual(loaded.lines, self.cart.lines)
        self.assertTrue((await Cart.load(1002, self.cache)).is_empty())

    async def test_clear_drops_cached_copy(self):
        self.cart.add_item(product(1, 1.0, owner=2001))
        await self.cart.save()
        await self.cart.clear()
        self.assertTrue(self.cart.is_empty())
        self.assertIsNone(await self.cache.get(cart_key(1001)))


if __name__ == "__main__":
    unittest.main()
