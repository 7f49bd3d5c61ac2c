import asyncio
import itertools
import os
import sys
import tempfile
import unittest
from datetime import datetime

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from livemart.db import crud  # noqa: E402
from livemart.db import database as db_database  # noqa: E402
from livemart.db.session_cache import SessionCache  # noqa: E402
from livemart.utils import config  # noqa: E402
from livemart.utils.cart import Cart  # noqa: E402

T0 = datetime(2025, 11, 1, 12, 0, 0)

_CONFIG_KEYS = ("LOAD_SEED_DATA", "CANCEL_POLICY", "FEEDBACK_ONE_PER_ORDER", "DELIVERY_DAYS")


class StoreTestCase(unittest.IsolatedAsyncioTestCase):
    """
    Points the store and the session cache at a temporary directory.
    Subclasses set ``seed = True`` to start from the demo accounts and products.
    """

    seed = False

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database._initialized = False
        db_database._init_lock = asyncio.Lock()

        self._saved_config = {key: getattr(config, key) for key in _CONFIG_KEYS}
        config.LOAD_SEED_DATA = self.seed
        config.CANCEL_POLICY = "disabled"
        config.FEEDBACK_ONE_PER_ORDER = True
        config.DELIVERY_DAYS = 3

        self.cache = SessionCache(os.path.join(self.temp_dir.name, "cache.sqlite"))
        self._emails = itertools.count(1)

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute("SELECT name FROM sqlite_master WHERE type='table';")
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        for key, value in self._saved_config.items():
            setattr(config, key, value)
        self.temp_dir.cleanup()

    # ---------- fixtures ----------

    async def make_user(self, role: str, name: str = "") -> int:
        n = next(self._emails)
        name = name or f"{role.capitalize()} {n}"
        return await crud.sign_up(name, f"{role}{n}@example.com", "pw", role)

    async def make_product(self, owner_id: int, name: str, price: float, stock: int, category: str = "General"):
        return await crud.add_product(owner_id, name, f"{name} description", price, stock, category, when=T0)

    async def make_cart(self, customer_id: int, *lines) -> Cart:
        """lines are (product, quantity) pairs"""
        cart = Cart(uid=customer_id, cache=self.cache)
        for product, qty in lines:
            cart.add_item(product)
            cart.set_quantity(product.id, qty)
        await cart.save()
        return cart

    async def stock_of(self, pid: int) -> int:
        return await crud.product_stock(pid)
