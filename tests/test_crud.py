import sqlite3
import unittest
from unittest import mock

from dbcase import T0, StoreTestCase

from livemart.db import crud
from livemart.db import database as db_database
from livemart.db.errors import AccessDenied, NotFoundError, RemoteOperationError, ValidationError


class CrudTestCase(StoreTestCase):
    seed = True

    # ---------- Auth & registration ----------

    async def test_email_available_and_sign_up_sign_in_and_roles(self):
        # alice@example.com comes with the demo data; a new email should be available
        self.assertFalse(await crud.email_available("alice@example.com"))
        self.assertFalse(await crud.email_available("  ALICE@example.com "))
        self.assertTrue(await crud.email_available("new@example.com"))

        uid = await crud.sign_up("Charlie", "charlie@example.com", "pw", "retailer")
        self.assertIsInstance(uid, int)

        # Able to sign in; wrong password fails
        user = await crud.sign_in(uid, "pw")
        self.assertIsNotNone(user)
        self.assertEqual((user.uid, user.name, user.role), (uid, "Charlie", "retailer"))
        self.assertIsNone(await crud.sign_in(uid, "wrong"))
        self.assertIsNone(await crud.sign_in(424242, "pw"))

        self.assertEqual(await crud.get_user_role(uid), "retailer")
        self.assertIsNone(await crud.get_user_role(9999999))
        self.assertEqual((await crud.get_user(1001)).email, "alice@example.com")
        self.assertIsNone(await crud.get_user(424242))

    async def test_seeded_accounts_sign_in(self):
        self.assertEqual((await crud.sign_in(1001, "alice123")).role, "customer")
        self.assertEqual((await crud.sign_in(2001, "retail123")).role, "retailer")
        self.assertEqual((await crud.sign_in(3001, "whole123")).role, "wholesaler")

    async def test_sign_up_rejects_bad_input(self):
        with self.assertRaises(ValidationError):
            await crud.sign_up("", "x@example.com", "pw", "customer")
        with self.assertRaises(ValidationError):
            await crud.sign_up("X", "x@example.com", "pw", "admin")
        with self.assertRaises(ValidationError):
            await crud.sign_up("Alice again", "alice@example.com", "pw", "customer")

    # ---------- Products ----------

    async def test_add_update_delete_product(self):
        prod = await crud.add_product(2001, "  Honey  ", "Raw honey", 250.0, 12, "Groceries", when=T0)
        self.assertEqual((prod.name, prod.owner_id, prod.stock), ("Honey", 2001, 12))
        self.assertEqual(prod.created_at, T0)
        self.assertEqual(await crud.get_product(prod.id), prod)

        # Only provided fields change
        self.assertFalse(await crud.update_product(prod.id, 2001))
        self.assertTrue(await crud.update_product(prod.id, 2001, new_price=199.5))
        self.assertTrue(await crud.update_product(prod.id, 2001, new_stock=3))
        updated = await crud.get_product(prod.id)
        self.assertEqual((updated.price, updated.stock), (199.5, 3))

        with self.assertRaises(AccessDenied):
            await crud.update_product(prod.id, 2002, new_price=1.0)
        with self.assertRaises(ValidationError):
            await crud.update_product(prod.id, 2001, new_stock=-1)
        with self.assertRaises(NotFoundError):
            await crud.update_product(999999, 2001, new_price=1.0)

        with self.assertRaises(AccessDenied):
            await crud.delete_product(prod.id, 2002)
        self.assertTrue(await crud.delete_product(prod.id, 2001))
        self.assertIsNone(await crud.get_product(prod.id))
        with self.assertRaises(NotFoundError):
            await crud.require_product(prod.id)

    async def test_add_product_validation_and_roles(self):
        with self.assertRaises(ValidationError):
            await crud.add_product(2001, "", "", 1.0, 1, "Home")
        with self.assertRaises(ValidationError):
            await crud.add_product(2001, "Thing", "", -1.0, 1, "Home")
        with self.assertRaises(ValidationError):
            await crud.add_product(2001, "Thing", "", 1.0, 1.5, "Home")
        with self.assertRaises(AccessDenied):
            await crud.add_product(1001, "Thing", "", 1.0, 1, "Home")
        with self.assertRaises(NotFoundError):
            await crud.add_product(424242, "Thing", "", 1.0, 1, "Home")

    async def test_owner_products_and_stock(self):
        self.assertEqual([p.id for p in await crud.list_owner_products(2002)], [104, 105, 106])
        self.assertEqual([p.id for p in await crud.list_owner_products(3001)], [201, 202])
        self.assertEqual(await crud.product_stock(104), 8)
        self.assertIsNone(await crud.product_stock(999999))

    # ---------- Catalogue search ----------

    async def test_search_catalog_filters(self):
        # Empty keyword: every in-stock retailer product, ordered by id
        products, total = await crud.search_catalog("   ")
        self.assertEqual(total, 5)
        self.assertEqual([p.id for p in products], [101, 102, 103, 104, 105])

        # Case-insensitive over name and description; wholesaler stock stays hidden
        products, _ = await crud.search_catalog("RICE")
        self.assertEqual([p.id for p in products], [101])

        products, _ = await crud.search_catalog(category="Groceries")
        self.assertEqual([p.id for p in products], [101, 102, 105])

        products, _ = await crud.search_catalog(min_price=300, max_price=700)
        self.assertEqual([p.id for p in products], [101, 105])

        # Retailers browse wholesaler products
        products, total = await crud.search_catalog(seller_role="wholesaler")
        self.assertEqual(([p.id for p in products], total), ([201, 202], 2))

        with self.assertRaises(ValidationError):
            await crud.search_catalog(seller_role="customer")

    async def test_search_catalog_pagination(self):
        page1, total = await crud.search_catalog(page=1, page_size=2)
        page3, _ = await crud.search_catalog(page=3, page_size=2)
        self.assertEqual(total, 5)
        self.assertEqual([p.id for p in page1], [101, 102])
        self.assertEqual([p.id for p in page3], [105])

    async def test_list_categories(self):
        self.assertEqual(
            await crud.list_categories(seller_role="retailer"),
            ["Clothing", "Electronics", "Groceries", "Home"],
        )
        self.assertEqual(
            await crud.list_categories(seller_role="wholesaler"), ["Electronics", "Groceries"]
        )

    # ---------- Store errors ----------

    async def test_sqlite_errors_surface_as_remote_operation_error(self):
        with self.assertRaises(RemoteOperationError):
            async with db_database.connect() as conn:
                await conn.execute("SELECT * FROM no_such_table;")

    async def test_connection_closed_when_setup_fails(self):
        fake = mock.AsyncMock()
        fake.execute.side_effect = sqlite3.OperationalError("disk I/O error")
        with mock.patch.object(db_database.aiosqlite, "connect", mock.AsyncMock(return_value=fake)):
            with self.assertRaises(RemoteOperationError):
                async with db_database.connect():
                    pass
        fake.close.assert_awaited_once()

    async def test_transaction_rolls_back_on_error(self):
        with self.assertRaises(ValidationError):
            async with db_database.transaction() as conn:
                await conn.execute("UPDATE products SET stock = 0 WHERE id = 101;")
                raise ValidationError("abort")
        self.assertEqual(await crud.product_stock(101), 40)

    # ---------- tiny helper coverage ----------

    def test__to_int_helper(self):
        self.assertEqual(crud._to_int("3"), 3)
        self.assertIsNone(crud._to_int("nan"))
        self.assertIsNone(crud._to_int(None))


if __name__ == "__main__":
    unittest.main()
