# demo accounts and catalogue, loaded once into a fresh database
from datetime import datetime

import aiosqlite

from livemart.utils.logger import get_logger
from livemart.utils.pure import hash_password, to_ts

_logger = get_logger(__name__)

# (uid, name, email, password, role)
SEED_USERS = [
    (1001, "Alice Fernandes", "alice@example.com", "alice123", "customer"),
    (1002, "Bilal Khan", "bilal@example.com", "bilal123", "customer"),
    (2001, "Corner Store", "corner@example.com", "retail123", "retailer"),
    (2002, "Fresh Mart", "fresh@example.com", "retail123", "retailer"),
    (3001, "Bulk Supplies", "bulk@example.com", "whole123", "wholesaler"),
]

# (id, name, description, price, stock, category, owner_id)
SEED_PRODUCTS = [
    (101, "Basmati Rice 5kg", "Aged long grain rice", 650.0, 40, "Groceries", 2001),
    (102, "Toor Dal 1kg", "Unpolished split pigeon peas", 160.0, 60, "Groceries", 2001),
    (103, "USB-C Cable", "1m braided charging cable", 299.0, 25, "Electronics", 2001),
    (104, "Desk Lamp", "LED lamp with dimmer", 1199.0, 8, "Home", 2002),
    (105, "Green Tea 100 bags", "Darjeeling green tea", 349.0, 30, "Groceries", 2002),
    (106, "Cotton T-Shirt", "Plain crew neck, size M", 399.0, 0, "Clothing", 2002),
    (201, "Basmati Rice 25kg sack", "Bulk aged long grain rice", 2900.0, 500, "Groceries", 3001),
    (202, "USB-C Cable (pack of 50)", "1m braided cables, bulk", 7500.0, 80, "Electronics", 3001),
]


async def load_seed(conn: aiosqlite.Connection) -> None:
    now = to_ts(datetime.now())
    await conn.executemany(
        "INSERT INTO users(uid, name, email, pwd_hash, role) VALUES (?, ?, ?, ?, ?);",
        [
            (uid, name, email, hash_password(pwd), role)
            for uid, name, email, pwd, role in SEED_USERS
        ],
    )
    await conn.executemany(
        """
        INSERT INTO products(id, name, description, price, stock, category, owner_id, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?);
        """,
        [row + (now,) for row in SEED_PRODUCTS],
    )
    _logger.info(
        f"Seeded {len(SEED_USERS)} users and {len(SEED_PRODUCTS)} products."
    )
