from __future__ import annotations

import random
from datetime import datetime
from typing import List, Optional, Tuple

from livemart.db import models
from livemart.db.database import connect
from livemart.db.errors import AccessDenied, NotFoundError, ValidationError
from livemart.utils.logger import get_logger
from livemart.utils.pure import from_ts, hash_password, to_ts, verify_password

_logger = get_logger(__name__)


def _to_int(val) -> Optional[int]:
    try:
        return int(val)
    except (TypeError, ValueError):
        return None


# ---------------------------
# Identity (sign up / sign in)
# ---------------------------


async def email_available(email: str) -> bool:
    """True if no user already registered with the given email."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT 1 FROM users WHERE LOWER(email) = LOWER(?) LIMIT 1;",
            (email.strip(),),
        )
        row = await cur.fetchone()
        await cur.close()
        return row is None


async def _generate_uid_unique() -> int:
    """Generate a uid that isn't already in use."""
    async with connect() as conn:
        while True:
            uid = random.randint(1000, 999999)
            cur = await conn.execute("SELECT 1 FROM users WHERE uid = ?;", (uid,))
            exists = await cur.fetchone()
            await cur.close()
            if not exists:
                return uid


async def sign_up(name: str, email: str, pwd: str, role: str) -> int:
    """
    Create a new account and return its uid.
    Raises ValidationError on blank fields, unknown role or an email already taken.
    """
    name, email = (name or "").strip(), (email or "").strip()
    if not name or not email or not pwd:
        raise ValidationError("Name, email and password are required.")
    if role not in models.ROLES:
        raise ValidationError(f"Unknown role '{role}'.")
    if not await email_available(email):
        raise ValidationError("Email already taken.")

    uid = await _generate_uid_unique()
    async with connect() as conn:
        await conn.execute(
            "INSERT INTO users(uid, name, email, pwd_hash, role) VALUES (?, ?, ?, ?, ?);",
            (uid, name, email, hash_password(pwd), role),
        )
        await conn.commit()
    _logger.info(f"Registered {role} {uid}.")
    return uid


async def sign_in(uid: int, pwd: str) -> Optional[models.User]:
    """Return User if uid/pwd match; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, name, email, role, pwd_hash FROM users WHERE uid = ?;",
            (uid,),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row or not verify_password(pwd, row["pwd_hash"]):
        return None
    return models.User(
        uid=int(row["uid"]), name=row["name"], email=row["email"], role=row["role"]
    )


async def get_user(uid: int) -> Optional[models.User]:
    """Return a User object for the given uid, or None if not found."""
    async with connect() as conn:
        cur = await conn.execute(
            "SELECT uid, name, email, role FROM users WHERE uid = ?;",
            (uid,),
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return models.User(
        uid=int(row["uid"]), name=row["name"], email=row["email"], role=row["role"]
    )


async def get_user_role(uid: int) -> Optional[str]:
    """Return the role tag if user exists; otherwise None."""
    async with connect() as conn:
        cur = await conn.execute("SELECT role FROM users WHERE uid = ?;", (uid,))
        row = await cur.fetchone()
        await cur.close()
        return row[0] if row else None


# ---------------------------
# Products (Inventory Store)
# ---------------------------

_PRODUCT_COLUMNS = "id, name, description, price, stock, category, owner_id, created_at"


def _row_to_product(row) -> models.Product:
    return models.Product(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"],
        price=float(row["price"]),
        stock=int(row["stock"]),
        category=row["category"],
        owner_id=int(row["owner_id"]),
        created_at=from_ts(row["created_at"]),
    )


async def add_product(
    owner_id: int,
    name: str,
    description: str,
    price: float,
    stock: int,
    category: str,
    when: Optional[datetime] = None,
) -> models.Product:
    """List a new product for a retailer or wholesaler."""
    name, category = (name or "").strip(), (category or "").strip()
    if not name or not category:
        raise ValidationError("Product name and category are required.")
    if price is None or price < 0:
        raise ValidationError("Price cannot be negative.")
    if _to_int(stock) is None or int(stock) != stock or stock < 0:
        raise ValidationError("Stock must be a non-negative whole number.")

    role = await get_user_role(owner_id)
    if role is None:
        raise NotFoundError(f"User {owner_id} not found.")
    if role not in models.SELLER_ROLES:
        raise AccessDenied("Only retailers and wholesalers can list products.")

    when = when or datetime.now()
    async with connect() as conn:
        cur = await conn.execute(
            """
            INSERT INTO products(name, description, price, stock, category, owner_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (name, description or "", float(price), int(stock), category, owner_id, to_ts(when)),
        )
        pid = cur.lastrowid
        await cur.close()
        await conn.commit()
    _logger.info(f"{role.capitalize()} {owner_id} listed product {pid} ({name}).")
    return await require_product(pid)


async def get_product(pid: int) -> Optional[models.Product]:
    """Fetch a product by id."""
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE id = ?;", (pid,)
        )
        row = await cur.fetchone()
        await cur.close()
    if not row:
        return None
    return _row_to_product(row)


async def require_product(pid: int) -> models.Product:
    prod = await get_product(pid)
    if prod is None:
        raise NotFoundError(f"Product {pid} not found.")
    return prod


async def product_stock(pid: int) -> Optional[int]:
    async with connect() as conn:
        cur = await conn.execute("SELECT stock FROM products WHERE id = ?;", (pid,))
        row = await cur.fetchone()
        await cur.close()
        return int(row[0]) if row else None


async def update_product(
    pid: int,
    owner_id: int,
    new_price: Optional[float] = None,
    new_stock: Optional[int] = None,
) -> bool:
    """
    Update price and/or stock (only provided fields). Return True if a row was updated.
    Only the owning seller may change a product.
    """
    if new_price is None and new_stock is None:
        return False
    if new_price is not None and new_price < 0:
        raise ValidationError("Price cannot be negative.")
    if new_stock is not None and (int(new_stock) != new_stock or new_stock < 0):
        raise ValidationError("Stock must be a non-negative whole number.")

    prod = await require_product(pid)
    if prod.owner_id != owner_id:
        raise AccessDenied(f"Product {pid} belongs to another seller.")

    upd_price = float(new_price) if new_price is not None else prod.price
    upd_stock = int(new_stock) if new_stock is not None else prod.stock
    async with connect() as conn:
        res = await conn.execute(
            "UPDATE products SET price = ?, stock = ? WHERE id = ? AND owner_id = ?;",
            (upd_price, upd_stock, pid, owner_id),
        )
        await conn.commit()
        return res.rowcount > 0


async def delete_product(pid: int, owner_id: int) -> bool:
    """Remove a listing. Past orders keep their own copy of name and price."""
    prod = await require_product(pid)
    if prod.owner_id != owner_id:
        raise AccessDenied(f"Product {pid} belongs to another seller.")
    async with connect() as conn:
        res = await conn.execute(
            "DELETE FROM products WHERE id = ? AND owner_id = ?;", (pid, owner_id)
        )
        await conn.commit()
    _logger.info(f"Seller {owner_id} deleted product {pid}.")
    return res.rowcount > 0


async def list_owner_products(owner_id: int) -> List[models.Product]:
    async with connect() as conn:
        cur = await conn.execute(
            f"SELECT {_PRODUCT_COLUMNS} FROM products WHERE owner_id = ? ORDER BY id;",
            (owner_id,),
        )
        rows = await cur.fetchall()
        await cur.close()
    return [_row_to_product(row) for row in rows]


async def search_catalog(
    keyword: str = "",
    category: Optional[str] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    seller_role: str = "retailer",
    page: int = 1,
    page_size: int = 10,
) -> Tuple[List[models.Product], int]:
    """
    In-stock products offered by sellers of the given role.
    Customers browse retailer products, retailers browse wholesaler products.

    Keyword matching is case-insensitive over name/description; an empty
    keyword matches everything. Category and the price bounds are optional.
    Returns (products for page, total_count).
    """
    if seller_role not in models.SELLER_ROLES:
        raise ValidationError(f"Unknown seller role '{seller_role}'.")

    conds = ["p.stock > 0", "u.role = ?"]
    params: List[str | float | int] = [seller_role]

    phrase = (keyword or "").strip().lower()
    if phrase:
        like = f"%{phrase}%"
        conds.append("(LOWER(p.name) LIKE ? OR LOWER(p.description) LIKE ?)")
        params.extend([like, like])
    if category:
        conds.append("p.category = ?")
        params.append(category)
    if min_price is not None:
        conds.append("p.price >= ?")
        params.append(float(min_price))
    if max_price is not None:
        conds.append("p.price <= ?")
        params.append(float(max_price))
    where_clause = " AND ".join(conds)

    async with connect() as conn:
        cur = await conn.execute(
            f"""
            SELECT COUNT(*)
            FROM products p JOIN users u ON u.uid = p.owner_id
            WHERE {where_clause};
            """,
            tuple(params),
        )
        total = (await cur.fetchone())[0]
        await cur.close()

        offset = max(page - 1, 0) * page_size
        cur = await conn.execute(
            f"""
            SELECT p.id, p.name, p.description, p.price, p.stock, p.category,
                   p.owner_id, p.created_at
            FROM products p JOIN users u ON u.uid = p.owner_id
            WHERE {where_clause}
            ORDER BY p.id
            LIMIT ? OFFSET ?;
            """,
            tuple(params + [page_size, offset]),
        )
        rows = await cur.fetchall()
        await cur.close()

    return [_row_to_product(row) for row in rows], total


async def list_categories(seller_role: Optional[str] = None) -> List[str]:
    """Distinct categories, optionally limited to one seller role."""
    async with connect() as conn:
        if seller_role:
            cur = await conn.execute(
                """
                SELECT DISTINCT p.category
                FROM products p JOIN users u ON u.uid = p.owner_id
                WHERE u.role = ?
                ORDER BY p.category;
                """,
                (seller_role,),
            )
        else:
            cur = await conn.execute(
                "SELECT DISTINCT category FROM products ORDER BY category;"
            )
        rows = await cur.fetchall()
        await cur.close()
    return [row[0] for row in rows]
