from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from livemart.db.models import CartLine, Product
from livemart.db.session_cache import SessionCache
from livemart.utils.logger import get_logger
from livemart.utils.pure import group_stable, money

_logger = get_logger(__name__)


def cart_key(uid: int) -> str:
    return f"cart_{uid}"


@dataclass
class Cart:
    """
    Pending purchase selections of one customer.

    Mutations only touch memory; call ``save`` to persist them to the session
    cache under the customer's key. A line never holds a quantity below 1.
    """

    uid: int
    cache: SessionCache
    lines: List[CartLine] = field(default_factory=list)

    @classmethod
    async def load(cls, uid: int, cache: SessionCache) -> Cart:
        raw = await cache.get(cart_key(uid))
        cart = cls(uid=uid, cache=cache)
        if raw:
            cart.lines = [CartLine(**entry) for entry in json.loads(raw)]
        return cart

    async def save(self) -> None:
        payload = json.dumps([dataclasses.asdict(line) for line in self.lines])
        await self.cache.set(cart_key(self.uid), payload.encode())

    async def clear(self) -> None:
        self.lines = []
        await self.cache.remove(cart_key(self.uid))
        _logger.debug(f"Cart of {self.uid} cleared.")

    def find(self, product_id: int) -> Optional[CartLine]:
        for line in self.lines:
            if line.product_id == product_id:
                return line
        return None

    def add_item(self, product: Product) -> CartLine:
        """One more unit of product; a new line snapshots its name, price and category."""
        existing = self.find(product.id)
        if existing:
            updated = dataclasses.replace(existing, quantity=existing.quantity + 1)
            self._replace(updated)
            return updated

        line = CartLine(
            product_id=product.id,
            seller_id=product.owner_id,
            unit_price=product.price,
            quantity=1,
            name=product.name,
            category=product.category,
        )
        self.lines.append(line)
        return line

    def set_quantity(self, product_id: int, qty: int) -> None:
        if qty <= 0:
            self.remove_item(product_id)
            return
        existing = self.find(product_id)
        if existing:
            self._replace(dataclasses.replace(existing, quantity=qty))

    def remove_item(self, product_id: int) -> None:
        self.lines = [line for line in self.lines if line.product_id != product_id]

    def total(self) -> float:
        return money(sum(line.subtotal for line in self.lines))

    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    def is_empty(self) -> bool:
        return not self.lines

    def groups(self) -> Dict[int, List[CartLine]]:
        """Lines per seller, sellers in order of first appearance."""
        return group_stable(self.lines, key=lambda line: line.seller_id)

    def _replace(self, updated: CartLine) -> None:
        self.lines = [
            updated if line.product_id == updated.product_id else line
            for line in self.lines
        ]
