from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import livemart.db.crud as crud
from livemart.db.models import User
from livemart.db.session_cache import SessionCache
from livemart.utils import config
from livemart.utils.cart import Cart


@dataclass
class GlobalState:
    """
    Centralized application state shared by screens.

    Fields:
      - user: the signed-in user, None before sign in
      - cart: the customer's cart, loaded from the session cache on sign in
      - cache: device-local cache the cart is persisted to
    """

    user: Optional[User] = None
    cart: Optional[Cart] = None
    cache: Optional[SessionCache] = None

    def __post_init__(self) -> None:
        if self.cache is None:
            self.cache = SessionCache(config.CACHE_PATH)

    @property
    def uid(self) -> Optional[int]:
        return self.user.uid if self.user else None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    def current_identity(self) -> Optional[User]:
        return self.user

    async def sign_in(self, uid: int, pwd: str) -> Optional[User]:
        """Returns the user on success and restores their cart if they are a customer."""
        user = await crud.sign_in(uid, pwd)
        if user is None:
            return None
        self.user = user
        if user.role == "customer":
            self.cart = await Cart.load(user.uid, self.cache)
        return user

    async def sign_out(self) -> None:
        """
        Forget the current identity. The cart stays in the cache for the next sign in.
        """
        if self.cart is not None:
            await self.cart.save()
        self.user = None
        self.cart = None
