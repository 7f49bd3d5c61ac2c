# app-wide messages; screens post them to the app so every open screen hears them
from typing import Sequence

from textual.message import Message


class QuitRequestedMessage(Message):
    """Quit confirmed; the app saves the cart and exits."""


class UserLogoutMessage(Message):
    """Logout confirmed from the sidebar."""


class UserLoginMessage(Message):
    """A user signed in; screens refresh their identity bound parts."""


class CartChangedMessage(Message):
    """
    A cart line was added, changed or removed.
    Post at App level when sent from outside CartScreen.
    """


class OrdersChangedMessage(Message):
    """
    Orders were placed or moved to another status.
    Order boards and the dashboard reload on it.
    """

    def __init__(self, order_ids: Sequence[str] = ()) -> None:
        super().__init__()
        self.order_ids = tuple(order_ids)


class ModeSwitchedMessage(Message):
    """
    Posted right before switch_mode, from app level.
    """

    def __init__(self, old_mode: str, new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode
