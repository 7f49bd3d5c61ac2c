from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Label, Rule

from livemart.utils.messages import CartChangedMessage, ModeSwitchedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen
from livemart.views.modal_checkout import CheckoutModal
from livemart.views.modal_dialog import ConfirmModal


class CartScreen(BaseScreen):
    """
    Lines of the customer's cart with quantity controls, plus checkout.
    Prices shown are the ones captured when each product was added.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield DataTable(id="table-cart")
        with Horizontal(id="hort-line-buttons"):
            yield Button("-", id="btn-sub-qty")
            yield Button("+", id="btn-add-qty")
            yield Button("Remove", id="btn-remove", variant="warning")
        yield Label("Total Cart Value: $0.00", id="label-cart-total")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Product", "Seller", "Unit Price", "Qty", "Subtotal")
        self.handle_cart_change()

    @on(CartChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    def handle_cart_change(self) -> None:
        cart = self.app.state.cart
        if cart is None:
            # resumed under the login screen of a seller
            return
        table = self.query_one(DataTable)
        cursor = table.cursor_row
        table.clear()
        for line in cart.lines:
            table.add_row(
                line.product_id,
                line.name,
                line.seller_id,
                format_money(line.unit_price),
                line.quantity,
                format_money(line.subtotal),
            )
        if cart.lines:
            table.move_cursor(row=min(cursor, len(cart.lines) - 1))

        self.query_one("#label-cart-total", Label).update(
            f"Total Cart Value: {format_money(cart.total())}"
        )
        for btn_id in ("#btn-sub-qty", "#btn-add-qty", "#btn-remove"):
            self.query_one(btn_id, Button).disabled = cart.is_empty()

    def _selected_pid(self) -> Optional[int]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        return int(table.get_row_at(table.cursor_row)[0])

    async def _change_qty(self, delta: int) -> None:
        pid = self._selected_pid()
        if pid is None:
            return
        cart = self.app.state.cart
        line = cart.find(pid)
        cart.set_quantity(pid, line.quantity + delta)
        await cart.save()
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-sub-qty")
    async def handle_sub_qty(self) -> None:
        await self._change_qty(-1)

    @on(Button.Pressed, "#btn-add-qty")
    async def handle_add_qty(self) -> None:
        await self._change_qty(1)

    @on(Button.Pressed, "#btn-remove")
    @work()
    async def handle_remove_item(self) -> None:
        pid = self._selected_pid()
        if pid is None:
            return
        remove_confirmed = await self.app.push_screen_wait(
            ConfirmModal("Do you really want to remove this item from cart?", tone="warning")
        )
        if remove_confirmed:
            cart = self.app.state.cart
            cart.remove_item(pid)
            await cart.save()
            self.post_message(CartChangedMessage())
            self.notify("Item removed from cart.", severity="information")

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if cart.is_empty():
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            ConfirmModal("Do you really want to remove all items from cart?", tone="error")
        )
        if remove_confirmed:
            await cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if self.app.state.cart.is_empty():
            self.app.notify("Your cart is empty!", severity="warning")
            return

        await self.app.push_screen_wait(CheckoutModal())
        self.post_message(CartChangedMessage())
