import uuid

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

import livemart.db.orders as orders
from livemart.db.errors import LiveMartError, OutOfStock, RemoteOperationError
from livemart.utils.pure import format_money, generate_markdown_table
from livemart.views.modal_dialog import ConfirmModal


class CheckoutModal(ModalScreen[bool]):
    """
    Order summary grouped by seller, delivery address and payment method.
    Return True once the orders are placed, False otherwise.
    """

    def __init__(self):
        super().__init__()
        # one checkout id per modal: resubmitting never orders twice
        self._checkout_id = uuid.uuid4().hex

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Delivery Address")
            yield Input(
                placeholder="12 MG Road, Bengaluru 560001",
                id="input-address-line",
            )
            yield Label("Payment")
            yield Select(
                [("Pay online", "online"), ("Cash on delivery", "cod")],
                value="online",
                allow_blank=False,
                id="select-payment",
            )
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        cart = self.app.state.cart
        groups = cart.groups()
        md = "### Order Summary\n\n"
        if len(groups) > 1:
            md += f"_Your cart will be placed as {len(groups)} orders, one per seller._\n\n"
        headers = ["Product Name", "Unit Price", "Quantity", "Total Price"]
        aligns = ["l", "c", "c", "c"]
        for seller_id, lines in groups.items():
            rows = [
                [line.name, format_money(line.unit_price), line.quantity, format_money(line.subtotal)]
                for line in lines
            ]
            subtotal = sum(line.subtotal for line in lines)
            md += f"#### Seller {seller_id}\n\n"
            md += generate_markdown_table(headers, rows, aligns)
            md += f"\n\nSubtotal: {format_money(subtotal)}\n\n"
        md += f"**Total:** {format_money(cart.total())}"
        await self.query_one(MarkdownViewer).document.update(md)
        self.query_one("#input-address-line").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        address_input = self.query_one("#input-address-line", Input)
        address_line = address_input.value.strip()
        if not address_line:
            address_input.focus()
            address_input.add_class("-invalid")
            self.notify("Please enter delivery address!", severity="error")
            return

        if not await self.app.push_screen_wait(
            ConfirmModal("Place order? This cannot be undone.", tone="positive")
        ):
            return

        try:
            placed = await orders.checkout(
                self.app.state.cart,
                address_line,
                self.query_one("#select-payment", Select).value,
                checkout_id=self._checkout_id,
            )
        except OutOfStock as exc:
            line = self.app.state.cart.find(exc.product_id)
            name = line.name if line else f"product {exc.product_id}"
            self.notify(
                f"Only {exc.available} of {name} left. Adjust your cart and try again.",
                severity="error",
            )
            self.dismiss(False)
            return
        except RemoteOperationError as exc:
            self.notify(f"Failed to place order. Please try again. ({exc})", severity="error")
            return
        except LiveMartError as exc:
            self.notify(str(exc), severity="error")
            return

        numbers = ", ".join(o.id for o in placed)
        self.notify(f"Order placed successfully! Order number(s): {numbers}.")
        self.dismiss(True)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)
