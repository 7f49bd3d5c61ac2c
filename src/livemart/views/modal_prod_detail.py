from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Label, MarkdownViewer

import livemart.db.crud as crud
import livemart.db.feedback as feedback
from livemart.db.errors import LiveMartError
from livemart.db.models import Product
from livemart.utils.pure import format_money, generate_markdown_table


class ProdDetailModal(ModalScreen[bool]):
    """
    Product detail with its rating and reviews, plus add to cart.
    Will return true if cart changed, false if not
    """

    def __init__(self, pid: int) -> None:
        super().__init__()

        self._pid = pid
        self._prod: Product | None = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("", id="label-in-cart")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        try:
            self._prod = await crud.require_product(self._pid)
            average, count = await feedback.rating_summary(self._pid)
            reviews = await feedback.list_product_feedback(self._pid)
        except LiveMartError as exc:
            self.notify(str(exc), severity="error")
            self.dismiss(False)
            return

        rating_text = f"{average:.1f} / 5 ({count} reviews)" if count else "No ratings yet"
        table_rows = [
            ["Description", self._prod.description or "-"],
            ["Category", self._prod.category],
            ["Price", format_money(self._prod.price)],
            ["In Stock", self._prod.stock],
            ["Rating", rating_text],
        ]
        md = f"### {self._prod.name}\n\n"
        md += generate_markdown_table(["Attribute", "Value"], table_rows, ["l", "l"])
        md += "\n\n### Reviews\n\n"
        if reviews:
            md += "\n".join(
                f"- {'★' * r.rating}{'☆' * (5 - r.rating)} {r.comment}" for r in reviews
            )
        else:
            md += "_No reviews yet._"
        await self.query_one(MarkdownViewer).document.update(md)

        if self._prod.stock < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"

        self._refresh_in_cart()
        self.query_one("#btn-addcart").focus()

    def _refresh_in_cart(self) -> None:
        line = self.app.state.cart.find(self._pid)
        qty = line.quantity if line else 0
        self.query_one("#label-in-cart", Label).update(f"In cart: {qty}")

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        cart = self.app.state.cart
        line = cart.find(self._pid)
        if line and line.quantity >= self._prod.stock:
            self.notify("No more units in stock.", severity="warning")
            return

        cart.add_item(self._prod)
        await cart.save()
        self.app.notify("Product added to cart!")
        self.dismiss(True)
