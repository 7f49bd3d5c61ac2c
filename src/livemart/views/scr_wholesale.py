from __future__ import annotations

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label

import livemart.db.crud as crud
import livemart.db.wholesale as wholesale
from livemart.db.errors import LiveMartError
from livemart.db.models import WHOLESALE_ACTIONS
from livemart.utils.messages import ModeSwitchedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen

ACTION_LABELS = {"process": "Start Processing", "complete": "Mark Completed"}


class WholesaleScreen(BaseScreen):
    """
    Retailers buy stock from wholesalers and follow their B2B orders.
    Wholesalers work through the B2B orders they received.
    """

    @property
    def is_retailer(self) -> bool:
        return self.app.state.role == "retailer"

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Label("Wholesaler Products", id="label-market")
            yield DataTable(id="table-market")
            with Horizontal(id="hort-order"):
                yield Input(placeholder="Quantity", id="input-qty", type="integer")
                yield Button("Order from Wholesaler", id="btn-order", variant="primary")
            yield Label("B2B Orders", id="label-b2b")
            yield DataTable(id="table-b2b")
            with Horizontal(id="hort-b2b-controls"):
                yield Button("Refresh", id="btn-refresh")
                yield Button("Advance", id="btn-advance", variant="success")

    def on_mount(self) -> None:
        market = self.query_one("#table-market", DataTable)
        market.cursor_type = "row"
        market.zebra_stripes = True
        market.add_columns("ID", "Name", "Category", "Price", "Available", "Wholesaler")

        b2b = self.query_one("#table-b2b", DataTable)
        b2b.cursor_type = "row"
        b2b.zebra_stripes = True
        b2b.add_columns("Order No", "Product", "Qty", "Total", "Status", "Retailer", "Wholesaler")

        self.reload()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(Button.Pressed, "#btn-refresh")
    def handle_refresh(self) -> None:
        self.reload()

    @work(exclusive=True, group="wholesale")
    async def reload(self) -> None:
        for widget_id in ("#label-market", "#table-market", "#hort-order"):
            self.query_one(widget_id).display = self.is_retailer
        self.query_one("#btn-advance").display = not self.is_retailer
        uid = self.app.state.uid
        try:
            if self.is_retailer:
                products, _ = await crud.search_catalog(seller_role="wholesaler", page_size=100)
                b2b_orders = await wholesale.list_retailer_orders(uid)
            else:
                products = []
                b2b_orders = await wholesale.list_wholesaler_orders(uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return

        market = self.query_one("#table-market", DataTable)
        market.clear()
        for p in products:
            market.add_row(p.id, p.name, p.category, format_money(p.price), p.stock, p.owner_id)

        b2b = self.query_one("#table-b2b", DataTable)
        b2b.clear()
        for o in b2b_orders:
            b2b.add_row(
                o.id,
                o.product_name,
                o.quantity,
                format_money(o.total_price),
                o.status.upper(),
                o.retailer_id,
                o.wholesaler_id,
            )

    @on(Button.Pressed, "#btn-order")
    @work(exclusive=True)
    async def handle_order(self) -> None:
        market = self.query_one("#table-market", DataTable)
        if market.row_count == 0:
            return
        pid = int(market.get_row_at(market.cursor_row)[0])
        qty_raw = self.query_one("#input-qty", Input).value.strip()
        if not qty_raw.isdigit() or int(qty_raw) <= 0:
            self.notify("Enter a quantity to order.", severity="error")
            return

        try:
            order = await wholesale.place_order(self.app.state.uid, pid, int(qty_raw))
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        self.query_one("#input-qty", Input).value = ""
        self.notify(f"Order placed successfully! ({order.id})")
        self.reload()

    @on(Button.Pressed, "#btn-advance")
    @work(exclusive=True)
    async def handle_advance(self) -> None:
        b2b = self.query_one("#table-b2b", DataTable)
        if b2b.row_count == 0:
            return
        row = b2b.get_row_at(b2b.cursor_row)
        status = str(row[4]).lower()
        action = next((a for a, (src, _) in WHOLESALE_ACTIONS.items() if src == status), None)
        if action is None:
            self.notify("This order is already completed.", severity="warning")
            return
        try:
            updated = await wholesale.advance(str(row[0]), self.app.state.uid, action)
        except LiveMartError as exc:
            await self.report_error(exc)
            self.reload()
            return
        self.notify(f"{ACTION_LABELS[action]}: order {updated.id} is now {updated.status}.")
        self.reload()
