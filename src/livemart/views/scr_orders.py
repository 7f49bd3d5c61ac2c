from math import ceil
from typing import Dict, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Label, MarkdownViewer

import livemart.db.feedback as feedback
import livemart.db.orders as orders
from livemart.db.errors import LiveMartError
from livemart.db.models import CANCELLABLE_STATUSES, Order
from livemart.utils import config
from livemart.utils.messages import ModeSwitchedMessage, OrdersChangedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen
from livemart.views.modal_dialog import ConfirmModal
from livemart.views.modal_feedback import FeedbackModal

PAGE_SIZE = 5

STEP_LABELS = {
    "pending": "Order Placed",
    "processing": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
}


class OrdersScreen(BaseScreen):
    """
    Customers track their orders and rate delivered ones.
    Retailers see the orders they received and move them along
    pending -> processing -> shipped -> delivered.

    Layout:
    - Markdown detail view at the top, showing selected order details.
    - Orders table below (reverse chronological), 5 per page with Prev/Next.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}
        self._role: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("<", id="btn-prev")
            yield Label(" 1 / 1 ", id="label-page")
            yield Button(">", id="btn-next")
            yield Button("Advance", id="btn-advance", variant="success")
            yield Button("Leave Feedback", id="btn-feedback", variant="primary")
            yield Button("Cancel Order", id="btn-cancel", variant="error")

    @property
    def is_retailer(self) -> bool:
        return self.app.state.role == "retailer"

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        self._load_orders()

    def _apply_role(self) -> None:
        """Set up columns and buttons for whoever is signed in now."""
        role = self.app.state.role
        if role == self._role:
            return
        self._role = role
        self.page_idx = 1
        table = self.query_one(DataTable)
        table.clear(columns=True)
        other = "Customer" if self.is_retailer else "Seller"
        table.add_columns("Order No", "Date", other, "Status", "Total")

        self.query_one("#btn-advance").display = self.is_retailer
        self.query_one("#btn-feedback").display = not self.is_retailer
        self.query_one("#btn-cancel").display = config.CANCEL_POLICY != "disabled"

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(OrdersChangedMessage)
    def handle_refresh(self) -> None:
        self._load_orders()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self._load_orders()

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1
            self._load_orders()

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._render_selected()

    def _selected(self) -> Optional[Order]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        return self._orders.get(str(table.get_row_at(table.cursor_row)[0]))

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        self._apply_role()
        uid = self.app.state.uid
        try:
            if self.is_retailer:
                page, total = await orders.list_retailer_orders(uid, page=self.page_idx, page_size=PAGE_SIZE)
            else:
                page, total = await orders.list_customer_orders(uid, page=self.page_idx, page_size=PAGE_SIZE)
        except LiveMartError as exc:
            await self.report_error(exc)
            return

        table = self.query_one(DataTable)
        table.clear()
        self._orders = {o.id: o for o in page}
        for o in page:
            table.add_row(
                o.id,
                o.created_at.strftime("%Y-%m-%d %H:%M"),
                o.customer_id if self.is_retailer else o.retailer_id,
                o.status.upper(),
                format_money(o.total_amount),
            )

        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
        self._render_selected()

    def _render_selected(self) -> None:
        order = self._selected()
        self._refresh_actions(order)
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            viewer.document.update("### Select an order to view its details.")
            return

        header = (
            f"### Order #{order.id}\n"
            f"Placed: {order.created_at:%Y-%m-%d %H:%M}  \n"
            f"Estimated delivery: {order.estimated_delivery:%Y-%m-%d}  \n"
            f"Deliver to: {order.delivery_address}  \n"
            f"Payment: {'Online' if order.payment_method == 'online' else 'Cash on delivery'}\n\n"
        )
        if order.status == "cancelled":
            tracking = "**This order was cancelled.**\n\n"
        else:
            tracking = " → ".join(
                f"**{STEP_LABELS[status]}**" if current else
                (STEP_LABELS[status] if reached else f"_{STEP_LABELS[status]}_")
                for status, reached, current in orders.tracking_steps(order)
            ) + "\n\n"
        rows = [
            "| Product | Qty | Unit Price | Line Total |",
            "|---|---:|---:|---:|",
        ]
        for item in order.items:
            rows.append(
                f"| {item.name} | {item.quantity} | {format_money(item.unit_price)} "
                f"| {format_money(item.subtotal)} |"
            )
        footer = f"\n\n**Grand Total:** {format_money(order.total_amount)}"
        viewer.document.update(header + tracking + "\n".join(rows) + footer)

    def _refresh_actions(self, order: Optional[Order]) -> None:
        btn_advance = self.query_one("#btn-advance", Button)
        action = orders.next_action(order.status) if order else None
        btn_advance.disabled = action is None
        btn_advance.label = {
            "accept": "Accept Order",
            "ship": "Mark as Shipped",
            "deliver": "Mark as Delivered",
        }.get(action, "Advance")

        self.query_one("#btn-feedback", Button).disabled = (
            order is None or order.status != "delivered"
        )
        self.query_one("#btn-cancel", Button).disabled = (
            order is None or order.status not in CANCELLABLE_STATUSES
        )

    @on(Button.Pressed, "#btn-advance")
    @work(exclusive=True)
    async def handle_advance(self) -> None:
        order = self._selected()
        action = orders.next_action(order.status) if order else None
        if action is None:
            return
        try:
            updated = await orders.advance(
                order.id, self.app.state.uid, action, expected_version=order.version
            )
        except LiveMartError as exc:
            await self.report_error(exc)
            self._load_orders()
            return
        self.notify(f"Order {updated.id} is now {updated.status}.")
        self.post_message(OrdersChangedMessage([order.id]))

    @on(Button.Pressed, "#btn-cancel")
    @work(exclusive=True)
    async def handle_cancel(self) -> None:
        order = self._selected()
        if order is None:
            return
        if not await self.app.push_screen_wait(
            ConfirmModal(f"Cancel order {order.id}?", tone="error")
        ):
            return
        try:
            await orders.cancel(order.id, self.app.state.uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        self.notify(f"Order {order.id} cancelled.")
        self.post_message(OrdersChangedMessage([order.id]))

    @on(Button.Pressed, "#btn-feedback")
    @work(exclusive=True)
    async def handle_feedback(self) -> None:
        order = self._selected()
        if order is None:
            return
        if config.FEEDBACK_ONE_PER_ORDER and await feedback.list_order_feedback(order.id):
            self.notify("You already rated this order.", severity="warning")
            return
        if await self.app.push_screen_wait(FeedbackModal(order)):
            self.notify("Feedback submitted successfully!")
