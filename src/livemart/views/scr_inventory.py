from __future__ import annotations

from typing import Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, DataTable, Input, Label

import livemart.db.crud as crud
from livemart.db.errors import LiveMartError
from livemart.utils.messages import ModeSwitchedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen
from livemart.views.modal_dialog import ConfirmModal


class InventoryScreen(BaseScreen):
    """
    Sellers list new products and keep price and stock of their own up to date.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield DataTable(id="table-products")
            with Horizontal(id="hort-controls"):
                with Vertical():
                    yield Label("New Price ($):")
                    yield Input(
                        placeholder="leave blank to keep",
                        id="input-price",
                        type="number",
                        validators=[Number(minimum=0.0)],
                    )
                with Vertical():
                    yield Label("New Stock:")
                    yield Input(
                        placeholder="leave blank to keep",
                        id="input-stock",
                        type="integer",
                        validators=[Number(minimum=0)],
                    )
                yield Button("Update", id="btn-update", variant="success")
                yield Button("Delete", id="btn-delete", variant="error")
            yield Label("Add Product", id="label-add")
            with Horizontal(id="hort-add"):
                yield Input(placeholder="Name", id="input-new-name")
                yield Input(placeholder="Category", id="input-new-category")
                yield Input(placeholder="Price", id="input-new-price", type="number")
                yield Input(placeholder="Stock", id="input-new-stock", type="integer")
            with Horizontal(id="hort-add-2"):
                yield Input(placeholder="Description", id="input-new-descr")
                yield Button("Add", id="btn-add", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "Stock")
        self.reload()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_resume(self) -> None:
        self.reload()

    @work(exclusive=True, group="inventory")
    async def reload(self) -> None:
        try:
            products = await crud.list_owner_products(self.app.state.uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(p.id, p.name, p.category, format_money(p.price), p.stock)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        # prefill inputs with current values for convenience
        row = event.data_table.get_row_at(event.cursor_row)
        self.query_one("#input-price", Input).value = str(row[3]).lstrip("$").replace(",", "")
        self.query_one("#input-stock", Input).value = str(row[4])

    def _selected_pid(self) -> Optional[int]:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            return None
        return int(table.get_row_at(table.cursor_row)[0])

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True)
    async def handle_update(self) -> None:
        pid = self._selected_pid()
        if pid is None:
            return
        price_raw = self.query_one("#input-price", Input).value.strip()
        stock_raw = self.query_one("#input-stock", Input).value.strip()
        try:
            new_price = float(price_raw) if price_raw else None
            new_stock = int(stock_raw) if stock_raw else None
        except ValueError:
            self.notify("Price and stock must be numbers.", severity="error")
            return

        try:
            updated = await crud.update_product(pid, self.app.state.uid, new_price, new_stock)
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        if updated:
            self.notify("Product updated successfully.")
        else:
            self.notify("Nothing to update.", severity="warning")
        self.reload()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        pid = self._selected_pid()
        if pid is None:
            return
        if not await self.app.push_screen_wait(
            ConfirmModal("Are you sure you want to delete this product?", tone="error")
        ):
            return
        try:
            await crud.delete_product(pid, self.app.state.uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        self.notify("Product deleted successfully!")
        self.reload()

    @on(Button.Pressed, "#btn-add")
    @work(exclusive=True)
    async def handle_add(self) -> None:
        values = {
            key: self.query_one(f"#input-new-{key}", Input).value.strip()
            for key in ("name", "category", "price", "stock", "descr")
        }
        try:
            price = float(values["price"])
            stock = int(values["stock"])
        except ValueError:
            self.notify("Price and stock must be numbers.", severity="error")
            return

        try:
            prod = await crud.add_product(
                self.app.state.uid,
                values["name"],
                values["descr"],
                price,
                stock,
                values["category"],
            )
        except LiveMartError as exc:
            await self.report_error(exc)
            return

        for key in values:
            self.query_one(f"#input-new-{key}", Input).value = ""
        self.notify(f"Product {prod.id} added successfully!")
        self.reload()
