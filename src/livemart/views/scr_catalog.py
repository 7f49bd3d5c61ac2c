from math import ceil

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.widgets import Button, DataTable, Input, Label, Select

import livemart.db.crud as crud
from livemart.db.errors import LiveMartError
from livemart.utils.messages import CartChangedMessage, ModeSwitchedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen
from livemart.views.modal_prod_detail import ProdDetailModal

PAGE_SIZE = 10


class CatalogScreen(BaseScreen):
    """
    Product browsing for customers: retailer products that are in stock,
    filtered by keyword, category and price range.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filters"):
            yield Input(id="input-search", placeholder="Search products...")
            yield Select(
                [("All categories", "")],
                value="",
                allow_blank=False,
                id="select-category",
            )
            yield Input(placeholder="min", id="input-min-price", type="number")
            yield Input(placeholder="max", id="input-max-price", type="number")
        yield DataTable(id="table-catalog")
        with Horizontal(id="hort-table-control"):
            yield Button("<", id="btn-prev")
            yield Label(" 1 / 1 ", id="label-page")
            yield Button(">", id="btn-next")

    async def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Name", "Category", "Price", "In Stock")

        categories = await crud.list_categories(seller_role="retailer")
        self.query_one("#select-category", Select).set_options(
            [("All categories", "")] + [(c, c) for c in categories]
        )
        self.query_one("#input-search").focus()
        self.update_results()

    @on(Input.Changed, "#input-search")
    @on(Input.Changed, "#input-min-price")
    @on(Input.Changed, "#input-max-price")
    @on(Select.Changed, "#select-category")
    def handle_filter_change(self) -> None:
        self.page_idx = 1
        self.update_results()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    def handle_resume(self) -> None:
        self.update_results()

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1
            self.update_results()

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1
            self.update_results()

    @on(DataTable.RowSelected)
    @work()
    async def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        pid = int(event.data_table.get_row_at(event.cursor_row)[0])
        if await self.app.push_screen_wait(ProdDetailModal(pid)):
            self.app.post_message(CartChangedMessage())

    def _price(self, widget_id: str):
        raw = self.query_one(widget_id, Input).value.strip()
        try:
            return float(raw) if raw else None
        except ValueError:
            return None

    @work(exclusive=True)
    async def update_results(self) -> None:
        category = self.query_one("#select-category", Select).value
        try:
            products, total = await crud.search_catalog(
                self.query_one("#input-search", Input).value,
                category=category or None,
                min_price=self._price("#input-min-price"),
                max_price=self._price("#input-max-price"),
                seller_role="retailer",
                page=self.page_idx,
                page_size=PAGE_SIZE,
            )
        except LiveMartError as exc:
            await self.report_error(exc)
            return

        table = self.query_one(DataTable)
        table.clear()
        for p in products:
            table.add_row(p.id, p.name, p.category, format_money(p.price), p.stock)

        self.page_cnt = max(ceil(total / PAGE_SIZE), 1)
        self.query_one("#label-page", Label).update(f" {self.page_idx} / {self.page_cnt} ")
        self.query_one("#btn-prev", Button).disabled = self.page_idx <= 1
        self.query_one("#btn-next", Button).disabled = self.page_idx >= self.page_cnt
