from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, MarkdownViewer

import livemart.db.notifications as notifications
import livemart.db.reports as reports
from livemart.db.errors import LiveMartError
from livemart.db.models import SELLER_ROLES
from livemart.utils.messages import ModeSwitchedMessage
from livemart.utils.pure import format_money
from livemart.views.base_screen import BaseScreen


class DashboardScreen(BaseScreen):
    """
    Seller numbers (products, orders, revenue) and the user's notifications.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-dashboard", show_table_of_contents=False)
            with Horizontal():
                yield Button("Refresh", id="btn-refresh")
                yield Button("Mark all read", id="btn-read", variant="primary")

    def on_mount(self) -> None:
        self.handle_reload()

    @on(ScreenResume)
    @on(ModeSwitchedMessage)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)
    async def handle_reload(self) -> None:
        user = self.app.state.current_identity()
        md = ""
        try:
            if user.role in SELLER_ROLES:
                stats = await reports.seller_stats(user.uid)
                done = "Delivered" if user.role == "retailer" else "Completed"
                md += (
                    "### Overview\n\n"
                    f"- Products: {stats['total_products']}\n"
                    f"- Orders: {stats['total_orders']}\n"
                    f"- Pending: {stats['pending_orders']}\n"
                    f"- {done}: {stats['completed_orders']}\n"
                    f"- Revenue ({done.lower()}): {format_money(stats['revenue'])}\n\n"
                )
            items = await notifications.list_notifications(user.uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return

        md += "### Notifications\n\n"
        if not items:
            md += "_Nothing yet._\n"
        for n in items:
            marker = "" if n.read else "**NEW** "
            md += f"- {marker}{n.created_at:%Y-%m-%d %H:%M} **{n.title}**: {n.message}\n"
        self.query_one("#md-dashboard", MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-read")
    @work(exclusive=True)
    async def handle_mark_read(self) -> None:
        try:
            await notifications.mark_all_read(self.app.state.uid)
        except LiveMartError as exc:
            await self.report_error(exc)
            return
        self.handle_reload()
