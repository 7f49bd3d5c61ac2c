from typing import Dict, Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from livemart.utils.logger import get_logger
from livemart.utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from livemart.utils.state import GlobalState
from livemart.views.scr_cart import CartScreen
from livemart.views.scr_catalog import CatalogScreen
from livemart.views.scr_dashboard import DashboardScreen
from livemart.views.scr_inventory import InventoryScreen
from livemart.views.scr_login import LoginScreen
from livemart.views.scr_orders import OrdersScreen
from livemart.views.scr_wholesale import WholesaleScreen

_logger = get_logger(__name__)


class LiveMartApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "catalog": CatalogScreen,
        "cart": CartScreen,
        "orders": OrdersScreen,
        "inventory": InventoryScreen,
        "wholesale": WholesaleScreen,
        "dashboard": DashboardScreen,
    }

    # menu entries per role, first one is where the user lands after login
    ROLE_MODES = {
        "customer": {
            "catalog": "Shop",
            "cart": "Cart",
            "orders": "My Orders",
            "dashboard": "Notifications",
        },
        "retailer": {
            "dashboard": "Dashboard",
            "orders": "Customer Orders",
            "inventory": "My Products",
            "wholesale": "Wholesale Market",
        },
        "wholesaler": {
            "dashboard": "Dashboard",
            "inventory": "My Products",
            "wholesale": "B2B Orders",
        },
    }

    CSS_PATH = "styles/app.tcss"

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    @property
    def MODE_TITLES(self) -> Dict[str, str]:
        return self.modes_for(self.state.role)

    def modes_for(self, role: Optional[str]) -> Dict[str, str]:
        return self.ROLE_MODES.get(role, {})

    def home_mode(self) -> Optional[str]:
        return next(iter(self.modes_for(self.state.role)), None)

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        await self.state.sign_out()
        self.notify("Logout successful.")
        self.main_flow()

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        if self.state.uid:
            await self.state.sign_out()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        home = self.home_mode()
        if home is None:
            _logger.error(f"No screens available for role {self.state.role}.")
            self.exit()
            return
        _logger.info(f"User {self.state.uid} signed in as {self.state.role}.")
        self.post_message(ModeSwitchedMessage(self.current_mode, home))
        await self.switch_mode(home)


def run() -> None:
    LiveMartApp().run()


if __name__ == "__main__":
    run()
