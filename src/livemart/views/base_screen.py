from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import Resize, ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from livemart.db.errors import LiveMartError, NotFoundError
from livemart.utils.logger import get_logger
from livemart.utils.messages import ModeSwitchedMessage, UserLoginMessage, UserLogoutMessage
from livemart.utils.pure import generate_markdown_table
from livemart.views.modal_dialog import ConfirmModal, QuitDialogModal
from livemart.views.modal_resize import ResizeScreenPromptModal

_logger = get_logger(__name__)


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("User Info", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log out", id="btn-logout", variant="error")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        self.init_mode = self.app.current_mode
        self.reload()

    @work(exclusive=True, group="sidebar")
    async def reload(self):
        """Show the signed-in user and the menu for their role."""
        user = self.app.state.current_identity()
        if not user:
            return

        table_rows = [
            ["User ID", user.uid],
            ["Name", user.name],
            ["Role", user.role.capitalize()],
        ]
        md_table_str = generate_markdown_table(None, table_rows, ["l", "l"])
        await self.query_one(Markdown).update(md_table_str)

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), name=k)
                for k, v in self.app.modes_for(user.role).items()
            ]
        )
        self.highlight_item(self.init_mode)

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.name
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.post_message(ModeSwitchedMessage(self.app.current_mode, selected_mode))
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-logout")
    @work()
    async def handle_logout(self):
        if not await self.app.push_screen_wait(
            ConfirmModal("Are you sure you want to log out?", tone="warning")
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.name == mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "Base Screen",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        :return:
        """

        self.app.title = "LiveMart"
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v):
                self.sub_title = self.app.MODE_TITLES.get(k, header_sub_title)

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    async def on_resize(self, event: Resize) -> None:
        min_width = 60
        min_height = 20
        if event.size.width < min_width or event.size.height < min_height:
            self.app.push_screen(ResizeScreenPromptModal(min_width, min_height))

    async def report_error(self, exc: LiveMartError) -> None:
        """Show a failed operation to the user; unknown ids send them back to the home listing."""
        _logger.warning(f"{type(exc).__name__}: {exc}")
        self.notify(str(exc), severity="error")
        if isinstance(exc, NotFoundError):
            home = self.app.home_mode()
            if home and self.app.current_mode != home:
                self.app.post_message(ModeSwitchedMessage(self.app.current_mode, home))
                await self.app.switch_mode(home)

    @on(UserLoginMessage)
    def handle_user_login(self):
        self.refresh()

    @on(ScreenResume)
    def handle_sidebar_resume(self) -> None:
        for sidebar in self.query(Sidebar):
            sidebar.reload()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
