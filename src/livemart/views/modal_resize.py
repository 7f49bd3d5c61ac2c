from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Resize
from textual.screen import ModalScreen
from textual.widgets import Label


class ResizeScreenPromptModal(ModalScreen[bool]):
    """
    Covers the screen while the terminal is below the minimum size,
    dismisses itself once it is large enough again.
    """

    def __init__(self, min_width: int = 60, min_height: int = 20) -> None:
        super().__init__()
        self.min_width = min_width
        self.min_height = min_height

    def compose(self) -> ComposeResult:
        with Container(id="div-resize"):
            yield Label(
                f"Terminal too small, LiveMart needs at least {self.min_width}x{self.min_height}.",
                id="prompt",
            )

    def on_resize(self, event: Resize) -> None:
        if event.size.width >= self.min_width and event.size.height >= self.min_height:
            self.dismiss()
