from typing import Literal, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from livemart.utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]

# (answer button, dismiss button) variants per tone
BUTTON_VARIANTS = {
    "default": ("primary", "default"),
    "positive": ("success", "default"),
    "warning": ("warning", "default"),
    "error": ("error", "primary"),
}


class DialogModal(ModalScreen[bool]):
    """
    Caption plus one or two buttons. Dismissed with True for the answer
    button, False for the other one or Escape.
    """

    BINDINGS = [Binding("escape", "decline", "Close", show=False)]

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose(self) -> ComposeResult:
        answer_variant, decline_variant = BUTTON_VARIANTS[self.tone]
        with Container(id="div-dialog"):
            yield Label(self.caption, id="caption")
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(self.secondary_text, variant=decline_variant, id="btn-secondary")
                yield Button(self.primary_text, variant=answer_variant, id="btn-primary")

    def on_mount(self):
        # destructive questions start on "No"
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "btn-primary")

    def action_decline(self) -> None:
        self.dismiss(False)


class ConfirmModal(DialogModal):
    """Yes / No question."""

    def __init__(self, caption: str, tone: Tone = "warning"):
        super().__init__(caption, primary_text="Yes", secondary_text="No", tone=tone)


class SimpleDialogModal(DialogModal):
    def __init__(self, caption: str):
        super().__init__(caption)


class QuitDialogModal(ConfirmModal):
    def __init__(self):
        super().__init__("Quit LiveMart? Your cart is kept for next time.", tone="error")

    @override
    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.post_message(QuitRequestedMessage())
        super().on_button_pressed(event)
