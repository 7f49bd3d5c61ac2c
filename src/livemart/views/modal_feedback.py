from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

import livemart.db.feedback as feedback
from livemart.db.errors import LiveMartError
from livemart.db.models import Order


class FeedbackModal(ModalScreen[bool]):
    """
    Rate a delivered order from 1 to 5 with a comment.
    Return True once the feedback is stored.
    """

    def __init__(self, order: Order) -> None:
        super().__init__()
        self._order = order

    def compose(self) -> ComposeResult:
        with Vertical(id="div-feedback"):
            yield Label(f"Rate order #{self._order.id}")
            yield Select(
                [(f"{'★' * n}{'☆' * (5 - n)}  {n}", n) for n in range(5, 0, -1)],
                value=5,
                allow_blank=False,
                id="select-rating",
            )
            yield Label("Comment")
            yield Input(placeholder="How was it?", id="input-comment")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Submit", id="btn-submit", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#input-comment").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(False)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        comment_input = self.query_one("#input-comment", Input)
        try:
            await feedback.submit(
                self._order.id,
                self.app.state.uid,
                int(self.query_one("#select-rating", Select).value),
                comment_input.value,
            )
        except LiveMartError as exc:
            comment_input.add_class("-invalid")
            comment_input.focus()
            self.notify(str(exc), severity="error")
            return
        self.dismiss(True)
