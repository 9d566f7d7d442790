"""Modal dialogs for the Textual chat app."""

from __future__ import annotations

from typing import Optional

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static

from itanavi_chat.core.composer import EMOJI_MAX_CHARS

from .constants import QUICK_REACTIONS


class AlertScreen(ModalScreen[None]):
    """Blocking alert for a failed user action."""

    def __init__(self, message: str, title: str = "エラー") -> None:
        super().__init__()
        self._message = message
        self._title = title

    def compose(self) -> ComposeResult:
        yield Container(
            Static(self._title, classes="modal-title"),
            Static(self._message, classes="modal-body"),
            Horizontal(
                Button("OK", id="alert-ok", variant="primary"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(None)


class ReactionScreen(ModalScreen[Optional[str]]):
    """Pick an emoji to toggle on the selected message."""

    def compose(self) -> ComposeResult:
        buttons = [
            Button(emoji, id=f"reaction-{index}", classes="reaction-button")
            for index, emoji in enumerate(QUICK_REACTIONS)
        ]
        yield Container(
            Static("リアクション", classes="modal-title"),
            Horizontal(*buttons, classes="modal-actions"),
            Static("その他の絵文字", classes="form-label"),
            Input(placeholder="😀", max_length=EMOJI_MAX_CHARS, id="reaction-custom"),
            Static("", id="reaction-error", classes="modal-error"),
            Horizontal(
                Button("追加", id="reaction-confirm", variant="success"),
                Button("キャンセル", id="reaction-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id == "reaction-cancel":
            self.dismiss(None)
            return
        if button_id.startswith("reaction-") and button_id[len("reaction-"):].isdigit():
            self.dismiss(QUICK_REACTIONS[int(button_id[len("reaction-"):])])
            return
        if button_id == "reaction-confirm":
            emoji = self.query_one("#reaction-custom", Input).value.strip()
            if not emoji:
                self.query_one("#reaction-error", Static).update("絵文字を入力してください")
                return
            self.dismiss(emoji)
