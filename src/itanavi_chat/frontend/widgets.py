"""Message list and composer widgets."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from textual import on
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, Static, Switch, TextArea

from itanavi_chat.adapters.message_formatting import render_message
from itanavi_chat.core.composer import MESSAGE_MAX_CHARS, clip_message, format_counter
from itanavi_chat.core.models import Message
from itanavi_chat.core.reconcile import AnchorState, preserve_scroll

from .constants import CELL_HEIGHT_PX


class MessageBubble(Static, can_focus=True):
    """One message; focus it and press ``r`` to react."""

    def __init__(self, message: Message, viewer_id: Optional[str]) -> None:
        classes = "message"
        if message.is_announcement:
            classes += " message--announcement"
        if viewer_id and message.sender.id == viewer_id:
            classes += " message--own"
        super().__init__(render_message(message, viewer_id), classes=classes)
        self.message = message


class MessageList(VerticalScroll):
    """Scrollable message container; also the session's ScrollAnchor."""

    def capture(self) -> AnchorState:
        return AnchorState(
            scroll_top=int(self.scroll_y * CELL_HEIGHT_PX),
            scroll_height=int(self.virtual_size.height * CELL_HEIGHT_PX),
            client_height=int(self.size.height * CELL_HEIGHT_PX),
        )

    def restore(self, state: AnchorState, height_delta: int) -> None:
        target = max(0, state.scroll_top + height_delta) / CELL_HEIGHT_PX
        self.scroll_to(y=target, animate=False)

    def scroll_to_bottom(self) -> None:
        self.scroll_end(animate=False)

    def show_messages(
        self,
        messages: Sequence[Message],
        before: Optional[AnchorState],
        viewer_id: Optional[str],
        threshold: int,
    ) -> None:
        """Re-render the list, then re-apply the scroll anchor after layout."""

        self.remove_children()
        if not messages:
            self.mount(Static("まだメッセージがありません", classes="empty"))
            return
        self.mount_all([MessageBubble(message, viewer_id) for message in messages])
        if before is None:
            self.call_after_refresh(self.scroll_to_bottom)
        else:
            self.call_after_refresh(preserve_scroll, self, before, threshold)


class Composer(Vertical):
    """Message input clipped at the character limit, with a live counter."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._leader = False
        self.counter_text = format_counter("")

    def compose(self) -> ComposeResult:
        with Horizontal(id="announcement-row"):
            yield Switch(value=False, id="announcement")
            yield Static("一斉連絡として送信", classes="form-label")
        with Horizontal(id="composer-row"):
            yield TextArea(id="composer-input")
            yield Button("送信", id="send-btn", variant="primary")
        yield Static(self.counter_text, id="composer-counter")

    def on_mount(self) -> None:
        self.set_leader(self._leader)

    @property
    def text(self) -> str:
        return self.query_one("#composer-input", TextArea).text

    @property
    def is_announcement(self) -> bool:
        return self._leader and self.query_one("#announcement", Switch).value

    def set_leader(self, leader: bool) -> None:
        self._leader = leader
        self.query_one("#announcement-row").display = leader

    def set_sending(self, sending: bool) -> None:
        button = self.query_one("#send-btn", Button)
        button.disabled = sending
        button.label = "送信中..." if sending else "送信"

    def reset(self) -> None:
        self.query_one("#composer-input", TextArea).load_text("")
        self.query_one("#announcement", Switch).value = False

    @on(TextArea.Changed, "#composer-input")
    def _on_input_changed(self, event: TextArea.Changed) -> None:
        area = event.text_area
        value = area.text
        if len(value) > MESSAGE_MAX_CHARS:
            area.load_text(clip_message(value))
            area.move_cursor(area.document.end)
            return
        self.counter_text = format_counter(value)
        self.query_one("#composer-counter", Static).update(self.counter_text)
