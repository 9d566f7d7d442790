"""Main Textual app for one Itanavi group chat."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.widgets import Button, ContentSwitcher, Footer, Static, Tab, Tabs

from itanavi_chat import settings
from itanavi_chat.adapters.message_formatting import (
    format_event_line,
    format_member_count,
    format_member_line,
)
from itanavi_chat.client import build_api, build_http_client, build_transport
from itanavi_chat.core.errors import ItanaviError
from itanavi_chat.core.models import GroupDetail, Message, ViewerContext
from itanavi_chat.core.reconcile import AnchorState
from itanavi_chat.core.read_tracking import UnreadState
from itanavi_chat.core.session import GroupChatSession

from .constants import INFO_TAB, ITANAVI_GREEN, MESSAGES_TAB
from .modals import AlertScreen, ReactionScreen
from .widgets import Composer, MessageBubble, MessageList

LOGGER = logging.getLogger(__name__)

MESSAGES_LABEL = "団体メッセージ"


class GroupChatApp(App):
    """Group info and chat tabs backed by a GroupChatSession."""

    BINDINGS = [
        ("ctrl+s", "send", "Send"),
        ("ctrl+r", "refresh", "Refresh"),
        ("r", "react", "React"),
        ("m", "mark_all_read", "Mark all read"),
        ("ctrl+c", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #0f1a17;
        color: #e8f5ef;
    }

    #header {
        height: 5;
        padding: 0 2;
        border-bottom: solid #2a463b;
    }

    #header-right {
        width: 30;
        text-align: right;
    }

    .subtle {
        color: #b9cfc5;
    }

    #content {
        height: 1fr;
    }

    #info, #messages {
        height: 1fr;
    }

    #message-list {
        height: 1fr;
        padding: 0 1;
    }

    .message {
        margin: 1 0 0 0;
        padding: 0 1;
        border-left: tall #3f5f52;
    }

    .message--own {
        border-left: tall #10B981;
    }

    .message--announcement {
        background: #133326;
    }

    .message:focus {
        background: #1f3d31;
    }

    .empty {
        padding: 2;
        color: #8aa79a;
    }

    #composer {
        height: auto;
        border-top: solid #2a463b;
        padding: 0 1;
    }

    #announcement-row, #composer-row {
        height: auto;
    }

    #composer-input {
        width: 1fr;
        height: 5;
    }

    #composer-counter {
        text-align: right;
        color: #8aa79a;
    }

    .section-title {
        text-style: bold;
        margin: 1 0 0 0;
    }

    .modal-dialog {
        width: 60;
        height: auto;
        padding: 1 2;
        border: round #10B981;
        background: #13241e;
    }

    .modal-title {
        text-style: bold;
    }

    .modal-actions {
        height: auto;
        margin: 1 0 0 0;
    }

    .modal-error {
        color: #f87171;
    }

    ModalScreen {
        align: center middle;
    }
    """

    def __init__(self, group_id: str, viewer_id: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._group_id = group_id
        self._viewer = ViewerContext(user_id=viewer_id)
        self._http = None
        self._session: Optional[GroupChatSession] = None

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal():
                with Vertical():
                    yield Static(self._title_text("読み込み中..."), id="title")
                    yield Static("", id="event-line", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static("realtime: offline", id="connection-status", classes="subtle")

        yield Tabs(
            Tab("団体情報", id=INFO_TAB),
            Tab(MESSAGES_LABEL, id=MESSAGES_TAB),
            id="tabs",
        )

        with ContentSwitcher(id="content", initial=INFO_TAB):
            with VerticalScroll(id=INFO_TAB):
                yield Static("団体コード", classes="section-title")
                yield Static("", id="group-code")
                yield Static("メンバー一覧", classes="section-title")
                yield Static("", id="member-count", classes="subtle")
                yield Static("", id="member-list")
            with Vertical(id=MESSAGES_TAB):
                yield MessageList(id="message-list")
                yield Composer(id="composer")
        yield Footer()

    async def on_mount(self) -> None:
        self._http = build_http_client()
        session = GroupChatSession(
            api=build_api(self._http, self._viewer.user_id),
            transport=build_transport(self._viewer.user_id),
            viewer=self._viewer,
            group_id=self._group_id,
            config=settings.CHAT,
        )
        session.store.attach_anchor(self.query_one(MessageList))
        session.store.add_listener(self._on_messages_changed)
        session.read_tracker.add_listener(self._on_unread_changed)
        session.connection.add_listener(self._on_connection_changed)
        self._session = session
        self.run_worker(self._open_session(), exclusive=True, group="session")

    async def on_unmount(self) -> None:
        if self._session is not None:
            await self._session.close()
        if self._http is not None:
            await self._http.aclose()

    async def _open_session(self) -> None:
        try:
            group = await self._session.open()
        except ItanaviError as exc:
            LOGGER.warning("Failed to open group %s: %s", self._group_id, exc)
            self._alert(f"団体の取得に失敗しました: {exc}")
            return
        self._show_group(group)

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or INFO_TAB
        self.query_one("#content", ContentSwitcher).current = tab_id
        if self._session is not None:
            self.run_worker(self._session.set_chat_tab_active(tab_id == MESSAGES_TAB), group="tabs")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self.action_send()

    def action_send(self) -> None:
        if self._session is None:
            return
        self.run_worker(self._send(), exclusive=True, group="send")

    def action_refresh(self) -> None:
        if self._session is not None:
            self.run_worker(self._session.refresh_messages(), group="refresh")

    def action_mark_all_read(self) -> None:
        if self._session is not None:
            self.run_worker(self._session.mark_all_read(), group="read")

    def action_react(self) -> None:
        focused = self.focused
        if not isinstance(focused, MessageBubble):
            return
        message_id = focused.message.id

        def _picked(emoji: Optional[str]) -> None:
            if emoji:
                self.run_worker(self._toggle_reaction(message_id, emoji), group="reaction")

        self.push_screen(ReactionScreen(), _picked)

    async def _send(self) -> None:
        composer = self.query_one(Composer)
        composer.set_sending(True)
        try:
            await self._session.send_message(composer.text, composer.is_announcement)
        except ItanaviError as exc:
            LOGGER.warning("Send failed for group %s: %s", self._group_id, exc)
            self._alert(f"メッセージの送信に失敗しました: {exc}")
        else:
            composer.reset()
        finally:
            composer.set_sending(False)

    async def _toggle_reaction(self, message_id: str, emoji: str) -> None:
        try:
            await self._session.toggle_reaction(message_id, emoji)
        except ItanaviError as exc:
            LOGGER.warning("Reaction failed for %s: %s", message_id, exc)
            self._alert(f"リアクションに失敗しました: {exc}")

    def _on_messages_changed(self, messages: Sequence[Message], before: Optional[AnchorState]) -> None:
        self.query_one(MessageList).show_messages(
            messages,
            before,
            self._viewer.user_id,
            settings.CHAT.scroll_bottom_threshold,
        )

    def _on_unread_changed(self, state: UnreadState) -> None:
        tab = self.query_one("#tabs", Tabs).query_one(f"#{MESSAGES_TAB}", Tab)
        tab.label = f"{MESSAGES_LABEL} ●" if state is UnreadState.UNREAD else MESSAGES_LABEL

    def _on_connection_changed(self, connected: bool) -> None:
        status = "realtime: connected" if connected else "realtime: offline"
        self.query_one("#connection-status", Static).update(status)

    def _show_group(self, group: GroupDetail) -> None:
        self.query_one("#title", Static).update(self._title_text(group.name, group.is_leader))
        event_line = format_event_line(group)
        if group.theme:
            event_line = f"{group.theme}\n{event_line}"
        self.query_one("#event-line", Static).update(event_line)
        self.query_one("#group-code", Static).update(group.group_code)
        self.query_one("#member-count", Static).update(format_member_count(group))
        self.query_one("#member-list", Static).update(
            "\n".join(format_member_line(member) for member in group.members)
        )
        self.query_one(Composer).set_leader(group.is_leader)

    def _alert(self, message: str) -> None:
        self.push_screen(AlertScreen(message))

    @staticmethod
    def _title_text(name: str, is_leader: bool = False) -> Text:
        title = Text.assemble(("いたなび", ITANAVI_GREEN), (f" > {name}", "bold"))
        if is_leader:
            title.append("  オーナー", style=f"bold {ITANAVI_GREEN}")
        return title
